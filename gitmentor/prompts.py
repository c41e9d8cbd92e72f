PROFILE_TEMPLATE = """\
User: {name}
Bio: {bio}
Public Repos: {public_repos}
Followers: {followers}
Following: {following}
Account Created: {created_at}

Overall Language Distribution:
{language_summary}

Top Repositories:
{repository_summary}"""

STRENGTHS_SYSTEM_PROMPT = (
    "You are an experienced technical mentor focusing on identifying developer strengths. "
    "Provide specific, evidence-based strengths."
)

STRENGTHS_USER_TEMPLATE = """\
As a developer career advisor, analyze this GitHub profile for key strengths:

{profile}

Provide 3-4 key strengths of this developer based on their GitHub profile. Focus on technical skills, project diversity, and development practices.
Format each strength as a clear, concise bullet point."""

IMPROVEMENT_SYSTEM_PROMPT = (
    "You are an experienced technical mentor focusing on identifying areas for developer growth. "
    "Provide constructive, actionable feedback."
)

IMPROVEMENT_USER_TEMPLATE = """\
As a developer career advisor, analyze this GitHub profile for areas of improvement:

{profile}

Provide 2-3 specific areas where this developer could improve. Focus on constructive feedback that would enhance their profile and skills.
Format each area as a clear, concise bullet point."""

RECOMMENDATIONS_SYSTEM_PROMPT = (
    "You are an experienced technical mentor focusing on providing actionable recommendations "
    "for developer growth. Provide specific, practical advice."
)

RECOMMENDATIONS_USER_TEMPLATE = """\
As a developer career advisor, provide specific recommendations for this GitHub profile:

{profile}

Provide 3-4 specific recommendations for growth and improvement. Focus on actionable steps that would enhance their profile and career prospects.
Format each recommendation as a clear, concise bullet point."""

ASSESSMENT_SYSTEM_PROMPT = (
    "You are an experienced technical mentor focusing on technical assessment. "
    "Provide a concise but comprehensive technical evaluation."
)

ASSESSMENT_USER_TEMPLATE = """\
As a developer career advisor, provide a technical assessment of this GitHub profile:

{profile}

Provide a brief technical assessment of this developer's skills and expertise. Focus on their technical proficiency, project complexity, and development patterns.
Keep the assessment concise but informative, as a single paragraph."""

RATING_SYSTEM_PROMPT = (
    "You are a senior engineering hiring manager rating GitHub profiles. "
    "Be fair, specific and consistent, and always follow the requested output format exactly."
)

RATING_USER_TEMPLATE = """\
Rate this GitHub profile on a scale from 0 to 10:

{profile}

Score each of these five categories from 0 to 10 with a one-sentence justification:
1. Code Quality
2. Project Diversity
3. Activity & Consistency
4. Documentation
5. Community Engagement

Respond in exactly this markdown format:

### Category Breakdown
- **Code Quality**: X/10 - justification
- **Project Diversity**: X/10 - justification
- **Activity & Consistency**: X/10 - justification
- **Documentation**: X/10 - justification
- **Community Engagement**: X/10 - justification

Rating: X/10

### Overall Assessment
One short paragraph summarizing the rating.

Use one decimal place for the overall rating (for example, Rating: 7.5/10)."""
