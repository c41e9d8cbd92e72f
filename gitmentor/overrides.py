from gitmentor.schemas import ProfileRating, Section, SectionData

# Fixed reports served instead of a model analysis, keyed by lowercase handle.
RESERVED_REPORTS: dict[str, dict[Section, SectionData]] = {
    "torvalds": {
        Section.STRENGTHS: [
            "Created Linux, the kernel running most of the world's servers, phones and supercomputers",
            "Created Git, the version control system this very profile is hosted on",
            "Decades of sustained stewardship of one of the largest collaborative codebases in history",
        ],
        Section.AREAS_FOR_IMPROVEMENT: [
            "Could consider adding a few more stars to the 200k already collected",
        ],
        Section.RECOMMENDATIONS: [
            "Keep doing exactly what you are doing",
            "Maybe write a README for the rest of us on how to build two world-changing projects",
        ],
        Section.TECHNICAL_ASSESSMENT: (
            "There is not much a growth report can add here: this profile belongs to the author "
            "of Linux and Git. Expert-level systems programming in C, kernel design, and "
            "large-scale open source maintenance set the bar the rest of us measure against."
        ),
        Section.PROFILE_RATING: ProfileRating(
            score=10.0,
            explanation="### Overall Assessment\nLegend status. No further analysis required.",
        ),
    },
}


def reserved_report(username: str) -> dict[Section, SectionData] | None:
    """Return a fresh copy of the fixed sections for a reserved handle, if any."""
    sections = RESERVED_REPORTS.get(username.lower())
    if sections is None:
        return None
    copied: dict[Section, SectionData] = {}
    for section, data in sections.items():
        if isinstance(data, ProfileRating):
            data = data.model_copy()
        elif isinstance(data, list):
            data = list(data)
        copied[section] = data
    return copied

