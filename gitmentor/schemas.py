from datetime import datetime
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, computed_field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for payloads exchanged with the browser client (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Developer profile ---


class GitHubUser(CamelModel):
    username: str
    display_name: str | None = None
    bio: str | None = None
    public_repo_count: int = 0
    follower_count: int = 0
    following_count: int = 0
    account_created_at: datetime | None = None
    avatar_url: str = ""


class ForkOrigin(CamelModel):
    full_name: str
    url: str


class ForkContribution(CamelModel):
    has_commits: bool
    commit_count: int = Field(ge=0, le=100)


class Repository(CamelModel):
    name: str
    description: str | None = None
    primary_language: str | None = None
    language_bytes: dict[str, int] = Field(default_factory=dict)
    star_count: int = 0
    fork_count: int = 0
    updated_at: datetime | None = None
    topics: list[str] = Field(default_factory=list)
    is_archived: bool = False
    is_fork: bool = False
    fork_origin: ForkOrigin | None = None
    fork_contribution: ForkContribution | None = None

    @model_validator(mode="after")
    def _fork_details_only_on_forks(self) -> "Repository":
        if not self.is_fork and (self.fork_origin or self.fork_contribution):
            raise ValueError(f"Repository {self.name!r} is not a fork but carries fork details")
        return self


class DeveloperProfile(CamelModel):
    user: GitHubUser
    repositories: list[Repository] = Field(default_factory=list)

    @computed_field(alias="languageStats")
    @property
    def language_stats(self) -> dict[str, int]:
        """Per-language byte totals, always derived from the current repositories."""
        stats: dict[str, int] = {}
        for repo in self.repositories:
            for language, size in repo.language_bytes.items():
                stats[language] = stats.get(language, 0) + size
        return stats


# --- Analysis report ---


class Section(str, Enum):
    STRENGTHS = "strengths"
    AREAS_FOR_IMPROVEMENT = "areasForImprovement"
    RECOMMENDATIONS = "recommendations"
    TECHNICAL_ASSESSMENT = "technicalAssessment"
    PROFILE_RATING = "profileRating"


class SectionStatus(str, Enum):
    PENDING = "pending"
    FILLED = "filled"
    FALLBACK = "fallback"


class ProfileRating(CamelModel):
    score: float = Field(ge=0, le=10)
    explanation: str


SectionData = Union[list[str], str, ProfileRating]

_FIELD_BY_SECTION = {
    Section.STRENGTHS: "strengths",
    Section.AREAS_FOR_IMPROVEMENT: "areas_for_improvement",
    Section.RECOMMENDATIONS: "recommendations",
    Section.TECHNICAL_ASSESSMENT: "technical_assessment",
    Section.PROFILE_RATING: "profile_rating",
}


class AnalysisReport(CamelModel):
    """Five report sections; a section left as None is still pending."""

    strengths: list[str] | None = None
    areas_for_improvement: list[str] | None = None
    recommendations: list[str] | None = None
    technical_assessment: str | None = None
    profile_rating: ProfileRating | None = None

    _status: dict[Section, SectionStatus] = PrivateAttr(
        default_factory=lambda: {section: SectionStatus.PENDING for section in Section}
    )

    def settle(self, section: Section, data: SectionData, *, fallback: bool = False) -> None:
        """Fill a pending section. Each section settles exactly once."""
        if self._status[section] is not SectionStatus.PENDING:
            raise RuntimeError(f"Section {section.value} already settled")
        setattr(self, _FIELD_BY_SECTION[section], data)
        self._status[section] = SectionStatus.FALLBACK if fallback else SectionStatus.FILLED

    def status(self, section: Section) -> SectionStatus:
        return self._status[section]

    def get(self, section: Section) -> SectionData | None:
        return getattr(self, _FIELD_BY_SECTION[section])

    @property
    def is_complete(self) -> bool:
        return all(status is not SectionStatus.PENDING for status in self._status.values())


class SectionUpdate(CamelModel):
    section: Section
    data: SectionData


# --- HTTP payloads ---


class UsernameRequest(BaseModel):
    username: str


class AnalyzeRequest(BaseModel):
    profile: DeveloperProfile


class SendAnalysisRequest(BaseModel):
    email: str | None = None
    analysis: AnalysisReport | None = None
    profile: DeveloperProfile | None = None


class AnalysisResponse(CamelModel):
    profile: DeveloperProfile
    analysis: AnalysisReport


class ErrorResponse(BaseModel):
    status: str
    title: str
    message: str
    details: Any = None
