from typing import TypedDict, Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LeadFilter(BaseModel):
    """Structured search terms extracted from a fuzzy lead description."""
    model_config = ConfigDict(frozen=True)

    company: Optional[str] = None
    department: Optional[str] = None
    title_keywords: List[str] = Field(default_factory=list)

    @field_validator("title_keywords", mode="before")
    @classmethod
    def _none_means_no_keywords(cls, value):
        return [] if value is None else value

    def search_query(self) -> str:
        """Join the non-empty parts with single spaces."""
        parts = [
            self.company or "",
            self.department or "",
            " ".join(k.strip() for k in self.title_keywords if k and k.strip()),
        ]
        return " ".join(p.strip() for p in parts if p.strip()).strip()


class CandidateLead(BaseModel):
    """One similarity search hit."""
    model_config = ConfigDict(frozen=True)

    relevance_score: float
    text: str
    source: Optional[str] = None


class QualificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    selected_lead: CandidateLead
    score_justification: str
    draft_email: str
    errors: List[str] = Field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.errors)


class NoRelevantLead(BaseModel):
    """Terminal outcome when no candidate clears the relevance threshold."""
    model_config = ConfigDict(frozen=True)

    search_query: str
    candidates_seen: int = 0


class PipelineState(TypedDict, total=False):
    """State shape for the lead qualification workflow."""
    description: str                      # raw user input
    lead_filter: LeadFilter
    search_query: str
    candidates_seen: int
    selected_lead: Optional[CandidateLead]
    score_justification: str
    draft_email: str
    outcome: str                          # "qualified" | "no_relevant_lead"
    errors: List[str]
