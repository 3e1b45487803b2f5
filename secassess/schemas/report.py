from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Literal, Optional, Union
from datetime import datetime

from secassess.schemas.draft import Draft


class Recommendation(BaseModel):
    text: str
    impact_score: int
    category: str


class ScoreResult(BaseModel):
    """Report content produced by the scoring engine."""
    overall: int
    category_scores: Dict[str, int] = Field(default_factory=dict)
    category_labels: Dict[str, str] = Field(default_factory=dict)
    recommendations: List[Recommendation] = Field(default_factory=list)

    @field_validator('category_scores', mode='before')
    def coerce_category_list(cls, v):
        # Also accept [{"key": ..., "score": ...}] entries
        if isinstance(v, (list, tuple)):
            return {str(item.get("key") or item.get("category")): item.get("score") for item in v if isinstance(item, dict)}
        return v


class Report(BaseModel):
    id: str
    user_id: str
    name: str
    date: datetime
    assessment_type: str
    score: int
    report: ScoreResult
    created_at: datetime
    # Set when the report was promoted from a saved draft
    completed_from_draft: Optional[str] = None


class RecordEntry(BaseModel):
    """A report or saved draft tagged with its status, as listed to its owner."""
    is_draft: bool
    record: Union[Report, Draft]

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def name(self) -> Optional[str]:
        return self.record.name

    @property
    def date(self) -> Optional[datetime]:
        return self.record.date


class DraftSaveResult(BaseModel):
    success: bool = True
    operation: Literal["added", "updated"]
    draft: Draft


class DeleteResult(BaseModel):
    success: bool
    collection: Optional[Literal["completed", "draft"]] = None
    message: Optional[str] = None


class AverageScoreSummary(BaseModel):
    average_score: float
    latest_reports: List[Report]
