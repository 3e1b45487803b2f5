from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime


class Option(BaseModel):
    text: str
    # Observed range is -2..+2; -2 is the worst answer, +2 the best
    score: int
    explanation: str = ""
    recommendation: str = ""


class Question(BaseModel):
    id: str
    assessment_name: Optional[str] = None
    category: str
    text: str
    explanation: str = ""
    options: List[Option] = Field(default_factory=list)

    @field_validator('id', mode='before')
    def coerce_id(cls, v):
        # Seed and authored catalogs use integer ids; answers are keyed by str
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def options_by_score(self) -> List[Option]:
        """Options best-first; stable for equal scores."""
        return sorted(self.options, key=lambda o: -o.score)


class Questionnaire(BaseModel):
    id: int
    name: str
    status: str = "Active"
    last_updated: Optional[datetime] = None
    description: Optional[str] = None
    # Declared category order; a declared category may have no questions yet
    categories: List[str] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status.lower() == "active"
