from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime

from secassess.schemas.questionnaire import Option, Question


class Draft(BaseModel):
    """An in-progress assessment.

    The active session leaves ``user_id``/``name``/``date`` unset; a saved
    checkpoint in the report repository carries all three.
    """
    id: str
    assessment_type: str
    questions: List[Question] = Field(default_factory=list)
    answers: Dict[str, Option] = Field(default_factory=dict)
    last_question_index: int = 0
    created_at: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    user_id: Optional[str] = None
    name: Optional[str] = None
    date: Optional[datetime] = None

    @field_validator('answers', mode='before')
    def coerce_answer_keys(cls, v):
        if isinstance(v, dict):
            return {str(k): val for k, val in v.items() if val is not None}
        return v


class DraftProgress(BaseModel):
    current: int = 0
    total: int = 0
    percentage: int = 0
