from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.forms import FormResponse


class SubmitTestRequest(BaseModel):
    answers: List[Optional[int]] = Field(default_factory=list, max_length=500)


class SubmitContestRequest(BaseModel):
    form_responses: List[FormResponse] = Field(default_factory=list, max_length=100)


class EvaluateRequest(BaseModel):
    marks: int = Field(ge=0)
    feedback: Optional[str] = None
    evaluated_by: Optional[str] = None


class EvaluationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    marks: int
    feedback: Optional[str] = None
    evaluated_by: Optional[str] = None
    evaluated_at: datetime


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    assessment_id: str
    participant_id: str
    kind: str
    status: str
    finalized_by: str
    submitted_at: datetime
    time_taken_seconds: int
    results_published: bool = True

    answers: Optional[List[Optional[int]]] = None
    score: Optional[int] = None
    total_marks: Optional[int] = None
    percentage: Optional[int] = None

    form_responses: Optional[List[FormResponse]] = None
    evaluation: Optional[EvaluationOut] = None
