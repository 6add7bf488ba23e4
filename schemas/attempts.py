from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AttemptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    assessment_id: str
    participant_id: str
    started_at: datetime
    deadline: datetime
    # last synced answers; null until the client saves progress
    answers: Optional[List[Optional[int]]] = None
    synced_at: Optional[datetime] = None


class AnswersIn(BaseModel):
    # one slot per question, null = unanswered
    answers: List[Optional[int]] = Field(default_factory=list, max_length=500)
