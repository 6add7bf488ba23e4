from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from schemas.assessments import RewardTier


class LeaderboardEntryOut(BaseModel):
    rank: int
    participant_id: str
    score: int
    total_marks: Optional[int] = None
    percentage: Optional[int] = None
    time_taken_seconds: int
    submitted_at: datetime
    reward: Optional[RewardTier] = None


class LeaderboardOut(BaseModel):
    ok: bool = True
    assessment_id: str
    kind: str
    tie_break: str
    entries: List[LeaderboardEntryOut]


class MonthlyEntryOut(BaseModel):
    rank: int
    participant_id: str
    total_score: int
    total_marks: int
    tests_taken: int
    average_percentage: int
    best_percentage: int


class MonthlyLeaderboardOut(BaseModel):
    ok: bool = True
    month: str
    entries: List[MonthlyEntryOut]
