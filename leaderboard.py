"""
Ranked standings derived from finalized submissions.

Ranking: score descending, then a swappable tie-break key; rank is the
1-based sorted position, so equal scores still get distinct ranks.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from scoring import percentage


@dataclass(frozen=True)
class Standing:
    participant_id: str
    score: int
    submitted_at: datetime
    time_taken_seconds: int
    total_marks: Optional[int] = None
    percentage: Optional[int] = None


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    standing: Standing


TieBreak = Callable[[Standing], Tuple]

# participant_id closes every key so ordering is total and repeatable
TIE_BREAKS: Dict[str, TieBreak] = {
    "earliest_submission": lambda s: (s.submitted_at, s.participant_id),
    "fastest_time": lambda s: (s.time_taken_seconds, s.submitted_at, s.participant_id),
}
DEFAULT_TIE_BREAK = "earliest_submission"


def resolve_tie_break(name: Optional[str]) -> str:
    if name in TIE_BREAKS:
        return name
    return DEFAULT_TIE_BREAK


def build_leaderboard(
    standings: Iterable[Standing], tie_break: str = DEFAULT_TIE_BREAK, limit: Optional[int] = None
) -> List[LeaderboardEntry]:
    key = TIE_BREAKS[resolve_tie_break(tie_break)]
    ordered = sorted(standings, key=lambda s: (-s.score, key(s)))
    if limit:
        ordered = ordered[:limit]
    return [LeaderboardEntry(rank=i, standing=s) for i, s in enumerate(ordered, 1)]


# ---------- monthly ----------


@dataclass
class MonthlyStanding:
    participant_id: str
    total_score: int = 0
    total_marks: int = 0
    tests_taken: int = 0
    best_percentage: int = 0

    @property
    def average_percentage(self) -> int:
        return percentage(self.total_score, self.total_marks)


@dataclass(frozen=True)
class MonthlyEntry:
    rank: int
    standing: MonthlyStanding


def build_monthly_leaderboard(standings: Iterable[Standing], limit: Optional[int] = 50) -> List[MonthlyEntry]:
    """
    Fold one month of test results into per-participant totals.

    Order: overall percentage (total score over total marks), then total
    score, then tests taken, all descending.
    """
    totals: Dict[str, MonthlyStanding] = {}
    for s in standings:
        m = totals.setdefault(s.participant_id, MonthlyStanding(participant_id=s.participant_id))
        m.total_score += s.score
        m.total_marks += s.total_marks or 0
        m.tests_taken += 1
        m.best_percentage = max(m.best_percentage, s.percentage or 0)

    ordered = sorted(
        totals.values(),
        key=lambda m: (-m.average_percentage, -m.total_score, -m.tests_taken, m.participant_id),
    )
    if limit:
        ordered = ordered[:limit]
    return [MonthlyEntry(rank=i, standing=m) for i, m in enumerate(ordered, 1)]
