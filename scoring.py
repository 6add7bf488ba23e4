from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class ScoreResult:
    score: int
    total_marks: int

    @property
    def percentage(self) -> int:
        return percentage(self.score, self.total_marks)


def _answer_at(answers: Sequence[Optional[int]], idx: int) -> Optional[int]:
    if idx >= len(answers):
        return None
    a = answers[idx]
    # bools are ints in Python; a True must not pass as option 1
    if isinstance(a, bool) or not isinstance(a, int) or a < 0:
        return None
    return a


def score(questions: Sequence[Dict[str, Any]], answers: Sequence[Optional[int]]) -> ScoreResult:
    """
    Award a question's marks when the chosen option index equals its
    correct index. Unanswered, out-of-range and wrong answers earn 0.
    Answers beyond the last question are ignored.
    """
    total = 0
    got = 0
    for idx, q in enumerate(questions):
        marks = int(q.get("marks", 0))
        total += marks
        if _answer_at(answers, idx) == q.get("correct_index"):
            got += marks
    return ScoreResult(score=got, total_marks=total)


def percentage(score_value: int, total_marks: int) -> int:
    if total_marks <= 0:
        return 0
    # half-up, not banker's rounding: 62.5 -> 63
    return int(math.floor(100 * score_value / total_marks + 0.5))


def normalize_answers(questions: Sequence[Dict[str, Any]], answers: Sequence[Any]) -> List[Optional[int]]:
    """One slot per question; anything that is not a usable option index becomes None."""
    out: List[Optional[int]] = []
    for idx, q in enumerate(questions):
        a = _answer_at(answers, idx)
        if a is not None and a >= len(q.get("options") or []):
            a = None
        out.append(a)
    return out
