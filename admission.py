"""Cohort and paid-tier gating for assessments."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable


class DenyReason(str, enum.Enum):
    COHORT_MISMATCH = "cohort_mismatch"
    PAID_TIER_REQUIRED = "paid_tier_required"


@dataclass(frozen=True)
class Participant:
    """Identity as supplied by the identity provider for one request."""

    id: str
    cohorts: frozenset[str] = field(default_factory=frozenset)
    paid: bool = False
    paid_until: datetime | None = None

    def has_active_paid_tier(self, now: datetime) -> bool:
        # no expiry recorded means the tier does not lapse
        if not self.paid:
            return False
        return self.paid_until is None or self.paid_until > now


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None


ALLOWED = Decision(allowed=True)


def evaluate(cohorts: Iterable[str], is_paid: bool, participant: Participant, now: datetime) -> Decision:
    """
    Rules, in order:
      1. participant cohorts must intersect the assessment cohorts
      2. paid assessments need an active paid tier at `now`
    """
    if participant.cohorts.isdisjoint(set(cohorts or ())):
        return Decision(allowed=False, reason=DenyReason.COHORT_MISMATCH)
    if is_paid and not participant.has_active_paid_tier(now):
        return Decision(allowed=False, reason=DenyReason.PAID_TIER_REQUIRED)
    return ALLOWED


def evaluate_assessment(assessment, participant: Participant, now: datetime) -> Decision:
    return evaluate(assessment.cohorts, assessment.is_paid, participant, now)
