"""
Typed results returned by the engine.

Expected outcomes (not live yet, already submitted, ...) travel back as
values rather than exceptions; only storage failures raise.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, enum.Enum):
    NOT_FOUND = "not_found"
    NOT_YET_LIVE = "not_yet_live"
    CLOSED = "closed"
    ADMISSION_DENIED = "admission_denied"
    NO_ACTIVE_ATTEMPT = "no_active_attempt"
    ATTEMPT_IN_PROGRESS = "attempt_in_progress"
    ALREADY_SUBMITTED = "already_submitted"
    VALIDATION_ERROR = "validation_error"
    NOT_YET_PUBLISHED = "not_yet_published"
    INVALID_STATE = "invalid_state"
    WRONG_KIND = "wrong_kind"
    ADMIN_ONLY = "admin_only"
    INTERNAL_ERROR = "internal_error"


# Outcomes that hand back the prior record so retries are harmless.
IDEMPOTENT_ERRORS = frozenset({ErrorCode.ATTEMPT_IN_PROGRESS, ErrorCode.ALREADY_SUBMITTED})


@dataclass(frozen=True)
class Outcome(Generic[T]):
    ok: bool
    value: T | None = None
    error: ErrorCode | None = None
    reason: str | None = None
    detail: str | None = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls,
        error: ErrorCode,
        detail: str | None = None,
        *,
        reason: str | None = None,
        value: Any = None,
    ) -> "Outcome[T]":
        return cls(ok=False, value=value, error=error, reason=reason, detail=detail)

    @property
    def is_idempotent_replay(self) -> bool:
        return self.error in IDEMPOTENT_ERRORS


class OutcomeError(Exception):
    """Raised from request dependencies; the app renders `outcome` as the response."""

    def __init__(self, outcome: Outcome):
        super().__init__(outcome.detail or (outcome.error.value if outcome.error else ""))
        self.outcome = outcome
