import os
from datetime import datetime
from typing import Annotated

from fastapi import Header, HTTPException

from admission import Participant
from clock import ensure_utc
from outcomes import ErrorCode, Outcome, OutcomeError

# Load once at module import
ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
ASSESSMENT_API_KEY = os.getenv("ASSESSMENT_API_KEY", "")


def require_admin(
    x_admin_token: Annotated[str | None, Header(alias="x-admin-token")] = None,
) -> None:
    """
    Strict admin-only guard. Requires the X-Admin-Token header to match ADMIN_TOKEN.
    """
    if not ADMIN_TOKEN:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured on server.")
    if x_admin_token != ADMIN_TOKEN:
        raise OutcomeError(Outcome.failure(ErrorCode.ADMIN_ONLY, "Admin token required."))


def require_client(
    x_api_key: Annotated[str | None, Header(alias="x-api-key")] = None,
    x_admin_token: Annotated[str | None, Header(alias="x-admin-token")] = None,
) -> None:
    """
    Client/API guard. Accepts either:
      - X-Admin-Token that matches ADMIN_TOKEN (admins always allowed), or
      - X-Api-Key that matches ASSESSMENT_API_KEY.
    """
    # Admin token grants access
    if ADMIN_TOKEN and x_admin_token == ADMIN_TOKEN:
        return

    # Otherwise require the public API key
    if not ASSESSMENT_API_KEY:
        raise HTTPException(status_code=500, detail="ASSESSMENT_API_KEY not configured on server.")
    if x_api_key != ASSESSMENT_API_KEY:
        raise HTTPException(status_code=401, detail="Unauthorized.")


def get_participant(
    x_participant_id: Annotated[str | None, Header(alias="x-participant-id")] = None,
    x_participant_cohort: Annotated[str | None, Header(alias="x-participant-cohort")] = None,
    x_participant_tier: Annotated[str | None, Header(alias="x-participant-tier")] = None,
    x_paid_until: Annotated[str | None, Header(alias="x-paid-until")] = None,
) -> Participant:
    """
    Identity comes from the upstream identity provider as headers; this
    service trusts them once the client key checks out.
    """
    pid = (x_participant_id or "").strip()
    if not pid or len(pid) > 64:
        raise HTTPException(status_code=400, detail="x-participant-id header required.")

    cohorts = frozenset(c.strip() for c in (x_participant_cohort or "").split(",") if c.strip())

    paid_until = None
    if x_paid_until:
        raw = x_paid_until.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            paid_until = ensure_utc(datetime.fromisoformat(raw))
        except ValueError:
            raise HTTPException(status_code=400, detail="x-paid-until must be ISO-8601.")

    return Participant(
        id=pid,
        cohorts=cohorts,
        paid=(x_participant_tier or "").strip().lower() == "paid",
        paid_until=paid_until,
    )
