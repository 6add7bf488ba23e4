"""Runtime settings read from the environment."""
from __future__ import annotations

import os


def _parse_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_list_env(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


# Lifecycle
SUBMIT_GRACE_SECONDS = _parse_int_env("SUBMIT_GRACE_SECONDS", 30)
SWEEP_INTERVAL_SECONDS = _parse_int_env("SWEEP_INTERVAL_SECONDS", 60)

# Leaderboards
LEADERBOARD_TIE_BREAK = os.environ.get("LEADERBOARD_TIE_BREAK", "earliest_submission")
LEADERBOARD_LIMIT = _parse_int_env("LEADERBOARD_LIMIT", 0)  # 0 = no cap
MONTHLY_LEADERBOARD_LIMIT = _parse_int_env("MONTHLY_LEADERBOARD_LIMIT", 50)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# CORS
CORS_ORIGINS = _parse_list_env(
    "CORS_ORIGINS",
    ["http://localhost:3000", "http://127.0.0.1:3000"],
)
