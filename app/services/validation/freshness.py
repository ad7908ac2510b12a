"""Deterministic freshness classification for a lead's proof post."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from app.models.verdict import FreshnessResult

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW_HOURS = 24
STATUS_NO_DATE = "Unknown - No post date available"
STATUS_INVALID_DATE = "Unknown - Invalid date format"
STATUS_CALCULATION_ERROR = "Unknown - Calculation error"
STATUS_FUTURE = "Fresh - Posted today or future scheduled"


def compute_freshness(timestamp: str | None, now: datetime) -> FreshnessResult:
    """Classify how recently a post was published relative to `now`.

    Never raises: missing, malformed or otherwise unusable timestamps produce
    an "Unknown" result with `scraped_data=False`.
    """
    if timestamp is None or not str(timestamp).strip():
        return FreshnessResult(status=STATUS_NO_DATE)

    try:
        posted_at = parse_timestamp(timestamp)
        if posted_at is None:
            return FreshnessResult(status=STATUS_INVALID_DATE, timestamp=str(timestamp))
        reference = _as_utc(now)

        if posted_at > reference:
            return FreshnessResult(
                is_fresh=True,
                days_old=0,
                post_age_hours=0.0,
                timestamp=timestamp,
                status=STATUS_FUTURE,
                scraped_data=True,
            )

        age_hours = (reference - posted_at).total_seconds() / 3600
        age_days = math.floor(age_hours / 24)
        return FreshnessResult(
            is_fresh=age_hours <= FRESHNESS_WINDOW_HOURS,
            days_old=age_days,
            post_age_hours=round(age_hours, 2),
            timestamp=timestamp,
            status=_describe_age(age_hours, age_days),
            scraped_data=True,
        )
    except Exception:
        logger.warning("freshness.calculation_error", extra={"timestamp": str(timestamp)[:64]}, exc_info=True)
        return FreshnessResult(status=STATUS_CALCULATION_ERROR)


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 string into an aware UTC datetime, or None if unparsable."""
    candidate = value.strip()
    if candidate.endswith(("Z", "z")):
        candidate = f"{candidate[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    return _as_utc(parsed)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _describe_age(age_hours: float, age_days: int) -> str:
    if age_hours <= 1:
        return "Fresh - Posted within the last hour"
    if age_hours <= FRESHNESS_WINDOW_HOURS:
        return f"Fresh - Posted {age_hours:.1f} hours ago"
    if age_days == 1:
        return "Stale - Posted 1 day ago"
    if age_days <= 7:
        return f"Stale - Posted {age_days} days ago"
    if age_days <= 30:
        return f"Stale - Posted {age_days} days ago ({age_days // 7} weeks)"
    return f"Stale - Posted {age_days} days ago ({age_days // 30} months)"
