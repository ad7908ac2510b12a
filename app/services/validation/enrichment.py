"""Merges the freshness classification into a model verdict."""

from __future__ import annotations

from app.models.verdict import EnrichedVerdict, FreshnessResult, Verdict


def enrich(verdict: Verdict, freshness: FreshnessResult | None) -> EnrichedVerdict:
    """Attach freshness to a verdict, forcing BAD when the post is explicitly stale.

    Unknown freshness (`is_fresh is None`) never triggers the override.
    """
    fields = verdict.model_dump()
    if freshness is not None and freshness.is_fresh is False:
        days_old = freshness.days_old
        fields["verdict"] = "BAD"
        fields["reasoning"] = (
            f"[AUTO REJECTED: Post is {days_old} days old - exceeds 24-hour freshness requirement] "
            f"{verdict.reasoning}"
        )
        fields["red_flags"] = (
            *verdict.red_flags,
            f"Lead is {days_old} days old - exceeds freshness threshold",
        )
    return EnrichedVerdict(**fields, freshness=freshness)
