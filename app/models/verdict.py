"""Domain models for model verdicts and post freshness."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

VerdictLabel = Literal["GOOD", "BAD", "UNCLEAR"]


class FreshnessResult(BaseModel):
    """Recency classification of the proof post backing a lead."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    is_fresh: bool | None = Field(default=None, alias="isFresh")
    days_old: int | None = Field(default=None, alias="daysOld", ge=0)
    post_age_hours: float | None = Field(default=None, alias="postAgeHours", ge=0)
    timestamp: str | None = None
    status: str
    scraped_data: bool = Field(default=False, alias="scrapedData")


class Verdict(BaseModel):
    """Categorical judgment returned by the model."""

    model_config = ConfigDict(frozen=True)

    verdict: VerdictLabel
    reasoning: str
    confidence: int = Field(default=0, ge=0, le=100)
    key_factors: tuple[str, ...] = ()
    red_flags: tuple[str, ...] = ()
    opportunity_score: int = Field(default=0, ge=0, le=100)
    recommended_action: str = ""

    @field_validator("verdict", mode="before")
    @classmethod
    def _normalize_label(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("confidence", "opportunity_score", mode="before")
    @classmethod
    def _clamp_percentage(cls, value: object) -> object:
        if value is None:
            return 0
        if isinstance(value, bool):
            raise ValueError("Percentages must be numeric.")
        if isinstance(value, (int, float, str)):
            number = float(value)
            if not math.isfinite(number):
                raise ValueError("Percentages must be numeric.")
            return max(0, min(100, int(round(number))))
        return value

    @field_validator("key_factors", "red_flags", mode="before")
    @classmethod
    def _coerce_string_list(cls, value: object) -> object:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,) if value.strip() else ()
        if isinstance(value, (list, tuple)):
            return tuple(str(item) for item in value if item is not None)
        return value


class EnrichedVerdict(Verdict):
    """Verdict with the freshness classification attached."""

    freshness: FreshnessResult | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        if self.freshness is None:
            payload.pop("freshness")
        return payload

    def to_content(self) -> list[dict[str, str]]:
        """Wrap the verdict in the single-element `content` list the frontend parses."""
        return [{"text": json.dumps(self.to_payload())}]


@dataclass(frozen=True)
class ParsedVerdict:
    """Model output that decoded and validated cleanly."""

    verdict: Verdict


@dataclass(frozen=True)
class MalformedResponse:
    """Model output that could not be turned into a verdict."""

    reason: str
    raw: str


ModelOutcome = ParsedVerdict | MalformedResponse
