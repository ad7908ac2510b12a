"""Domain models for inbound leads and scraped proof posts."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.services.validation.errors import InputError

# Ordered candidate keys per canonical field. The spreadsheet export uses the
# long instructional headers; hand-built payloads tend to use the short ones.
LEAD_FIELD_ALIASES: Final[dict[str, tuple[str, ...]]] = {
    "company_name": ("Company Name", "company_name", "companyName"),
    "industry_type": ("Industry Type", "industry_type", "industryType"),
    "phone_number": ("Phone Number", "phone_number", "phoneNumber"),
    "address_1": (
        "Address 1 (Road/Street/Lane/Park/Industrial Estate)",
        "Address 1",
        "address_1",
    ),
    "address_2": (
        "Address 2 (Village/Town/City)",
        "Address 2",
        "address_2",
    ),
    "postcode": (
        "Post Code (Please Put The Full Postcode, Example: CH41 5LH)",
        "Post Code",
        "postcode",
    ),
    "county": ("County", "county"),
    "lead_statement": ("Lead Statement", "lead_statement", "leadStatement"),
    "proof_url": ("Lead Proof URL", "Proof URL", "proof_url", "proofUrl"),
    "old_address": (
        "Old Address? (For relocation, new branch, and moving premises only with no given address)",
        "Old Address",
        "old_address",
    ),
}
FETCH_RESULT_KEYS: Final[tuple[str, ...]] = ("fetchResults", "fetch_results")


class RawPostData(BaseModel):
    """Normalized fields pulled from the scraping actor's first dataset item."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    posted_at_iso: str | None = None
    post_text: str | None = Field(default=None, alias="postText")
    previous_posts: tuple[str, ...] = Field(default=(), alias="previousPosts")

    @field_validator("previous_posts", mode="before")
    @classmethod
    def _coerce_previous_posts(cls, value: object) -> object:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(str(item) for item in value if item is not None and str(item).strip())
        return value


class FetchResult(BaseModel):
    """Proof-post data returned by the proof fetcher and echoed back on a lead."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str | None = None
    fetched_at: datetime | None = Field(default=None, alias="fetchedAt")
    raw_data: RawPostData = Field(default_factory=RawPostData, alias="rawData")


class Lead(BaseModel):
    """Business contact record with every field resolved to its canonical name."""

    model_config = ConfigDict(frozen=True)

    company_name: str | None = None
    industry_type: str | None = None
    phone_number: str | None = None
    address_1: str | None = None
    address_2: str | None = None
    postcode: str | None = None
    county: str | None = None
    lead_statement: str | None = None
    proof_url: str | None = None
    old_address: str | None = None
    fetch_results: FetchResult | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Lead":
        """Resolve a loosely keyed frontend payload through the alias table."""
        values: dict[str, Any] = {}
        for field_name, candidates in LEAD_FIELD_ALIASES.items():
            values[field_name] = _first_present(payload, candidates)
        fetch_payload = next(
            (payload[key] for key in FETCH_RESULT_KEYS if isinstance(payload.get(key), Mapping)),
            None,
        )
        if fetch_payload is not None:
            try:
                values["fetch_results"] = FetchResult.model_validate(fetch_payload)
            except ValidationError as exc:
                raise InputError(f"Invalid fetchResults: {exc.error_count()} error(s)") from exc
        return cls(**values)

    @property
    def posted_at(self) -> str | None:
        if self.fetch_results is None:
            return None
        return self.fetch_results.raw_data.posted_at_iso


def _first_present(payload: Mapping[str, Any], candidates: tuple[str, ...]) -> str | None:
    for key in candidates:
        value = payload.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None
