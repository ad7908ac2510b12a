"""Decoding of raw model output into verdicts."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from app.models.verdict import MalformedResponse, ModelOutcome, ParsedVerdict, Verdict
from app.services.validation.errors import ParseError

REQUIRED_VERDICT_KEYS = ("verdict", "reasoning")


def decode_json_object(raw_text: str) -> dict[str, Any]:
    """Best-effort JSON decoding that tolerates code fences or prose."""
    candidate = (raw_text or "").strip()
    if candidate.startswith("```"):
        candidate = "\n".join(line for line in candidate.splitlines() if not line.strip().startswith("```")).strip()
    start = candidate.find("{")
    end = candidate.rfind("}")
    if start == -1 or end <= start:
        raise ParseError("Response did not contain a JSON object.", raw=raw_text)
    try:
        payload = json.loads(candidate[start : end + 1])
    except ValueError as exc:
        raise ParseError(f"Response was not valid JSON: {exc}", raw=raw_text) from exc
    if not isinstance(payload, dict):
        raise ParseError("Response JSON was not an object.", raw=raw_text)
    return payload


def parse_model_output(raw_text: str) -> ModelOutcome:
    """Turn model text into a ParsedVerdict, or a MalformedResponse describing why not."""
    try:
        payload = decode_json_object(raw_text)
    except ParseError as exc:
        return MalformedResponse(reason=str(exc), raw=raw_text)

    missing = [key for key in REQUIRED_VERDICT_KEYS if key not in payload]
    if missing:
        return MalformedResponse(reason=f"Missing required keys: {', '.join(missing)}", raw=raw_text)

    try:
        verdict = Verdict.model_validate(payload)
    except ValidationError as exc:
        return MalformedResponse(reason=f"Invalid verdict fields: {exc.error_count()} error(s)", raw=raw_text)
    except (TypeError, ValueError, OverflowError) as exc:
        return MalformedResponse(reason=f"Invalid verdict fields: {exc}", raw=raw_text)
    return ParsedVerdict(verdict=verdict)


def degraded_verdict(reason: str) -> Verdict:
    """UNCLEAR verdict substituted when the model output cannot be used."""
    return Verdict(
        verdict="UNCLEAR",
        reasoning=f"AI analysis could not be completed: {reason}",
        confidence=0,
        key_factors=(),
        red_flags=("Automated analysis unavailable - manual review required",),
        opportunity_score=0,
        recommended_action="Review this lead manually",
    )
