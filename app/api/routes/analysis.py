"""API endpoints for lead analysis and proof fetching."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import AliasChoices, BaseModel, Field

from app.config import settings
from app.models.lead import FetchResult, Lead
from app.services.validation.analyzer import LeadAnalyzer, get_lead_analyzer
from app.services.validation.errors import InputError, LeadValidationError, UpstreamError
from app.services.validation.proof_fetch import ProofFetcher, get_proof_fetcher

router = APIRouter()
logger = logging.getLogger(__name__)


class AnalyzeRequest(BaseModel):
    """Request payload carrying a single loosely keyed lead."""

    lead: dict[str, Any] | None = None


class BatchAnalyzeRequest(BaseModel):
    """Request payload carrying several leads."""

    leads: list[dict[str, Any]] | None = None


class FetchProofRequest(BaseModel):
    proof_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("proofUrl", "proof_url", "url"),
    )


async def analyze_lead(
    payload: AnalyzeRequest,
    analyzer: LeadAnalyzer = Depends(get_lead_analyzer),
) -> dict[str, Any]:
    """Validate a lead and return the verdict in the frontend's content shape."""
    try:
        if not payload.lead:
            raise InputError("Lead data is required.")
        result = await analyzer.analyze(Lead.from_payload(payload.lead))
    except LeadValidationError as exc:
        raise _to_http_error(exc) from exc
    return {"content": result.to_content()}


router.add_api_route("/validate", analyze_lead, methods=["POST"])
router.add_api_route("/analyze", analyze_lead, methods=["POST"])


@router.post("/analyze/batch")
async def analyze_batch(
    payload: BatchAnalyzeRequest,
    analyzer: LeadAnalyzer = Depends(get_lead_analyzer),
) -> dict[str, Any]:
    """Validate several leads; results come back in request order."""
    try:
        if not payload.leads:
            raise InputError("At least one lead is required.")
        leads = [Lead.from_payload(raw) for raw in payload.leads]
        items = await analyzer.analyze_batch(
            leads,
            concurrency_cap=settings.batch_concurrency,
            inter_task_delay=settings.batch_delay_seconds,
        )
    except LeadValidationError as exc:
        raise _to_http_error(exc) from exc
    return {
        "results": [
            {
                "index": item.index,
                "durationMs": item.duration_ms,
                "content": item.result.to_content(),
            }
            for item in items
        ]
    }


@router.post("/fetch-proof")
async def fetch_proof(
    payload: FetchProofRequest,
    fetcher: ProofFetcher = Depends(get_proof_fetcher),
) -> dict[str, Any]:
    """Scrape the proof post behind a lead so it can be attached as fetchResults."""
    try:
        proof_url = (payload.proof_url or "").strip()
        if not proof_url:
            raise InputError("Proof URL is required.", code="400_INVALID_PROOF_URL")
        result: FetchResult = await fetcher.fetch_proof(proof_url)
    except LeadValidationError as exc:
        raise _to_http_error(exc) from exc
    return result.model_dump(mode="json", by_alias=True)


def _to_http_error(exc: LeadValidationError) -> HTTPException:
    status_code = _map_error(exc)
    log = logger.warning if status_code < 500 else logger.error
    log("analysis.api_error", extra={"code": exc.code, "status": status_code})
    if isinstance(exc, UpstreamError):
        return HTTPException(status_code=status_code, detail={"error": str(exc), "details": exc.body})
    return HTTPException(status_code=status_code, detail={"error": str(exc)})


def _map_error(exc: LeadValidationError) -> int:
    if isinstance(exc, UpstreamError):
        if exc.status_code and exc.status_code >= 400:
            return exc.status_code
        return status.HTTP_502_BAD_GATEWAY
    if exc.code.startswith("400_"):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR
