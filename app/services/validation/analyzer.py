"""Lead analysis via the chat model, with freshness enrichment and batching."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from app.clients.openai_chat import ChatCompletionClient, OpenAIChatClient
from app.config import Settings, settings
from app.models.lead import Lead
from app.models.verdict import EnrichedVerdict, MalformedResponse, Verdict
from app.observability.metrics import metrics
from app.services.validation.enrichment import enrich
from app.services.validation.errors import ConfigurationError, UpstreamError
from app.services.validation.freshness import compute_freshness
from app.services.validation.parsing import degraded_verdict, parse_model_output
from app.services.validation.prompts import SYSTEM_PROMPT, build_prompt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyzerContext:
    """Configuration bundle for lead analysis."""

    api_key: str | None
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    json_mode: bool
    enrich_with_freshness: bool
    timeout_seconds: float
    system_prompt: str = SYSTEM_PROMPT

    @classmethod
    def from_settings(cls, config: Settings) -> "AnalyzerContext":
        return cls(
            api_key=config.openai_api_key,
            base_url=config.chat_base_url,
            model=config.scoring_model,
            temperature=config.scoring_temperature,
            max_tokens=config.scoring_max_tokens,
            json_mode=config.scoring_json_mode,
            enrich_with_freshness=config.enrich_with_freshness,
            timeout_seconds=config.upstream_timeout_seconds,
        )


@dataclass(frozen=True)
class BatchItem:
    """Positional result of one lead within a batch."""

    index: int
    duration_ms: float
    result: EnrichedVerdict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeadAnalyzer:
    """Validates leads with the chat model and applies the freshness override."""

    def __init__(
        self,
        context: AnalyzerContext,
        *,
        client: ChatCompletionClient | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._context = context
        self._client = client
        self._clock = clock

    async def analyze(self, lead: Lead) -> EnrichedVerdict:
        """Analyze a single lead.

        Raises ConfigurationError without a model credential and UpstreamError
        when the model call fails. Unusable model output degrades to UNCLEAR.
        """
        client = self._ensure_client()
        tags = {"model": self._context.model}
        start = time.perf_counter()
        try:
            response_text = await client.complete(
                system_prompt=self._context.system_prompt,
                user_prompt=build_prompt(lead),
                model=self._context.model,
                temperature=self._context.temperature,
                max_tokens=self._context.max_tokens,
                json_mode=self._context.json_mode,
            )
        except UpstreamError as exc:
            metrics.increment("analysis.errors", tags={**tags, "code": exc.code})
            logger.error(
                "analysis.upstream_error",
                extra={"status_code": exc.status_code, "company": lead.company_name},
            )
            raise
        finally:
            metrics.timing("analysis.latency_ms", (time.perf_counter() - start) * 1000, tags=tags)

        outcome = parse_model_output(response_text)
        if isinstance(outcome, MalformedResponse):
            metrics.increment("analysis.degraded", tags=tags)
            logger.warning(
                "analysis.degraded",
                extra={"reason": outcome.reason, "company": lead.company_name},
            )
            verdict = degraded_verdict(outcome.reason)
        else:
            metrics.increment("analysis.success", tags=tags)
            verdict = outcome.verdict

        return self._finalize(verdict, lead)

    async def analyze_batch(
        self,
        leads: Sequence[Lead],
        *,
        concurrency_cap: int,
        inter_task_delay: float,
    ) -> list[BatchItem]:
        """Analyze many leads with bounded concurrency, preserving input order.

        Each worker slot waits `inter_task_delay` seconds after its analysis
        finishes before the next queued lead may start.
        """
        if concurrency_cap < 1:
            raise ValueError("concurrency_cap must be >= 1")
        if not leads:
            return []
        self._ensure_client()

        semaphore = asyncio.Semaphore(concurrency_cap)

        async def _run(index: int, lead: Lead) -> BatchItem:
            async with semaphore:
                start = time.perf_counter()
                try:
                    result = await self.analyze(lead)
                except UpstreamError as exc:
                    result = self._finalize(degraded_verdict(str(exc)), lead)
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                if inter_task_delay > 0:
                    await asyncio.sleep(inter_task_delay)
                return BatchItem(index=index, duration_ms=duration_ms, result=result)

        items = await asyncio.gather(*(_run(index, lead) for index, lead in enumerate(leads)))
        logger.info("analysis.batch_complete", extra={"count": len(items), "concurrency": concurrency_cap})
        return list(items)

    def _finalize(self, verdict: Verdict, lead: Lead) -> EnrichedVerdict:
        if not self._context.enrich_with_freshness:
            return EnrichedVerdict(**verdict.model_dump())
        freshness = compute_freshness(lead.posted_at, self._clock())
        enriched = enrich(verdict, freshness)
        if freshness.is_fresh is False:
            metrics.increment("analysis.auto_rejected", tags={"model": self._context.model})
        return enriched

    def _ensure_client(self) -> ChatCompletionClient:
        if self._client:
            return self._client
        if not self._context.api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY on server.")
        self._client = OpenAIChatClient(
            self._context.api_key,
            base_url=self._context.base_url,
            timeout=self._context.timeout_seconds,
        )
        return self._client


_ANALYZER_INSTANCE: LeadAnalyzer | None = None


def get_lead_analyzer() -> LeadAnalyzer:
    """Singleton accessor used by API routes."""
    global _ANALYZER_INSTANCE  # noqa: PLW0603
    if _ANALYZER_INSTANCE is None:
        _ANALYZER_INSTANCE = LeadAnalyzer(AnalyzerContext.from_settings(settings))
    return _ANALYZER_INSTANCE
