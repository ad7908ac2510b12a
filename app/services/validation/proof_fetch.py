"""Fetches proof-post metadata through the Apify scraping actor."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Final

from app.clients.apify import ActorClient, ApifyActorClient, ApifyError
from app.config import Settings, settings
from app.models.lead import FetchResult, RawPostData
from app.observability.metrics import metrics
from app.services.validation.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

POST_DATE_KEYS: Final[tuple[str, ...]] = (
    "posted_at_iso",
    "time",
    "timestamp",
    "date",
    "publishedAt",
    "postedAt",
    "createdAt",
)
POST_TEXT_KEYS: Final[tuple[str, ...]] = ("postText", "text", "message", "content")
PREVIOUS_POST_KEYS: Final[tuple[str, ...]] = ("previousPosts", "recentPosts", "posts")
MAX_SNIPPET_CHARS: Final[int] = 300
# Epoch values above this are milliseconds rather than seconds.
_EPOCH_MILLIS_THRESHOLD: Final[int] = 10_000_000_000


@dataclass(frozen=True)
class ProofFetchContext:
    """Configuration bundle for proof fetching."""

    api_token: str | None
    cookies: str | None
    actor_id: str
    base_url: str
    timeout_seconds: float

    @classmethod
    def from_settings(cls, config: Settings) -> "ProofFetchContext":
        return cls(
            api_token=config.apify_api_token,
            cookies=config.apify_cookies,
            actor_id=config.apify_actor_id,
            base_url=config.apify_base_url,
            timeout_seconds=config.upstream_timeout_seconds,
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProofFetcher:
    """Runs the scraping actor for a proof URL and normalizes its first record."""

    def __init__(
        self,
        context: ProofFetchContext,
        *,
        client: ActorClient | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._context = context
        self._client = client
        self._clock = clock

    async def fetch_proof(self, proof_url: str) -> FetchResult:
        cookies = load_cookies(self._context.cookies)
        client = self._ensure_client()
        run_input = {
            "startUrls": [{"url": proof_url}],
            "resultsLimit": 1,
            "cookie": cookies,
        }

        start = time.perf_counter()
        try:
            items = await client.run_actor(self._context.actor_id, run_input)
        except ApifyError as exc:
            metrics.increment("proof_fetch.errors", tags={"code": exc.code})
            logger.error("proof_fetch.actor_error", extra={"url": proof_url, "code": exc.code})
            raise UpstreamError(
                str(exc),
                status_code=exc.status_code,
                body=exc.body,
            ) from exc
        finally:
            metrics.timing("proof_fetch.latency_ms", (time.perf_counter() - start) * 1000)

        if not items:
            metrics.increment("proof_fetch.empty")
            logger.warning("proof_fetch.no_data", extra={"url": proof_url})
            raise UpstreamError(
                "No data returned from scraper for this URL.",
                status_code=404,
                code="404_PROOF_NOT_FOUND",
            )

        metrics.increment("proof_fetch.success")
        return FetchResult(
            url=proof_url,
            fetched_at=self._clock(),
            raw_data=normalize_post(items[0]),
        )

    def _ensure_client(self) -> ActorClient:
        if self._client:
            return self._client
        if not self._context.api_token:
            raise ConfigurationError("Missing APIFY_API_TOKEN on server.")
        self._client = ApifyActorClient(
            self._context.api_token,
            base_url=self._context.base_url,
            timeout=self._context.timeout_seconds,
        )
        return self._client


def load_cookies(raw: str | None) -> list[dict[str, Any]]:
    """Parse the session-cookie JSON, rejecting anything but a non-empty list of objects."""
    if not raw or not raw.strip():
        raise ConfigurationError("Missing APIFY_COOKIES on server.")
    try:
        cookies = json.loads(raw)
    except ValueError as exc:
        raise ConfigurationError("APIFY_COOKIES is not valid JSON.") from exc
    if not isinstance(cookies, list) or not cookies:
        raise ConfigurationError("APIFY_COOKIES must be a non-empty JSON list of cookie records.")
    if not all(isinstance(cookie, dict) for cookie in cookies):
        raise ConfigurationError("Every APIFY_COOKIES entry must be a JSON object.")
    return cookies


def normalize_post(item: Mapping[str, Any]) -> RawPostData:
    """Map an actor dataset item onto the fields the analyzer consumes."""
    return RawPostData(
        posted_at_iso=_post_date(item),
        post_text=_first_text(item, POST_TEXT_KEYS),
        previous_posts=_previous_posts(item),
    )


def _post_date(item: Mapping[str, Any]) -> str | None:
    for key in POST_DATE_KEYS:
        value = item.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            seconds = value / 1000 if value > _EPOCH_MILLIS_THRESHOLD else value
            try:
                return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")
            except (OverflowError, OSError, ValueError):
                continue
        return str(value).strip() or None
    return None


def _first_text(item: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _previous_posts(item: Mapping[str, Any]) -> tuple[str, ...]:
    for key in PREVIOUS_POST_KEYS:
        entries = item.get(key)
        if not isinstance(entries, list):
            continue
        snippets: list[str] = []
        for entry in entries:
            if isinstance(entry, str):
                text = entry.strip()
            elif isinstance(entry, Mapping):
                text = _first_text(entry, POST_TEXT_KEYS) or ""
            else:
                continue
            if text:
                snippets.append(text[:MAX_SNIPPET_CHARS])
        return tuple(snippets)
    return ()


_FETCHER_INSTANCE: ProofFetcher | None = None


def get_proof_fetcher() -> ProofFetcher:
    """Singleton accessor used by API routes."""
    global _FETCHER_INSTANCE  # noqa: PLW0603
    if _FETCHER_INSTANCE is None:
        _FETCHER_INSTANCE = ProofFetcher(ProofFetchContext.from_settings(settings))
    return _FETCHER_INSTANCE
