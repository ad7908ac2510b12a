import json
from datetime import UTC, datetime

import pytest

from app.clients.apify import ApifyError, ApifySchemaError
from app.services.validation.errors import ConfigurationError, UpstreamError
from app.services.validation.proof_fetch import (
    ProofFetchContext,
    ProofFetcher,
    load_cookies,
    normalize_post,
)

NOW = datetime(2024, 1, 10, tzinfo=UTC)
COOKIES = json.dumps([{"name": "c_user", "value": "1000"}, {"name": "xs", "value": "secret"}])
PROOF_URL = "https://facebook.com/wirralbakehouse/posts/1"


class StubActorClient:
    def __init__(self, items=None, *, error: Exception | None = None) -> None:
        self._items = items if items is not None else []
        self._error = error
        self.calls: list[tuple[str, dict]] = []

    async def run_actor(self, actor_id: str, run_input: dict):
        self.calls.append((actor_id, run_input))
        if self._error is not None:
            raise self._error
        return self._items


def _context(**overrides) -> ProofFetchContext:
    payload = {
        "api_token": "apify-token",
        "cookies": COOKIES,
        "actor_id": "apify~facebook-posts-scraper",
        "base_url": "https://api.apify.com",
        "timeout_seconds": 30.0,
    }
    payload.update(overrides)
    return ProofFetchContext(**payload)


@pytest.mark.asyncio
async def test_fetch_proof_normalizes_first_item():
    client = StubActorClient(
        [
            {
                "time": "2024-01-09T18:30:00.000Z",
                "text": "Grand opening this weekend!",
                "previousPosts": [{"text": "Sneak peek of the shop"}, "Hiring bakers"],
            },
            {"time": "2020-01-01T00:00:00Z", "text": "ignored"},
        ]
    )
    fetcher = ProofFetcher(_context(), client=client, clock=lambda: NOW)

    result = await fetcher.fetch_proof(PROOF_URL)

    assert result.url == PROOF_URL
    assert result.fetched_at == NOW
    assert result.raw_data.posted_at_iso == "2024-01-09T18:30:00.000Z"
    assert result.raw_data.post_text == "Grand opening this weekend!"
    assert result.raw_data.previous_posts == ("Sneak peek of the shop", "Hiring bakers")


@pytest.mark.asyncio
async def test_fetch_proof_sends_url_and_cookie_records():
    client = StubActorClient([{"time": "2024-01-09T18:30:00Z"}])
    fetcher = ProofFetcher(_context(), client=client, clock=lambda: NOW)

    await fetcher.fetch_proof(PROOF_URL)

    actor_id, run_input = client.calls[0]
    assert actor_id == "apify~facebook-posts-scraper"
    assert run_input["startUrls"] == [{"url": PROOF_URL}]
    assert run_input["cookie"] == json.loads(COOKIES)


@pytest.mark.asyncio
async def test_empty_dataset_raises_upstream_error():
    fetcher = ProofFetcher(_context(), client=StubActorClient([]), clock=lambda: NOW)

    with pytest.raises(UpstreamError) as excinfo:
        await fetcher.fetch_proof(PROOF_URL)

    assert excinfo.value.code == "404_PROOF_NOT_FOUND"


@pytest.mark.asyncio
async def test_actor_failure_raises_upstream_error():
    error = ApifyError("Apify actor run failed: 402", status_code=402, body="payment required")
    fetcher = ProofFetcher(_context(), client=StubActorClient(error=error), clock=lambda: NOW)

    with pytest.raises(UpstreamError) as excinfo:
        await fetcher.fetch_proof(PROOF_URL)

    assert excinfo.value.status_code == 402
    assert excinfo.value.body == "payment required"


@pytest.mark.asyncio
async def test_unparsable_dataset_propagates_as_upstream_error():
    fetcher = ProofFetcher(
        _context(),
        client=StubActorClient(error=ApifySchemaError("Failed to decode Apify dataset JSON.")),
        clock=lambda: NOW,
    )

    with pytest.raises(UpstreamError):
        await fetcher.fetch_proof(PROOF_URL)


@pytest.mark.asyncio
async def test_missing_token_raises_configuration_error():
    fetcher = ProofFetcher(_context(api_token=None), clock=lambda: NOW)

    with pytest.raises(ConfigurationError):
        await fetcher.fetch_proof(PROOF_URL)


@pytest.mark.asyncio
async def test_bad_cookies_fail_before_calling_actor():
    client = StubActorClient([{"time": "2024-01-09T18:30:00Z"}])
    fetcher = ProofFetcher(_context(cookies="not json"), client=client, clock=lambda: NOW)

    with pytest.raises(ConfigurationError):
        await fetcher.fetch_proof(PROOF_URL)

    assert client.calls == []


@pytest.mark.parametrize(
    "raw",
    [None, "", "   ", "{not json", '{"name": "c_user"}', "[]", '["c_user=1000"]'],
)
def test_load_cookies_rejects_malformed_material(raw):
    with pytest.raises(ConfigurationError):
        load_cookies(raw)


def test_load_cookies_returns_records():
    assert load_cookies(COOKIES) == [{"name": "c_user", "value": "1000"}, {"name": "xs", "value": "secret"}]


@pytest.mark.parametrize(
    ("item", "expected"),
    [
        ({"posted_at_iso": "2024-01-01T00:00:00Z", "time": "ignored"}, "2024-01-01T00:00:00Z"),
        ({"timestamp": 1704067200}, "2024-01-01T00:00:00Z"),
        ({"timestamp": 1704067200000}, "2024-01-01T00:00:00Z"),
        ({"date": "", "publishedAt": "2024-01-02T10:00:00Z"}, "2024-01-02T10:00:00Z"),
        ({"createdAt": "2024-01-03"}, "2024-01-03"),
        ({"text": "no date"}, None),
    ],
)
def test_normalize_post_date_fallbacks(item, expected):
    assert normalize_post(item).posted_at_iso == expected


def test_normalize_post_text_and_history_fallbacks():
    raw = normalize_post(
        {
            "message": "  Now open in Birkenhead  ",
            "posts": [{"content": "x" * 400}, None, 42, {"text": ""}],
        }
    )

    assert raw.post_text == "Now open in Birkenhead"
    assert raw.previous_posts == ("x" * 300,)
