"""Client for running Apify scraping actors synchronously."""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

import httpx


class ApifyError(RuntimeError):
    """Base error for Apify client failures."""

    def __init__(
        self,
        message: str,
        code: str = "APIFY_ERROR",
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.body = body


class ApifyTimeoutError(ApifyError):
    """Raised when the actor run does not finish before the request times out."""

    def __init__(self, message: str = "Apify actor run timed out") -> None:
        super().__init__(message, code="APIFY_TIMEOUT", status_code=504)


class ApifySchemaError(ApifyError):
    """Raised when the dataset response is not a JSON list of objects."""

    def __init__(self, message: str = "Unexpected Apify dataset schema", *, body: str | None = None) -> None:
        super().__init__(message, code="APIFY_SCHEMA_ERR", body=body)


class ActorClient(Protocol):
    """Contract for running an actor and collecting its dataset items."""

    async def run_actor(self, actor_id: str, run_input: dict[str, Any]) -> list[dict[str, Any]]:
        ...


class ApifyActorClient:
    """Minimal Apify API client."""

    def __init__(
        self,
        api_token: str,
        *,
        base_url: str = "https://api.apify.com",
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_token:
            raise ValueError("APIFY_API_TOKEN is required to create an ApifyActorClient.")
        self._api_token = api_token
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_http_client:
            await self._http.aclose()

    async def run_actor(self, actor_id: str, run_input: dict[str, Any]) -> list[dict[str, Any]]:
        """Run an actor to completion and return its default dataset items."""
        path = f"/v2/acts/{quote(actor_id, safe='~')}/run-sync-get-dataset-items"
        headers = {"Authorization": f"Bearer {self._api_token}"}

        try:
            response = await self._http.post(path, json=run_input, headers=headers)
        except httpx.TimeoutException as exc:
            raise ApifyTimeoutError() from exc
        except httpx.HTTPError as exc:
            raise ApifyError(f"HTTP error calling Apify: {exc}", status_code=502) from exc

        if response.status_code in (408, 504):
            raise ApifyTimeoutError()

        if response.status_code >= 400:
            detail = response.text[:500]
            raise ApifyError(
                f"Apify actor run failed: {response.status_code}",
                status_code=response.status_code,
                body=detail,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ApifySchemaError("Failed to decode Apify dataset JSON.", body=response.text[:500]) from exc

        if not isinstance(data, list):
            raise ApifySchemaError("Apify dataset response must be a JSON list.")
        if not all(isinstance(item, dict) for item in data):
            raise ApifySchemaError("Entries in the Apify dataset must be JSON objects.")
        return data

    async def __aenter__(self) -> "ApifyActorClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
