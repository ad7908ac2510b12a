"""Async client for OpenAI chat completions in JSON mode."""

from __future__ import annotations

from typing import Any, Protocol

from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI, OpenAIError

from app.services.validation.errors import ConfigurationError, UpstreamError


class ChatCompletionClient(Protocol):
    """Minimal contract for a single-shot chat completion."""

    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> str:
        ...


class OpenAIChatClient:
    """Thin wrapper around the official OpenAI Chat Completions API."""

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 120.0,
        sdk_client: AsyncOpenAI | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY on server.")
        # Upstream calls are never retried.
        self._client = sdk_client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> str:
        request: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**request)
        except APIStatusError as exc:
            raise UpstreamError(
                "OpenAI API error",
                status_code=exc.status_code,
                body=_response_text(exc),
            ) from exc
        except APITimeoutError as exc:
            raise UpstreamError("OpenAI request timed out", status_code=504, body=str(exc)) from exc
        except APIConnectionError as exc:
            raise UpstreamError("OpenAI connection failed", status_code=502, body=str(exc)) from exc
        except OpenAIError as exc:
            raise UpstreamError("OpenAI request failed", body=str(exc)) from exc

        return _extract_message_text(response)

    async def close(self) -> None:
        await self._client.close()


def _response_text(exc: APIStatusError) -> str:
    try:
        return exc.response.text
    except Exception:  # pragma: no cover - best effort decoding
        return str(exc)


def _extract_message_text(response: Any) -> str:
    """Return the first choice's content, or an empty JSON object when absent."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return "{}"
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if isinstance(content, list):
        return "".join(part.get("text", "") for part in content if isinstance(part, dict)).strip() or "{}"
    if isinstance(content, str) and content.strip():
        return content.strip()
    return "{}"
