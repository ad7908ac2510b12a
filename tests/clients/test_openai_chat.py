from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from app.clients.openai_chat import OpenAIChatClient
from app.services.validation.errors import ConfigurationError, UpstreamError

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class StubCompletions:
    def __init__(self, *, content=None, error: Exception | None = None) -> None:
        self._content = content
        self._error = error
        self.requests: list[dict] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self._error is not None:
            raise self._error
        choices = [] if self._content is None else [SimpleNamespace(message=SimpleNamespace(content=self._content))]
        return SimpleNamespace(choices=choices)


def _client(completions: StubCompletions) -> OpenAIChatClient:
    sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIChatClient("sk-test", sdk_client=sdk)  # type: ignore[arg-type]


async def _complete(client: OpenAIChatClient, *, json_mode: bool = True) -> str:
    return await client.complete(
        system_prompt="system json",
        user_prompt="user",
        model="gpt-test",
        temperature=0.2,
        max_tokens=800,
        json_mode=json_mode,
    )


@pytest.mark.asyncio
async def test_complete_sends_json_mode_request():
    completions = StubCompletions(content='  {"verdict": "GOOD"}  ')

    text = await _complete(_client(completions))

    assert text == '{"verdict": "GOOD"}'
    request = completions.requests[0]
    assert request["messages"] == [
        {"role": "system", "content": "system json"},
        {"role": "user", "content": "user"},
    ]
    assert request["temperature"] == 0.2
    assert request["max_tokens"] == 800
    assert request["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_json_mode_can_be_disabled():
    completions = StubCompletions(content="{}")

    await _complete(_client(completions), json_mode=False)

    assert "response_format" not in completions.requests[0]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, "", "   "])
async def test_missing_content_falls_back_to_empty_object(content):
    text = await _complete(_client(StubCompletions(content=content)))

    assert text == "{}"


@pytest.mark.asyncio
async def test_status_error_becomes_upstream_error_with_body():
    response = httpx.Response(401, text='{"error": "invalid key"}', request=_REQUEST)
    error = APIStatusError("invalid key", response=response, body=None)

    with pytest.raises(UpstreamError) as excinfo:
        await _complete(_client(StubCompletions(error=error)))

    assert excinfo.value.status_code == 401
    assert excinfo.value.body == '{"error": "invalid key"}'


@pytest.mark.asyncio
async def test_connection_error_becomes_bad_gateway():
    error = APIConnectionError(request=_REQUEST)

    with pytest.raises(UpstreamError) as excinfo:
        await _complete(_client(StubCompletions(error=error)))

    assert excinfo.value.status_code == 502


def test_requires_api_key():
    with pytest.raises(ConfigurationError):
        OpenAIChatClient(None)
