"""Tests for the model backends and backend selection."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs

import httpx
import openai
import pytest

from zenchat.backends import OpenAIBackend, RelayBackend, create_backend
from zenchat.config import Settings
from zenchat.errors import ModelRequestError
from zenchat.models import ModelParams, ModelRequest


def _request(question: str = "hi", system_context: str = "be brief") -> ModelRequest:
    return ModelRequest(
        question=question,
        system_context=system_context,
        params=ModelParams(model="deepseek-chat", temperature=0.3, max_tokens=256),
    )


# --- RelayBackend ---


def test_relay_backend_posts_form_and_returns_text():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["content_type"] = request.headers["content-type"]
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, text="Hello there")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    backend = RelayBackend("https://relay.example/chat", client=client)
    reply = asyncio.run(backend.complete(_request("hi", "be brief")))

    assert reply == "Hello there"
    assert seen["content_type"].startswith("application/x-www-form-urlencoded")
    assert seen["form"] == {"question": ["hi"], "type": ["text"], "system": ["be brief"]}


def test_relay_backend_omits_empty_system():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, text="ok")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    asyncio.run(RelayBackend("https://relay.example/chat", client=client).complete(_request(system_context="")))
    assert "system" not in seen["form"]


def test_relay_backend_non_2xx_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    with pytest.raises(ModelRequestError, match="HTTP 502"):
        asyncio.run(RelayBackend("https://relay.example/chat", client=client).complete(_request()))


def test_relay_backend_transport_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route to host", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    with pytest.raises(ModelRequestError, match="no route to host"):
        asyncio.run(RelayBackend("https://relay.example/chat", client=client).complete(_request()))


# --- OpenAIBackend ---


def _openai_client(content: str | None = "answer") -> MagicMock:
    client = MagicMock()
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


def test_openai_backend_sends_chat_messages():
    client = _openai_client("answer")
    backend = OpenAIBackend(api_key="sk-test", client=client)
    reply = asyncio.run(backend.complete(_request("hi", "be brief")))

    assert reply == "answer"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "deepseek-chat"
    assert kwargs["temperature"] == 0.3
    assert kwargs["max_tokens"] == 256
    assert kwargs["stream"] is False
    assert kwargs["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hi"},
    ]


def test_openai_backend_none_content_is_empty_string():
    backend = OpenAIBackend(api_key="sk-test", client=_openai_client(None))
    assert asyncio.run(backend.complete(_request())) == ""


def test_openai_backend_api_error_raises():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        side_effect=openai.APIConnectionError(request=httpx.Request("POST", "https://api.example"))
    )
    backend = OpenAIBackend(api_key="sk-test", client=client)
    with pytest.raises(ModelRequestError):
        asyncio.run(backend.complete(_request()))


def test_openai_backend_no_choices_raises():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(choices=[]))
    with pytest.raises(ModelRequestError):
        asyncio.run(OpenAIBackend(api_key="sk-test", client=client).complete(_request()))


# --- Selection ---


def test_create_backend_defaults_to_relay():
    backend = create_backend(Settings(_env_file=None))
    assert isinstance(backend, RelayBackend)


def test_create_backend_custom_api_needs_key():
    backend = create_backend(Settings(_env_file=None, use_custom_api=True, api_key=""))
    assert isinstance(backend, RelayBackend)


def test_create_backend_custom_api():
    settings = Settings(_env_file=None, use_custom_api=True, api_key="sk-test")
    backend = create_backend(settings)
    assert isinstance(backend, OpenAIBackend)


def test_openai_backend_does_not_retry_failed_calls():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.url.path)
        return httpx.Response(500, json={"error": {"message": "upstream down"}})

    backend = OpenAIBackend(
        api_key="sk-test",
        base_url="https://api.example/v1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    with pytest.raises(ModelRequestError):
        asyncio.run(backend.complete(_request()))
    assert attempts == ["/v1/chat/completions"]


def test_openai_backend_does_not_retry_transport_errors():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    backend = OpenAIBackend(
        api_key="sk-test",
        base_url="https://api.example/v1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    with pytest.raises(ModelRequestError):
        asyncio.run(backend.complete(_request()))
    assert len(attempts) == 1
