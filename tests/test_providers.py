"""Tests for the OpenAI provider's request shape and error mapping."""

import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from app.core.errors import ProviderError
from app.services.prompts import ArticleLength
from app.services.providers import OpenAIProvider

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _fake_client(*, completion=None, image=None, speech=None, error=None):
    recorded = {}

    async def create_completion(**kwargs):
        recorded["chat"] = kwargs
        if error:
            raise error
        return completion

    async def generate_image(**kwargs):
        recorded["image"] = kwargs
        if error:
            raise error
        return image

    async def create_speech(**kwargs):
        recorded["speech"] = kwargs
        if error:
            raise error
        return speech

    client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create_completion)),
        images=SimpleNamespace(generate=generate_image),
        audio=SimpleNamespace(speech=SimpleNamespace(create=create_speech)),
    )
    return client, recorded


def _completion(content, tokens=42):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=tokens),
    )


@pytest.fixture
def openai_provider():
    return OpenAIProvider(api_key="sk-test", text_model="gpt-test")


def test_generate_text_requests_json_with_length_budget(openai_provider):
    openai_provider.client, recorded = _fake_client(completion=_completion('{"title": "x"}'))
    reply = asyncio.run(openai_provider.generate_text("system", "user prompt", ArticleLength.LONG))

    assert reply == '{"title": "x"}'
    chat = recorded["chat"]
    assert chat["model"] == "gpt-test"
    assert chat["response_format"] == {"type": "json_object"}
    assert chat["max_tokens"] == 2000
    assert chat["temperature"] == 0.7
    assert chat["messages"][0] == {"role": "system", "content": "system"}
    assert openai_provider.total_tokens == 42


def test_empty_completion_is_a_text_error(openai_provider):
    openai_provider.client, _ = _fake_client(completion=_completion(None))
    with pytest.raises(ProviderError) as exc:
        asyncio.run(openai_provider.generate_text("s", "u"))
    assert exc.value.stage == "text"
    assert exc.value.public_message == "Failed to generate article text"


def test_connection_errors_are_retryable(openai_provider):
    openai_provider.client, _ = _fake_client(error=openai.APIConnectionError(request=REQUEST))
    with pytest.raises(ProviderError) as exc:
        asyncio.run(openai_provider.generate_text("s", "u"))
    assert exc.value.retryable


def test_client_errors_are_not_retryable(openai_provider):
    error = openai.BadRequestError("bad", response=httpx.Response(400, request=REQUEST), body=None)
    openai_provider.client, _ = _fake_client(error=error)
    with pytest.raises(ProviderError) as exc:
        asyncio.run(openai_provider.generate_image("a prompt"))
    assert exc.value.stage == "image"
    assert not exc.value.retryable


def test_server_errors_are_retryable(openai_provider):
    error = openai.InternalServerError("boom", response=httpx.Response(503, request=REQUEST), body=None)
    openai_provider.client, _ = _fake_client(error=error)
    with pytest.raises(ProviderError) as exc:
        asyncio.run(openai_provider.synthesize_speech("hello"))
    assert exc.value.stage == "audio"
    assert exc.value.retryable


def test_generate_image_returns_url(openai_provider):
    image = SimpleNamespace(data=[SimpleNamespace(url="https://img.example.com/1.png")])
    openai_provider.client, recorded = _fake_client(image=image)
    assert asyncio.run(openai_provider.generate_image("p")) == "https://img.example.com/1.png"
    assert recorded["image"]["n"] == 1


def test_generate_image_without_url_fails(openai_provider):
    openai_provider.client, _ = _fake_client(image=SimpleNamespace(data=[]))
    with pytest.raises(ProviderError):
        asyncio.run(openai_provider.generate_image("p"))


def test_synthesize_speech_returns_mp3_bytes(openai_provider):
    openai_provider.client, recorded = _fake_client(speech=SimpleNamespace(content=b"ID3..."))
    assert asyncio.run(openai_provider.synthesize_speech("hello")) == b"ID3..."
    assert recorded["speech"]["input"] == "hello"
    assert recorded["speech"]["response_format"] == "mp3"
