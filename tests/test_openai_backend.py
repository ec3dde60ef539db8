from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from adapters.openai_backend import OpenAIChatBackend
from core.errors import ClassifierError


def _call(handler, request: dict) -> dict:
    async def _run() -> dict:
        backend = OpenAIChatBackend(
            api_key="sk-test",
            model="gpt-4o-mini",
            base_url="https://llm.example/",
            transport=httpx.MockTransport(handler),
        )
        try:
            return await backend.complete(request)
        finally:
            await backend.close()

    return asyncio.run(_run())


def test_posts_chat_completion() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "news"}}]})

    result = _call(handler, {"messages": [{"role": "user", "content": "hi"}], "max_tokens": 10})

    assert result["choices"][0]["message"]["content"] == "news"
    request = seen[0]
    assert str(request.url) == "https://llm.example/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o-mini"
    assert body["max_tokens"] == 10


def test_http_error_raises_classifier_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="rate limited")

    with pytest.raises(ClassifierError, match="429"):
        _call(handler, {"messages": []})


def test_transport_error_raises_classifier_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ClassifierError):
        _call(handler, {"messages": []})


def test_invalid_json_raises_classifier_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    with pytest.raises(ClassifierError):
        _call(handler, {"messages": []})
