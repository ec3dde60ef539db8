"""OpenAI-compatible chat-completion backend.

Implements the core ChatBackendPort over HTTP. The adapter only moves JSON;
timeouts, label mapping and fallbacks live in the core classifier.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from core.errors import ClassifierError

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com"
COMPLETIONS_PATH = "/v1/chat/completions"


class OpenAIChatBackend:
    """Async client for ``POST /v1/chat/completions``."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""

        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete(self, request: dict[str, Any]) -> dict[str, Any]:
        payload = {"model": self._model, **request}
        client = self._get_client()
        try:
            response = await client.post(COMPLETIONS_PATH, json=payload)
        except httpx.TimeoutException as exc:
            raise ClassifierError("Chat completion timed out") from exc
        except httpx.RequestError as exc:
            raise ClassifierError(f"Chat completion request failed: {exc}") from exc

        if response.status_code != 200:
            raise ClassifierError(
                f"Chat completion HTTP {response.status_code}: {response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ClassifierError("Chat completion returned invalid JSON") from exc
