"""Model backends behind one interface.

RelayBackend posts a form to the hosted relay and reads plain text back.
OpenAIBackend talks to any OpenAI/DeepSeek-compatible chat-completions API.
The orchestrator only ever sees ModelBackend.complete().
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx
from openai import APIError, AsyncOpenAI

from .config import Settings
from .errors import ModelRequestError
from .models import ModelRequest

logger = logging.getLogger(__name__)


class ModelBackend(ABC):
    @abstractmethod
    async def complete(self, request: ModelRequest) -> str:
        """Return the full assistant reply, tool syntax included.

        Raises ModelRequestError on any transport or API failure.
        """
        ...


class RelayBackend(ModelBackend):
    """Hosted relay: form-encoded request, plain-text response."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def complete(self, request: ModelRequest) -> str:
        form = {"question": request.question, "type": "text"}
        if request.system_context:
            form["system"] = request.system_context

        try:
            if self._client is not None:
                resp = await self._client.post(self.url, data=form, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    resp = await client.post(self.url, data=form, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise ModelRequestError(str(e) or type(e).__name__) from e

        if not resp.is_success:
            raise ModelRequestError(f"HTTP {resp.status_code}")
        return resp.text


class OpenAIBackend(ModelBackend):
    """OpenAI-compatible chat completions with bearer-token auth."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        *,
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        # Failed model calls are surfaced to the user, never retried.
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def complete(self, request: ModelRequest) -> str:
        messages = []
        if request.system_context:
            messages.append({"role": "system", "content": request.system_context})
        messages.append({"role": "user", "content": request.question})

        try:
            response = await self.client.chat.completions.create(
                model=request.params.model,
                messages=messages,
                temperature=request.params.temperature,
                max_tokens=request.params.max_tokens,
                stream=False,
            )
        except APIError as e:
            raise ModelRequestError(e.message or str(e)) from e

        if not response.choices:
            raise ModelRequestError("empty response from model endpoint")
        return response.choices[0].message.content or ""


def create_backend(settings: Settings) -> ModelBackend:
    """Pick the backend from configuration alone."""
    if settings.custom_api_active:
        logger.info("Using OpenAI-compatible endpoint %s", settings.api_base_url)
        return OpenAIBackend(
            api_key=settings.api_key,
            base_url=settings.api_base_url,
            timeout=settings.model_timeout,
        )
    return RelayBackend(settings.relay_chat_url, timeout=settings.model_timeout)
