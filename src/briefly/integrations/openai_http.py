"""OpenAI-compatible HTTP adapters for embeddings and image generation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
from loguru import logger

from briefly.errors import EmbeddingError, ProviderError

DEFAULT_API_BASE = "https://api.openai.com/v1"


class _JsonApi:
    def __init__(
        self,
        *,
        api_base: str | None,
        api_key: str | None,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_base = (api_base or DEFAULT_API_BASE).rstrip("/")
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
            response = await client.post(f"{self._api_base}{path}", json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        if not isinstance(data, dict):
            raise ProviderError(f"unexpected response shape from {path}")
        return data


class HttpEmbeddingProvider:
    """Embeddings through an OpenAI-compatible ``/embeddings`` endpoint."""

    def __init__(
        self,
        *,
        model: str,
        api_base: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._api = _JsonApi(api_base=api_base, api_key=api_key, timeout_seconds=timeout_seconds, transport=transport)

    async def embed(self, text: str) -> list[float]:
        try:
            data = await self._api.post("/embeddings", {"model": self._model, "input": text})
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"embedding request failed: {exc!s}") from exc
        items = data.get("data")
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            raise EmbeddingError("embedding response carried no vectors")
        vector = items[0].get("embedding")
        if not isinstance(vector, list) or not vector:
            raise EmbeddingError("embedding response carried an empty vector")
        return [float(value) for value in vector]


class HttpImageBackend:
    """Image generation through OpenAI-compatible ``/images`` endpoints.

    Plain prompts go to ``/images/generations``; prompts with reference images
    go to ``/images/edits``.
    """

    def __init__(
        self,
        *,
        model: str,
        api_base: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._api = _JsonApi(api_base=api_base, api_key=api_key, timeout_seconds=timeout_seconds, transport=transport)

    async def generate(self, prompt: str, reference_images: Sequence[str] = ()) -> list[str]:
        payload: dict[str, Any] = {"model": self._model, "prompt": prompt, "n": 1}
        path = "/images/generations"
        if reference_images:
            path = "/images/edits"
            payload["images"] = [{"image_url": ref} for ref in reference_images]
        try:
            data = await self._api.post(path, payload)
        except httpx.HTTPError as exc:
            raise ProviderError(f"image request failed: {exc!s}") from exc
        media = extract_media(data)
        logger.debug("image.backend.done path={} media={}", path, len(media))
        return media


def extract_media(data: dict[str, Any]) -> list[str]:
    media: list[str] = []
    items = data.get("data")
    if not isinstance(items, list):
        return media
    for item in items:
        if not isinstance(item, dict):
            continue
        encoded = item.get("b64_json")
        url = item.get("url")
        if isinstance(encoded, str) and encoded:
            media.append(f"data:image/png;base64,{encoded}")
        elif isinstance(url, str) and url:
            media.append(url)
    return media
