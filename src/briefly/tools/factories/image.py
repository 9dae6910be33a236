"""Image synthesis tool factory."""

from __future__ import annotations

import asyncio

from loguru import logger
from republic import Tool, tool_from_model

from briefly.errors import ImageSynthesisError
from briefly.providers import ImageBackend
from briefly.tools.factories.shared import ImageGenerateInput


def build_image_prompt(prompt: str, *, style: str | None = None, aspect_ratio: str | None = None) -> str:
    parts = [prompt.strip()]
    if style and style.strip():
        parts.append(style.strip())
    if aspect_ratio and aspect_ratio.strip():
        parts.append(f"aspect ratio {aspect_ratio.strip()}")
    return ", ".join(parts)


class ImageSynthesizer:
    """Fans a prompt out to the backend ``count`` times and gathers the media."""

    def __init__(self, backend: ImageBackend) -> None:
        self._backend = backend

    async def synthesize(self, params: ImageGenerateInput) -> dict[str, list[str]]:
        prompt = build_image_prompt(params.prompt, style=params.style, aspect_ratio=params.aspect_ratio)
        results = await asyncio.gather(
            *(self._backend.generate(prompt, params.reference_images) for _ in range(params.count)),
            return_exceptions=True,
        )

        media: list[str] = []
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning("tool.image.partial_failure error={}", result)
                continue
            media.extend(ref for ref in result if ref)

        if not media:
            raise ImageSynthesisError(
                "Image generation failed to return any images. This may be due to a safety policy "
                "violation in the prompt or a network issue."
            )
        logger.info("tool.image.done requested={} returned={}", params.count, len(media))
        return {"images": media}


def create_image_tool(backend: ImageBackend) -> Tool:
    """Create the image synthesis tool backed by *backend*."""
    synthesizer = ImageSynthesizer(backend)

    async def _handler(params: ImageGenerateInput) -> dict[str, list[str]]:
        return await synthesizer.synthesize(params)

    return tool_from_model(
        ImageGenerateInput,
        _handler,
        name="image.generate",
        description=(
            'Generates images from a text prompt. Use this when the user asks to "create an image", '
            '"draw a picture", "generate a photo", or similar requests for visual content.'
        ),
    )
