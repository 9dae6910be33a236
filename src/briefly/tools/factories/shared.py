"""Shared tool input models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ClockInput(BaseModel):
    """Get the current local time for a city or country."""

    location: str = Field(..., description='The city or country, e.g. "Paris" or "Nigeria"')


class WebFetchInput(BaseModel):
    """Fetch a web page and return its readable text."""

    url: str = Field(..., description="The full URL of the page to fetch")


class ImageGenerateInput(BaseModel):
    """Generate one or more images from a text prompt."""

    prompt: str = Field(..., min_length=1, description="A detailed description of the image to generate")
    style: str | None = Field(default=None, description="Optional visual style, e.g. 'watercolor'")
    aspect_ratio: str | None = Field(default=None, description="Optional aspect ratio, e.g. '16:9'")
    reference_images: list[str] = Field(
        default_factory=list,
        description="Optional reference images as URLs or data URIs",
    )
    count: int = Field(default=1, ge=1, le=4, description="Number of images to generate")


class MemorySaveInput(BaseModel):
    """Save a durable takeaway about the user for future conversations."""

    takeaway: str = Field(
        ...,
        min_length=1,
        description="One concise sentence, e.g. 'User prefers responses in a witty tone'",
    )
