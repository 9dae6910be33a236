"""Application-level exception types for Briefly."""

from __future__ import annotations


class BrieflyError(Exception):
    """Base exception for Briefly."""


class ConfigurationError(BrieflyError):
    """Base exception for configuration and startup validation errors."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when model configuration is missing."""


class InvalidModelFormatError(ConfigurationError):
    """Raised when model format is not provider:model."""


class ProviderError(BrieflyError):
    """Raised when an upstream model provider fails or answers with nothing usable."""


class ModelTimeoutError(ProviderError):
    """Raised when the model does not answer within the configured timeout."""


class EmbeddingError(ProviderError):
    """Raised when the embedding provider cannot produce a vector."""


class ToolError(BrieflyError):
    """Base exception for tool failures that cannot be encoded as tool output."""


class ImageSynthesisError(ToolError):
    """Raised when the image backend returns no media at all."""
