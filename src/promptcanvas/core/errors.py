"""Typed failures raised by the PromptCanvas core.

Every public operation either returns a value or raises one of these
exceptions.  The API layer translates them into HTTP responses; nothing in
the core retries on its own.
"""

from __future__ import annotations


class PromptCanvasError(Exception):
    """Base class for all PromptCanvas failures."""


class ValidationError(PromptCanvasError):
    """User-friendly validation error.

    Raised before any external call is made (empty prompt, empty reference
    image, invalid page size).  The message is intended to be displayed
    directly to the user.
    """

    pass


class NotFound(PromptCanvasError):
    """An asset, viewer or blob referenced by the caller does not exist."""

    pass


class QuotaExceeded(PromptCanvasError):
    """The provider rejected the request because a quota or rate limit was hit.

    Attributes:
        retry_after_millis: Delay the caller should wait before retrying.
    """

    def __init__(self, message: str, retry_after_millis: int):
        super().__init__(message)
        self.retry_after_millis = retry_after_millis


class GenerationFailed(PromptCanvasError):
    """The provider returned no usable image, or failed for a non-quota reason.

    Attributes:
        cause: Human-readable reason, usually the provider's own message.
    """

    def __init__(self, cause: str):
        super().__init__(cause)
        self.cause = cause


class GenerationCancelled(GenerationFailed):
    """The caller cancelled the request before anything was persisted."""

    def __init__(self, cause: str = "generation cancelled"):
        super().__init__(cause)


class StorageFailed(GenerationFailed):
    """A blob or metadata write did not complete."""

    pass


class ProviderError(PromptCanvasError):
    """Raw failure reported by the image provider.

    Only raised across the provider boundary; the orchestrator classifies it
    into :class:`QuotaExceeded` or :class:`GenerationFailed`.
    """

    pass
