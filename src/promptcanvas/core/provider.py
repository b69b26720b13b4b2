"""Image provider collaborators.

The orchestrator talks to the image model through the :class:`ImageProvider`
protocol: one synchronous call per request, returning the provider's raw
response envelope or raising :class:`~promptcanvas.core.errors.ProviderError`
with the provider's message text.

Implementations
---------------
GeminiImageProvider
    Calls ``client.models.generate_content`` from the ``google-genai`` SDK.
    The user turn holds the prompt text followed by the optional reference
    image; the brand instruction travels as ``system_instruction``.
PlaceholderImageProvider
    Offline stand-in enabled with ``PROMPTCANVAS_MOCK_PROVIDER=true``.  It
    renders a brand-coloured PNG with Pillow and wraps it in the same
    response type the SDK returns, so the rest of the pipeline runs
    unchanged.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from PIL import Image, ImageDraw

from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import ProviderError
from promptcanvas.core.models import ProviderRequest

logger = logging.getLogger(__name__)

BRAND_PRIMARY = (0xFF, 0xCA, 0x00)
BRAND_SECONDARY = (0x00, 0x00, 0x00)


class ImageProvider(Protocol):
    def generate(self, request: ProviderRequest, timeout: float | None = None) -> Any: ...


def build_contents(request: ProviderRequest) -> list[types.Content]:
    """Translate a :class:`ProviderRequest` into the SDK's user turn."""
    parts = [types.Part.from_text(text=request.prompt)]
    if request.reference_image is not None:
        parts.append(
            types.Part.from_bytes(
                data=request.reference_image.data,
                mime_type=request.reference_image.mime_type,
            )
        )
    return [types.Content(role="user", parts=parts)]


def build_generate_config(
    request: ProviderRequest, timeout: float | None = None
) -> types.GenerateContentConfig:
    """Build the request config carrying the system instruction and timeout."""
    config_kwargs: dict[str, Any] = {
        "system_instruction": types.Content(
            role="user",
            parts=[types.Part.from_text(text=request.system_instruction)],
        ),
    }
    if timeout is not None:
        # HttpOptions.timeout is expressed in milliseconds.
        config_kwargs["http_options"] = types.HttpOptions(timeout=int(timeout * 1000))
    return types.GenerateContentConfig(**config_kwargs)


class GeminiImageProvider:
    """:class:`ImageProvider` backed by the Gemini API."""

    def __init__(self, api_key: str | None, model: str, client: genai.Client | None = None):
        """Initialize the provider.

        Args:
            api_key: Gemini API key, used only when ``client`` is omitted.
            model: Model identifier, e.g. ``gemini-3-pro-image-preview``.
            client: Pre-built SDK client.
        """
        self.model = model
        self._client = client or genai.Client(api_key=api_key)

    def generate(self, request: ProviderRequest, timeout: float | None = None) -> Any:
        mode = "reference image" if request.reference_image else "text only"
        logger.info(f"Requesting image from {self.model} ({mode})")

        try:
            return self._client.models.generate_content(
                model=self.model,
                contents=build_contents(request),
                config=build_generate_config(request, timeout),
            )
        except genai_errors.APIError as e:
            logger.warning(f"Provider error from {self.model}: {e}")
            raise ProviderError(str(e)) from e
        except httpx.TimeoutException as e:
            logger.warning(f"Provider call to {self.model} timed out after {timeout}s")
            raise ProviderError(f"provider call timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Provider call to {self.model} failed: {e}")
            raise ProviderError(f"provider call failed: {e}") from e


class PlaceholderImageProvider:
    """:class:`ImageProvider` that renders a local placeholder image."""

    def __init__(self, size: int = 512):
        self.size = size

    def _render(self, prompt: str) -> bytes:
        image = Image.new("RGB", (self.size, self.size), color=BRAND_PRIMARY)
        draw = ImageDraw.Draw(image)
        margin = self.size // 8
        draw.rectangle(
            (margin, margin, self.size - margin, self.size - margin),
            outline=BRAND_SECONDARY,
            width=max(2, self.size // 64),
        )
        # Only the prompt length is encoded; the prompt text never appears.
        bar_width = min(self.size - 2 * margin, len(prompt) * 4)
        draw.rectangle(
            (margin, self.size - margin - 12, margin + bar_width, self.size - margin - 4),
            fill=BRAND_SECONDARY,
        )
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def generate(self, request: ProviderRequest, timeout: float | None = None) -> Any:
        logger.info("Rendering placeholder image (mock provider)")
        return types.GenerateContentResponse(
            candidates=[
                types.Candidate(
                    content=types.Content(
                        role="model",
                        parts=[
                            types.Part(
                                inline_data=types.Blob(
                                    mime_type="image/png",
                                    data=self._render(request.prompt),
                                )
                            )
                        ],
                    )
                )
            ]
        )


def provider_from_config(config: PromptCanvasConfig) -> ImageProvider:
    """Build the provider selected by ``config.mock_provider``."""
    if config.mock_provider:
        return PlaceholderImageProvider()
    return GeminiImageProvider(api_key=config.google_api_key, model=config.image_model)
