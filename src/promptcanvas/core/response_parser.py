"""Extraction of the generated image from a provider response envelope.

The provider response is nested and every level is optional::

    envelope.candidates[0].content.parts[i].inline_data.{mime_type, data}

Safety-filtered or text-only responses may stop at any level, so the
traversal below is a sequence of guarded lookups.  Each step receives the
previous step's value and returns ``None`` when its level is missing or
empty; ``_step`` short-circuits once any step has returned ``None``.  The
parser therefore never raises on a partial envelope.

Selection rules:

- only the **first** candidate is considered
- its parts are scanned in order and the **first** part whose inline blob
  carries non-empty data wins
- at most one image is returned even when several image parts exist

Works on ``google.genai.types.GenerateContentResponse`` objects as well as on
any object exposing the same attribute names.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Callable, Iterable
from functools import reduce
from typing import Any

from promptcanvas.core.models import InlineImage

logger = logging.getLogger(__name__)


def _first(items: Iterable[Any] | None) -> Any | None:
    """Return the first element of *items*, or ``None`` if absent or empty."""
    if not items:
        return None
    return next(iter(items), None)


def _decode(data: Any) -> bytes | None:
    """Normalise inline data to bytes; base64 text is decoded."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data) or None
    if isinstance(data, str) and data:
        try:
            return base64.b64decode(data, validate=True) or None
        except (binascii.Error, ValueError):
            logger.debug("Inline data is not valid base64; skipping part")
    return None


def _inline_image(part: Any) -> InlineImage | None:
    """Return the image carried by *part*, or ``None`` if it carries none."""
    blob = getattr(part, "inline_data", None)
    if blob is None:
        return None
    data = _decode(getattr(blob, "data", None))
    if data is None:
        return None
    return InlineImage(data=data, mime_type=getattr(blob, "mime_type", None) or None)


def _first_inline_image(parts: Iterable[Any] | None) -> InlineImage | None:
    if not parts:
        return None
    return next(filter(None, map(_inline_image, parts)), None)


_LOOKUPS: tuple[Callable[[Any], Any | None], ...] = (
    lambda envelope: _first(getattr(envelope, "candidates", None)),
    lambda candidate: getattr(candidate, "content", None),
    lambda content: getattr(content, "parts", None),
    _first_inline_image,
)


def _step(value: Any | None, lookup: Callable[[Any], Any | None]) -> Any | None:
    return None if value is None else lookup(value)


def parse_response(envelope: Any) -> InlineImage | None:
    """Extract the generated image from a provider response.

    Args:
        envelope: Provider response, possibly ``None`` or partially empty.

    Returns:
        The first inline image of the first candidate, or ``None`` when the
        response carries no image data at any level.
    """
    image = reduce(_step, _LOOKUPS, envelope)
    if image is None:
        logger.debug("Provider response carried no inline image data")
        return None

    logger.debug(
        f"Found inline image: mime_type={image.mime_type}, size={len(image.data)} bytes"
    )
    return image
