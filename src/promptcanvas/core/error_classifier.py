"""Classification of raw provider failure text.

The provider reports failures as plain strings, so quota detection is a
substring scan and the retry delay is read from the human-readable
``"Please retry in <seconds>s"`` hint.  Callers depend only on the
:class:`ErrorClassifier` protocol; a classifier built on structured provider
error codes can replace :class:`TextErrorClassifier` without touching them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

QUOTA_MARKERS = ("429", "quota", "Quota exceeded")
DEFAULT_RETRY_AFTER_MILLIS = 60_000

_RETRY_PATTERN = re.compile(r"Please retry in (\d+(?:\.\d+)?)s")


@dataclass(frozen=True)
class QuotaOutcome:
    """Transient quota or rate-limit failure."""

    retry_after_millis: int
    message: str = ""


@dataclass(frozen=True)
class OtherOutcome:
    """Any other provider failure; ``message`` is the original text."""

    message: str


ErrorOutcome = QuotaOutcome | OtherOutcome


class ErrorClassifier(Protocol):
    def classify(self, error_message: str | None) -> ErrorOutcome: ...


def extract_retry_after_millis(error_message: str) -> int | None:
    """Read the retry delay from a provider error message.

    Args:
        error_message: Raw provider error text.

    Returns:
        Delay in milliseconds, or ``None`` if the text carries no delay hint.
    """
    match = _RETRY_PATTERN.search(error_message)
    if match is None:
        return None
    return int(round(float(match.group(1)) * 1000))


def classify_error(error_message: str | None) -> ErrorOutcome:
    """Classify a raw provider error message.

    Args:
        error_message: Raw provider error text (``None`` is treated as empty).

    Returns:
        :class:`QuotaOutcome` if the text contains ``"429"``, ``"quota"`` or
        ``"Quota exceeded"`` (case-sensitive), otherwise :class:`OtherOutcome`
        carrying the message unmodified.

    Examples:
        >>> classify_error("429 Quota exceeded. Please retry in 12.5s")
        QuotaOutcome(retry_after_millis=12500, message='429 Quota exceeded. Please retry in 12.5s')
        >>> classify_error("500 internal error")
        OtherOutcome(message='500 internal error')
    """
    message = error_message or ""
    if not any(marker in message for marker in QUOTA_MARKERS):
        return OtherOutcome(message)

    retry_after = extract_retry_after_millis(message)
    if retry_after is None:
        logger.debug("Quota error without retry hint; using fallback delay")
        retry_after = DEFAULT_RETRY_AFTER_MILLIS
    return QuotaOutcome(retry_after_millis=retry_after, message=message)


class TextErrorClassifier:
    """Default :class:`ErrorClassifier` based on substring matching."""

    def classify(self, error_message: str | None) -> ErrorOutcome:
        return classify_error(error_message)
