"""Generation request orchestration.

:class:`GenerationOrchestrator` turns a prompt into a stored, catalogued
asset.  The steps run strictly in sequence:

1. validate the input (no external call on failure)
2. build one :class:`ProviderRequest` with the fixed brand instruction
3. call the provider once; failures are classified, never retried
4. extract the image from the response envelope
5. write the blob under a fresh ``<uuid4>_generated_image.<ext>`` key
6. record the asset metadata and return the key

Metadata is only written after the blob write succeeded, so no asset row
ever points at a missing blob.  The reverse is not guaranteed: if the
metadata write fails after the blob was stored, the blob is left behind and
logged as an orphan.
"""

from __future__ import annotations

import logging
import threading
import uuid

from promptcanvas.core.asset_db import AssetDB
from promptcanvas.core.blob_store import BlobStore
from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.error_classifier import ErrorClassifier, QuotaOutcome, TextErrorClassifier
from promptcanvas.core.errors import (
    GenerationCancelled,
    GenerationFailed,
    ProviderError,
    QuotaExceeded,
    StorageFailed,
    ValidationError,
)
from promptcanvas.core.models import (
    DEFAULT_REFERENCE_MIME_TYPE,
    InlineImage,
    ProviderRequest,
    ReferenceImage,
)
from promptcanvas.core.provider import ImageProvider
from promptcanvas.core.response_parser import parse_response

logger = logging.getLogger(__name__)

NO_IMAGE_DATA = "no image data"


def new_blob_key(image: InlineImage) -> str:
    """Return a globally unique blob key for *image*."""
    return f"{uuid.uuid4()}_{image.filename}"


def normalize_reference_image(
    data: bytes | None, mime_type: str | None = None
) -> ReferenceImage | None:
    """Validate an optional reference image.

    Args:
        data: Raw image bytes, or ``None`` for text-only generation.
        mime_type: Media type of the bytes; defaults to ``image/jpeg``.

    Returns:
        A :class:`ReferenceImage`, or ``None`` when no image was supplied.

    Raises:
        ValidationError: If bytes were supplied but are empty.
    """
    if data is None:
        return None
    if not data:
        raise ValidationError("Reference image is empty")
    return ReferenceImage(data=bytes(data), mime_type=mime_type or DEFAULT_REFERENCE_MIME_TYPE)


class GenerationOrchestrator:
    """Compose, invoke and persist one image generation request.

    Attributes:
        config: Immutable application configuration.
        provider: Image model collaborator.
        blob_store: Binary storage for generated images.
        asset_db: Asset metadata repository.
        classifier: Maps provider error text to a typed outcome.
    """

    def __init__(
        self,
        config: PromptCanvasConfig,
        provider: ImageProvider,
        blob_store: BlobStore,
        asset_db: AssetDB,
        classifier: ErrorClassifier | None = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.blob_store = blob_store
        self.asset_db = asset_db
        self.classifier = classifier or TextErrorClassifier()

    def build_request(
        self, prompt: str, reference_image: ReferenceImage | None = None
    ) -> ProviderRequest:
        """Build the single provider request for a prompt.

        Raises:
            ValidationError: If the prompt or the reference image is empty.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt must not be empty")
        if reference_image is not None and not reference_image.data:
            raise ValidationError("Reference image is empty")
        return ProviderRequest(
            prompt=prompt,
            system_instruction=self.config.system_instruction,
            reference_image=reference_image,
        )

    def generate(
        self,
        prompt: str,
        creator_email: str | None = None,
        reference_image: ReferenceImage | None = None,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> str:
        """Generate an image, store it and record it in the catalog.

        Args:
            prompt: Non-empty text prompt.
            creator_email: Creator identity; empty or ``None`` for anonymous.
            reference_image: Optional image the provider should build on.
            timeout: Provider call timeout in seconds; defaults to
                ``config.provider_timeout_seconds``.
            cancel_event: Checked before the provider call and again once it
                returns; if set, the request is abandoned before any write.

        Returns:
            The blob key of the new asset.

        Raises:
            ValidationError: Empty prompt or empty reference image.
            QuotaExceeded: Provider quota hit; carries ``retry_after_millis``.
            GenerationFailed: Provider error, or no image in the response.
            GenerationCancelled: ``cancel_event`` was set.
            StorageFailed: The blob or metadata write failed.
        """
        request = self.build_request(prompt, reference_image)
        self._check_cancelled(cancel_event)
        if timeout is None:
            timeout = self.config.provider_timeout_seconds

        try:
            envelope = self.provider.generate(request, timeout=timeout)
        except ProviderError as e:
            raise self._classify(str(e)) from e

        image = parse_response(envelope)
        if image is None:
            logger.warning("Provider response contained no image data")
            raise GenerationFailed(NO_IMAGE_DATA)

        self._check_cancelled(cancel_event)
        blob_key = new_blob_key(image)
        self.blob_store.put(blob_key, image.data, image.content_type)

        try:
            self.asset_db.save_asset(blob_key, prompt, creator_email)
        except StorageFailed:
            logger.error(f"Asset metadata not saved; blob {blob_key} is orphaned")
            raise

        logger.info(f"Generated asset {blob_key} for {creator_email or 'anonymous'}")
        return blob_key

    def _classify(self, message: str) -> QuotaExceeded | GenerationFailed:
        outcome = self.classifier.classify(message)
        if isinstance(outcome, QuotaOutcome):
            logger.warning(f"Provider quota exceeded; retry after {outcome.retry_after_millis} ms")
            return QuotaExceeded(message, outcome.retry_after_millis)
        logger.error(f"Provider error: {message}")
        return GenerationFailed(outcome.message)

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Generation cancelled before persistence")
            raise GenerationCancelled()
