"""Domain value types shared across the PromptCanvas core."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

DEFAULT_REFERENCE_MIME_TYPE = "image/jpeg"

_EXTENSION_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".webp": "image/webp",
    ".png": "image/png",
}


def extension_for_mime_type(mime_type: str | None) -> str:
    """Map a provider media type to the file extension used in blob keys.

    Args:
        mime_type: Media type reported by the provider, possibly ``None``.

    Returns:
        ``.jpg`` for anything containing ``"jpeg"``, ``.webp`` for anything
        containing ``"webp"``, otherwise ``.png``.
    """
    if mime_type and "jpeg" in mime_type:
        return ".jpg"
    if mime_type and "webp" in mime_type:
        return ".webp"
    return ".png"


def content_type_for_extension(extension: str) -> str:
    """Return the canonical content type for a blob file extension."""
    return _EXTENSION_CONTENT_TYPES.get(extension.lower(), "image/png")


@dataclass(frozen=True)
class InlineImage:
    """A single binary image extracted from a provider response."""

    data: bytes
    mime_type: str | None = None

    @property
    def extension(self) -> str:
        return extension_for_mime_type(self.mime_type)

    @property
    def filename(self) -> str:
        """Fixed filename used as the suffix of the blob key."""
        return f"generated_image{self.extension}"

    @property
    def content_type(self) -> str:
        return content_type_for_extension(self.extension)


@dataclass(frozen=True)
class ReferenceImage:
    """User-supplied image sent alongside the prompt."""

    data: bytes
    mime_type: str = DEFAULT_REFERENCE_MIME_TYPE


@dataclass(frozen=True)
class ProviderRequest:
    """Everything the provider receives for one generation call.

    The user turn is ``prompt`` followed by ``reference_image`` when present;
    ``system_instruction`` travels as a separate turn.
    """

    prompt: str
    system_instruction: str
    reference_image: ReferenceImage | None = None


@dataclass(frozen=True)
class Asset:
    """One generated image as recorded in the catalog."""

    id: int
    blob_key: str
    prompt: str
    creator_email: str | None
    favorite_count: int = 0
    created_at: str | None = None


@dataclass(frozen=True)
class AssetView:
    """Catalog entry as shown to a particular viewer."""

    image_url: str
    download_path: str
    blob_key: str
    prompt: str
    creator_email: str | None
    favorite_count: int
    is_favorited: bool


@dataclass(frozen=True)
class PageLink:
    """One button in the visible page-number window."""

    page_number: int  # 0-based, for requests
    display_number: int  # 1-based, for display
    is_current: bool


@dataclass
class CatalogPage:
    """A page of catalog entries plus the pagination numbers around it."""

    items: list[AssetView]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    page_numbers: list[PageLink] = field(default_factory=list)

    @property
    def current_page(self) -> int:
        """1-based page number for display."""
        return self.page + 1

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0


class ToggleResult(enum.Enum):
    """Outcome of flipping a viewer's favorite on an asset."""

    TOGGLED_ON = "toggled_on"
    TOGGLED_OFF = "toggled_off"

    @property
    def is_favorited(self) -> bool:
        return self is ToggleResult.TOGGLED_ON
