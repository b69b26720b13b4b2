"""Popularity-ranked, paginated asset catalog.

Pagination helpers follow the gallery conventions used elsewhere in the
project: the page index is clamped to valid bounds so a listing requested
after deletes still lands on a real page.  Page indices are 0-based; the
page-number window exposed for navigation carries both the 0-based index
and the 1-based number shown to users.
"""

from __future__ import annotations

import logging
import math

from promptcanvas.core.asset_db import AssetDB
from promptcanvas.core.blob_store import BlobStore
from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import ValidationError
from promptcanvas.core.models import Asset, AssetView, CatalogPage, PageLink

logger = logging.getLogger(__name__)

PAGE_WINDOW = 5
DOWNLOAD_PREFIX = "/download/"


def download_path(blob_key: str) -> str:
    """Raw locator served by the download route; used when signing fails."""
    return f"{DOWNLOAD_PREFIX}{blob_key}"


def total_pages_for(total_items: int, page_size: int) -> int:
    """Return ``ceil(total_items / page_size)``."""
    return math.ceil(total_items / page_size)


def page_window(page: int, total_pages: int, width: int = PAGE_WINDOW) -> list[PageLink]:
    """Compute the visible page-number buttons around the current page.

    The window is centred on the current page, clamped to
    ``[1, total_pages]`` and shifted left when it would run past the last
    page.

    Args:
        page: Current 0-based page index.
        total_pages: Total number of pages.
        width: Number of buttons to show.

    Returns:
        One :class:`PageLink` per visible page, in ascending order.
    """
    current = page + 1
    start = max(1, current - width // 2)
    end = min(total_pages, start + width - 1)
    if end - start < width - 1:
        start = max(1, end - (width - 1))

    return [
        PageLink(page_number=number - 1, display_number=number, is_current=number == current)
        for number in range(start, end + 1)
    ]


class CatalogService:
    """Build catalog listings and per-viewer favorite annotations."""

    def __init__(self, config: PromptCanvasConfig, asset_db: AssetDB, blob_store: BlobStore):
        self.config = config
        self.asset_db = asset_db
        self.blob_store = blob_store

    def display_url(self, blob_key: str) -> str:
        """Signed display URL for an asset, or its raw locator if signing fails."""
        url = self.blob_store.sign(blob_key, self.config.signed_url_ttl_seconds)
        if url is None:
            logger.debug(f"No signed URL for {blob_key}; using {download_path(blob_key)}")
            return download_path(blob_key)
        return url

    def to_view(self, asset: Asset, is_favorited: bool) -> AssetView:
        return AssetView(
            image_url=self.display_url(asset.blob_key),
            download_path=download_path(asset.blob_key),
            blob_key=asset.blob_key,
            prompt=asset.prompt,
            creator_email=asset.creator_email,
            favorite_count=asset.favorite_count,
            is_favorited=is_favorited,
        )

    def list(
        self,
        page: int = 0,
        page_size: int | None = None,
        viewer_email: str | None = None,
    ) -> CatalogPage:
        """Return one page of the catalog, most favorited first.

        Args:
            page: 0-based page index; clamped to the available pages.
            page_size: Items per page; defaults to ``config.default_page_size``
                and is capped at ``config.max_page_size``.
            viewer_email: Viewer whose favorites are flagged.  Blank or
                ``None`` flags nothing.

        Returns:
            The requested :class:`CatalogPage`.

        Raises:
            ValidationError: If ``page_size`` is smaller than 1.
        """
        if page_size is None:
            page_size = self.config.default_page_size
        if page_size < 1:
            raise ValidationError(f"Page size must be at least 1, got {page_size}")
        page_size = min(page_size, self.config.max_page_size)

        total_items, resolved_page, rows = self.asset_db.read_page(
            page, page_size, viewer_email=viewer_email
        )
        total_pages = total_pages_for(total_items, page_size)

        return CatalogPage(
            items=[self.to_view(asset, is_favorited) for asset, is_favorited in rows],
            page=resolved_page,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
            page_numbers=page_window(resolved_page, total_pages),
        )

    def get_favorites(self, viewer_email: str | None) -> list[AssetView]:
        """Return every asset the viewer has favorited, newest favorite first."""
        return [self.to_view(asset, True) for asset in self.asset_db.list_favorites(viewer_email)]
