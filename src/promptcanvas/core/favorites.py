"""Viewer favorites: the toggle operation and the favorites listing."""

from promptcanvas.core.asset_db import AssetDB
from promptcanvas.core.catalog import CatalogService
from promptcanvas.core.models import AssetView, ToggleResult


class FavoriteToggle:
    """Flip a viewer's favorite on an asset.

    There is a single transition: Unfavorited <-> Favorited.  Calling
    :meth:`toggle` twice returns the pair to its original state.  Neither the
    asset nor the viewer is ever created here; both must already exist.
    """

    def __init__(self, asset_db: AssetDB, catalog: CatalogService):
        self.asset_db = asset_db
        self.catalog = catalog

    def toggle(self, blob_key: str, viewer_email: str) -> ToggleResult:
        """Toggle favorite status of an asset for a viewer.

        Args:
            blob_key: Key of the asset
            viewer_email: Email of the viewer

        Returns:
            ToggleResult.TOGGLED_ON if now favorited, TOGGLED_OFF otherwise

        Raises:
            NotFound: If the asset or the viewer does not exist
        """
        if self.asset_db.toggle_favorite(blob_key, viewer_email):
            return ToggleResult.TOGGLED_ON
        return ToggleResult.TOGGLED_OFF

    def get_favorites(self, viewer_email: str | None) -> list[AssetView]:
        """List the viewer's favorites; every entry has ``is_favorited=True``."""
        return self.catalog.get_favorites(viewer_email)
