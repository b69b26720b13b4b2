"""PromptCanvas - FastAPI Application.

This module is the entry point for the web application.  It defines the
FastAPI ``app`` instance, the JSON routes that expose the core operations,
and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Services** (orchestrator, catalog, favorites, blob store, asset
  database) are built once in the lifespan handler and kept on
  ``app.state.services``.
- **Routes** are plain ``def`` functions; FastAPI runs them in its thread
  pool because the provider call and storage I/O block.
- **Errors** raised by the core are typed and translated to HTTP responses
  by the exception handlers below; routes never catch them.
- Login, sessions and page rendering live outside this service; the viewer
  identity is passed explicitly.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
POST      ``/api/generate``             Generate and store an image
GET       ``/api/assets``               Popularity-ranked catalog page
POST      ``/api/favourites/toggle``    Toggle a viewer's favourite
GET       ``/api/favourites``           A viewer's favourites
POST      ``/api/viewers``              Register a viewer (idempotent)
GET       ``/download/{blob_key}``      Raw image bytes (unsigned fallback)
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    promptcanvas

Direct invocation::

    python -m promptcanvas.api.main
"""

from __future__ import annotations

import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from promptcanvas import __version__
from promptcanvas.api.models import (
    AssetViewResponse,
    CatalogPageResponse,
    GenerateRequest,
    GenerateResponse,
    ToggleFavouriteRequest,
    ToggleFavouriteResponse,
    ViewerRequest,
)
from promptcanvas.core.asset_db import AssetDB
from promptcanvas.core.blob_store import BlobStore, blob_store_from_config, content_type_for_key
from promptcanvas.core.catalog import CatalogService
from promptcanvas.core.config import PromptCanvasConfig, config
from promptcanvas.core.errors import (
    GenerationFailed,
    NotFound,
    QuotaExceeded,
    StorageFailed,
    ValidationError,
)
from promptcanvas.core.favorites import FavoriteToggle
from promptcanvas.core.orchestrator import GenerationOrchestrator, normalize_reference_image
from promptcanvas.core.provider import ImageProvider, provider_from_config

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Core services shared by all requests."""

    asset_db: AssetDB
    blob_store: BlobStore
    orchestrator: GenerationOrchestrator
    catalog: CatalogService
    favorites: FavoriteToggle


def build_services(
    cfg: PromptCanvasConfig,
    provider: ImageProvider | None = None,
    blob_store: BlobStore | None = None,
) -> Services:
    """Wire the core services from a configuration.

    Args:
        cfg: Application configuration.
        provider: Image provider; built from ``cfg`` when omitted.
        blob_store: Blob store; built from ``cfg`` when omitted.

    Returns:
        The assembled :class:`Services`.
    """
    asset_db = AssetDB(cfg.database_path, timeout=cfg.sqlite_timeout_seconds)
    blob_store = blob_store or blob_store_from_config(cfg)
    provider = provider or provider_from_config(cfg)
    catalog = CatalogService(cfg, asset_db, blob_store)
    return Services(
        asset_db=asset_db,
        blob_store=blob_store,
        orchestrator=GenerationOrchestrator(cfg, provider, blob_store, asset_db),
        catalog=catalog,
        favorites=FavoriteToggle(asset_db, catalog),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the core services on startup unless they were injected already.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(config)
        logger.info(
            f"Services initialised (blob backend: {config.blob_backend}, "
            f"mock provider: {config.mock_provider})"
        )

    yield


app = FastAPI(
    title="PromptCanvas",
    description="Brand-styled image generation with a shared asset catalog.",
    version=__version__,
    lifespan=lifespan,
)


def _services(request: Request) -> Services:
    return request.app.state.services


# ---------------------------------------------------------------------------
# Error translation.
# ---------------------------------------------------------------------------


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})


@app.exception_handler(NotFound)
async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "message": str(exc)})


@app.exception_handler(QuotaExceeded)
async def _quota_exceeded(request: Request, exc: QuotaExceeded) -> JSONResponse:
    retry_seconds = math.ceil(exc.retry_after_millis / 1000)
    return JSONResponse(
        status_code=429,
        headers={"Retry-After": str(retry_seconds)},
        content={
            "success": False,
            "message": f"Image quota exceeded. Try again in {retry_seconds} seconds.",
            "is_quota_exceeded": True,
            "retry_after_millis": exc.retry_after_millis,
        },
    )


@app.exception_handler(GenerationFailed)
async def _generation_failed(request: Request, exc: GenerationFailed) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"success": False, "message": f"Image generation failed: {exc.cause}"},
    )


@app.exception_handler(StorageFailed)
async def _storage_failed(request: Request, exc: StorageFailed) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"success": False, "message": f"Storage failed: {exc.cause}"},
    )


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.post("/api/generate", response_model=GenerateResponse)
def generate_image(req: GenerateRequest, request: Request) -> GenerateResponse:
    """Generate an image from a prompt and an optional reference image.

    Args:
        req: Validated :class:`GenerateRequest` payload.

    Returns:
        The new asset's blob key and display URL.
    """
    services = _services(request)
    reference = normalize_reference_image(req.reference_image_bytes(), req.reference_mime_type)
    blob_key = services.orchestrator.generate(
        req.prompt,
        creator_email=req.creator_email,
        reference_image=reference,
    )
    return GenerateResponse(blob_key=blob_key, image_url=services.catalog.display_url(blob_key))


@app.get("/api/assets", response_model=CatalogPageResponse)
def list_assets(
    request: Request,
    page: int = 0,
    size: int | None = None,
    viewer_email: str | None = None,
) -> CatalogPageResponse:
    """Return a page of the catalog, most favourited first.

    Args:
        page: Page index (0-based).
        size: Items per page; the configured default when omitted.
        viewer_email: Viewer whose favourites are flagged.
    """
    catalog_page = _services(request).catalog.list(
        page=page, page_size=size, viewer_email=viewer_email
    )
    return CatalogPageResponse.from_page(catalog_page)


@app.post("/api/favourites/toggle", response_model=ToggleFavouriteResponse)
def toggle_favourite(req: ToggleFavouriteRequest, request: Request) -> ToggleFavouriteResponse:
    """Toggle the favourite status of an asset for a viewer.

    Raises:
        NotFound: (404) if the asset or the viewer does not exist.
    """
    services = _services(request)
    result = services.favorites.toggle(req.blob_key, req.viewer_email)
    asset = services.asset_db.get_asset(req.blob_key)
    return ToggleFavouriteResponse(
        blob_key=req.blob_key,
        is_favourite=result.is_favorited,
        favourite_count=asset.favorite_count if asset else 0,
    )


@app.get("/api/favourites", response_model=list[AssetViewResponse])
def list_favourites(request: Request, viewer_email: str) -> list[AssetViewResponse]:
    """Return every asset the viewer has favourited."""
    views = _services(request).favorites.get_favorites(viewer_email)
    return [AssetViewResponse.from_view(view) for view in views]


@app.post("/api/viewers")
def register_viewer(req: ViewerRequest, request: Request) -> dict:
    """Create the viewer on first sight; a no-op for known viewers."""
    _services(request).asset_db.ensure_viewer(req.email)
    return {"success": True, "email": req.email.strip()}


@app.get("/download/{blob_key}")
def download_image(blob_key: str, request: Request) -> Response:
    """Stream an image's bytes straight from the blob store.

    Raises:
        NotFound: (404) if no blob exists under ``blob_key``.
    """
    data = _services(request).blob_store.get(blob_key)
    return Response(
        content=data,
        media_type=content_type_for_key(blob_key),
        headers={"Content-Disposition": f'inline; filename="{blob_key}"'},
    )


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~promptcanvas.core.config.config`.
    This function is registered as the ``promptcanvas`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "promptcanvas.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
