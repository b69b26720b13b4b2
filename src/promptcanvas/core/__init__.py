"""Core functionality for image generation and the asset catalog.

This module provides the core components of PromptCanvas:

- **GenerationOrchestrator**: prompt -> provider -> blob store -> catalog row
- **parse_response**: extracts the single image from a provider response
- **classify_error**: maps provider error text to quota / other outcomes
- **CatalogService**: paginated, popularity-ranked listings per viewer
- **FavoriteToggle**: atomic favorite toggling
- **AssetDB**: SQLite storage for assets, viewers and favorites
- **BlobStore**: S3 or local-directory binary storage
- **PromptCanvasConfig**: configuration using Pydantic Settings

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with PROMPTCANVAS_ in .env files
   - Frozen after construction and passed to services explicitly

2. **Collaborator Layer** (provider.py, blob_store.py, asset_db.py):
   - Gemini image provider (google-genai) and an offline placeholder
   - S3 (boto3) and local-directory blob stores
   - SQLite asset repository

3. **Service Layer** (orchestrator.py, catalog.py, favorites.py):
   - Generation pipeline with typed failures (errors.py)
   - Response parsing and error classification helpers

Usage Example
-------------
    from promptcanvas.core import (
        AssetDB, CatalogService, GenerationOrchestrator, PromptCanvasConfig,
        blob_store_from_config, provider_from_config,
    )

    cfg = PromptCanvasConfig(mock_provider=True, blob_backend="local")
    db = AssetDB(cfg.database_path)
    blobs = blob_store_from_config(cfg)
    orchestrator = GenerationOrchestrator(cfg, provider_from_config(cfg), blobs, db)

    key = orchestrator.generate("a lighthouse at dawn", creator_email="a@example.com")
    page = CatalogService(cfg, db, blobs).list(page=0, viewer_email="a@example.com")
"""

from promptcanvas.core.asset_db import AssetDB
from promptcanvas.core.blob_store import (
    BlobStore,
    LocalBlobStore,
    S3BlobStore,
    blob_store_from_config,
)
from promptcanvas.core.catalog import CatalogService
from promptcanvas.core.config import PromptCanvasConfig, config
from promptcanvas.core.error_classifier import (
    ErrorClassifier,
    OtherOutcome,
    QuotaOutcome,
    TextErrorClassifier,
    classify_error,
)
from promptcanvas.core.errors import (
    GenerationCancelled,
    GenerationFailed,
    NotFound,
    PromptCanvasError,
    QuotaExceeded,
    StorageFailed,
    ValidationError,
)
from promptcanvas.core.favorites import FavoriteToggle
from promptcanvas.core.orchestrator import GenerationOrchestrator
from promptcanvas.core.provider import (
    GeminiImageProvider,
    ImageProvider,
    PlaceholderImageProvider,
    provider_from_config,
)
from promptcanvas.core.response_parser import parse_response

__all__ = [
    "AssetDB",
    "BlobStore",
    "CatalogService",
    "ErrorClassifier",
    "FavoriteToggle",
    "GeminiImageProvider",
    "GenerationCancelled",
    "GenerationFailed",
    "GenerationOrchestrator",
    "ImageProvider",
    "LocalBlobStore",
    "NotFound",
    "OtherOutcome",
    "PlaceholderImageProvider",
    "PromptCanvasConfig",
    "PromptCanvasError",
    "QuotaExceeded",
    "QuotaOutcome",
    "S3BlobStore",
    "StorageFailed",
    "TextErrorClassifier",
    "ValidationError",
    "blob_store_from_config",
    "classify_error",
    "config",
    "parse_response",
    "provider_from_config",
]
