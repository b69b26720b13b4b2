"""Configuration management for PromptCanvas.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PROMPTCANVAS_
prefix, allowing deployments to be customised without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PROMPTCANVAS_* prefix)
2. .env file in the project root
3. Default values defined in PromptCanvasConfig

Example .env file:
    PROMPTCANVAS_GOOGLE_API_KEY=...
    PROMPTCANVAS_BLOB_BACKEND=s3
    PROMPTCANVAS_S3_BUCKET_NAME=promptcanvas-assets
    PROMPTCANVAS_DATABASE_PATH=data/promptcanvas.db

Immutability
------------
The configuration model is frozen: once constructed, no field can be
reassigned.  Core services (orchestrator, catalog, favorites) receive the
instance explicitly through their constructors instead of reading the
module-level ``config``.  The module-level instance exists for the API
entry point only.

Brand Style Instruction
-----------------------
The system instruction sent with every generation request is a module
constant, :data:`BRAND_STYLE_INSTRUCTION`.  It is exposed read-only as
:attr:`PromptCanvasConfig.system_instruction` and has no environment
variable, so neither end users nor a stray ``.env`` entry can alter it.

See Also
--------
- .env.example: Template with all available configuration options
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BRAND_STYLE_INSTRUCTION = (
    "You are a promotional image designer for an insurance brand. "
    "Always answer with a generated image; never answer with text. "
    "Base the image on the user's request and, when one is attached, on the "
    "reference image, creating something new rather than copying it. "
    "People are optional. "
    "Use the brand palette: primary #FFCA00, secondary #000000, "
    "background #FFFFFF, and convey trust. "
    "Compose the image in a square 1:1 aspect ratio. "
    "Any short caption you render must be free of typos and read naturally. "
    "Never render the literal wording or the detailed instructions of the "
    "request inside the image."
)


class PromptCanvasConfig(BaseSettings):
    """Main configuration for PromptCanvas.

    Values are loaded from environment variables with the PROMPTCANVAS_
    prefix, with fallback to the defaults defined here.

    Attributes
    ----------
    Provider Settings:
        google_api_key : str | None
            API key for the Gemini image model
        image_model : str
            Gemini model identifier used for generation
        mock_provider : bool
            Use the local placeholder provider instead of calling Gemini
        provider_timeout_seconds : float | None
            Default timeout for the outbound provider call

    Storage Settings:
        blob_backend : Literal["s3", "local"]
            Which BlobStore implementation to build
        s3_bucket_name : str
            Bucket holding generated images (s3 backend)
        aws_region : str
            Region of the bucket (s3 backend)
        blob_dir : Path
            Directory holding generated images (local backend)
        database_path : Path
            SQLite file with assets, viewers and favorites
        sqlite_timeout_seconds : float
            How long a connection waits for the SQLite write lock

    Catalog Settings:
        signed_url_ttl_seconds : int
            Validity of signed display URLs
        default_page_size : int
            Page size used when the caller does not pass one
        max_page_size : int
            Upper bound for caller-supplied page sizes

    Server Settings:
        server_host, server_port, log_level

    Examples
    --------
        >>> custom_config = PromptCanvasConfig(
        ...     blob_backend="local",
        ...     mock_provider=True,
        ... )
        >>> custom_config.signed_url_ttl_seconds
        3600
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PROMPTCANVAS_",
        case_sensitive=False,
        frozen=True,
    )

    # Provider settings
    google_api_key: str | None = Field(
        default=None,
        description="API key for the Gemini image model",
    )
    image_model: str = Field(
        default="gemini-3-pro-image-preview",
        description="Gemini model identifier used for image generation",
    )
    mock_provider: bool = Field(
        default=False,
        description="Render placeholder images locally instead of calling Gemini",
    )
    provider_timeout_seconds: float | None = Field(
        default=120.0,
        description="Default timeout for the provider call (None disables it)",
        gt=0,
    )

    # Storage settings
    blob_backend: Literal["s3", "local"] = Field(
        default="local",
        description="BlobStore implementation (s3 or local directory)",
    )
    s3_bucket_name: str = Field(
        default="promptcanvas-assets",
        description="Bucket holding generated images",
    )
    aws_region: str = Field(
        default="ap-northeast-2",
        description="Region of the S3 bucket",
    )
    blob_dir: Path = Field(
        default=Path("blobs"),
        description="Directory holding generated images for the local backend",
    )
    database_path: Path = Field(
        default=Path("data/promptcanvas.db"),
        description="SQLite database with assets, viewers and favorites",
    )
    sqlite_timeout_seconds: float = Field(
        default=30.0,
        description="Seconds a connection waits for the SQLite write lock",
        gt=0,
    )

    # Catalog settings
    signed_url_ttl_seconds: int = Field(
        default=3600,
        description="Validity of signed display URLs in seconds",
        ge=1,
    )
    default_page_size: int = Field(default=8, ge=1, le=100)
    max_page_size: int = Field(default=100, ge=1)

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        if self.blob_backend == "local":
            self.blob_dir.mkdir(parents=True, exist_ok=True)

    @property
    def system_instruction(self) -> str:
        """Fixed brand styling directive sent with every generation request."""
        return BRAND_STYLE_INSTRUCTION


# Global configuration instance used by the API entry point.
config = PromptCanvasConfig()
