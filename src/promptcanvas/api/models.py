"""Pydantic request and response models for the PromptCanvas API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``: prompt, creator, optional
    base64-encoded reference image.
ToggleFavouriteRequest
    Payload for ``POST /api/favourites/toggle``.
ViewerRequest
    Payload for ``POST /api/viewers``.
AssetViewResponse / CatalogPageResponse
    Catalog entries and pages as returned to the frontend.
"""

from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, Field, field_validator

from promptcanvas.core.models import AssetView, CatalogPage


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        prompt: Text describing the image to generate.
        creator_email: Creator identity.  Empty for anonymous users.
        reference_image: Optional reference image, base64-encoded.
        reference_mime_type: Media type of the reference image.  Defaults to
            ``image/jpeg`` when omitted.
    """

    prompt: str = Field(
        ...,
        description="Text prompt describing the image.",
    )
    creator_email: str | None = Field(
        default=None,
        description="Email of the creator; empty for anonymous users.",
    )
    reference_image: str | None = Field(
        default=None,
        description="Optional base64-encoded reference image.",
    )
    reference_mime_type: str | None = Field(
        default=None,
        description="Media type of the reference image (default image/jpeg).",
    )

    @field_validator("reference_image")
    @classmethod
    def _check_base64(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("reference_image must be base64-encoded") from e
        return value

    def reference_image_bytes(self) -> bytes | None:
        """Decoded reference image, or ``None`` when none was sent."""
        if self.reference_image is None:
            return None
        return base64.b64decode(self.reference_image)


class GenerateResponse(BaseModel):
    """Response body for a successful generation."""

    success: bool = True
    blob_key: str
    image_url: str


class ToggleFavouriteRequest(BaseModel):
    """Request body for the ``POST /api/favourites/toggle`` endpoint.

    Attributes:
        blob_key: Key of the asset to toggle.
        viewer_email: Email of the viewer toggling the favourite.
    """

    blob_key: str = Field(..., min_length=1, description="Key of the asset to toggle.")
    viewer_email: str = Field(..., min_length=1, description="Email of the viewer.")


class ToggleFavouriteResponse(BaseModel):
    success: bool = True
    blob_key: str
    is_favourite: bool
    favourite_count: int


class ViewerRequest(BaseModel):
    """Request body for the ``POST /api/viewers`` endpoint."""

    email: str = Field(..., min_length=1, description="Viewer email.")


class AssetViewResponse(BaseModel):
    """One catalog entry as seen by the requesting viewer."""

    image_url: str
    download_path: str
    blob_key: str
    prompt: str
    creator_email: str | None
    favourite_count: int
    is_favourited: bool

    @classmethod
    def from_view(cls, view: AssetView) -> AssetViewResponse:
        return cls(
            image_url=view.image_url,
            download_path=view.download_path,
            blob_key=view.blob_key,
            prompt=view.prompt,
            creator_email=view.creator_email,
            favourite_count=view.favorite_count,
            is_favourited=view.is_favorited,
        )


class PageLinkResponse(BaseModel):
    page_number: int
    display_number: int
    is_current: bool


class CatalogPageResponse(BaseModel):
    """One page of the catalog plus its navigation numbers."""

    images: list[AssetViewResponse]
    page: int
    current_page: int
    page_size: int
    total_count: int
    total_pages: int
    has_previous: bool
    has_next: bool
    page_numbers: list[PageLinkResponse]

    @classmethod
    def from_page(cls, page: CatalogPage) -> CatalogPageResponse:
        return cls(
            images=[AssetViewResponse.from_view(view) for view in page.items],
            page=page.page,
            current_page=page.current_page,
            page_size=page.page_size,
            total_count=page.total_items,
            total_pages=page.total_pages,
            has_previous=page.has_previous,
            has_next=page.has_next,
            page_numbers=[
                PageLinkResponse(
                    page_number=link.page_number,
                    display_number=link.display_number,
                    is_current=link.is_current,
                )
                for link in page.page_numbers
            ],
        )
