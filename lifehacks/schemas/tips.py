"""Pydantic schemas describing tips as returned by the remote life hacks API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TipImage(BaseModel):
    """Metadata about the image attached to a tip."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    image_url: str | None = Field(None, alias="imageUrl")
    image_storage_path: str | None = Field(None, alias="imageStoragePath")
    original_file_name: str | None = Field(None, alias="originalFileName")
    content_type: str | None = Field(None, alias="contentType")
    file_size_bytes: int = Field(0, ge=0, alias="fileSizeBytes")
    uploaded_at: datetime | None = Field(None, alias="uploadedAt")


class TipSummary(BaseModel):
    """Display-ready record rendered as a tip card.

    Payloads use the API's camelCase keys; attribute access stays snake_case.
    Unknown keys (for example the ``steps`` of a full tip detail) are ignored so
    the same model can be built from both list and detail endpoints.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Opaque tip identifier")
    title: str
    description: str = ""
    category_id: str | None = Field(None, alias="categoryId")
    category_name: str | None = Field(None, alias="categoryName")
    tags: list[str] = Field(default_factory=list)
    video_url: str | None = Field(None, alias="videoUrl")
    created_at: datetime | None = Field(None, alias="createdAt")
    image: TipImage | None = None
