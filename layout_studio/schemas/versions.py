from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from layout_studio.db.models import LayoutVersion


class SaveLayoutRequest(BaseModel):
    pageId: str
    # Validated by the versioning service so issue paths are relative to the layout.
    layout: dict[str, Any]


class PublishLayoutRequest(BaseModel):
    pageId: str
    layoutId: str
    versionId: Optional[str] = None
    slug: Optional[str] = None


class PreviewLayoutRequest(BaseModel):
    layout: dict[str, Any]


class LayoutVersionResponse(BaseModel):
    id: str
    blueprintId: str
    revision: int
    state: str
    layout: dict[str, Any]
    metadata: dict[str, Any] = Field(default_factory=dict)
    createdBy: Optional[str] = None
    createdAt: datetime

    @classmethod
    def from_model(cls, version: LayoutVersion) -> "LayoutVersionResponse":
        return cls(
            id=version.id,
            blueprintId=version.blueprint_id,
            revision=version.revision,
            state=version.state.value,
            layout=version.layout,
            metadata=version.summary or {},
            createdBy=version.created_by,
            createdAt=version.created_at,
        )


class SaveLayoutResponse(BaseModel):
    blueprintId: str
    version: LayoutVersionResponse


class PublishLayoutResponse(BaseModel):
    versionId: str
    blueprintId: str
    demotedVersionIds: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
