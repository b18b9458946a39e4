from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from layout_studio.auth.dependencies import AuthContext, get_current_user
from layout_studio.db.deps import get_session
from layout_studio.schemas.validation import validate_layout
from layout_studio.schemas.versions import (
    LayoutVersionResponse,
    PreviewLayoutRequest,
    PublishLayoutRequest,
    PublishLayoutResponse,
    SaveLayoutRequest,
    SaveLayoutResponse,
)
from layout_studio.services.layout_versions import (
    list_versions,
    load_editor_layout,
    publish_layout,
    save_layout,
)
from layout_studio.services.section_renderer import render_layout

router = APIRouter(prefix="/layouts", tags=["layouts"])


@router.post("/save", status_code=status.HTTP_201_CREATED, response_model=SaveLayoutResponse)
def save(
    payload: SaveLayoutRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    result = save_layout(session=session, page_id=payload.pageId, layout=payload.layout, user_id=auth.user_id)
    return SaveLayoutResponse(
        blueprintId=result.blueprint.id,
        version=LayoutVersionResponse.from_model(result.version),
    )


@router.post("/publish", response_model=PublishLayoutResponse)
def publish(
    payload: PublishLayoutRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    result = publish_layout(
        session=session,
        page_id=payload.pageId,
        layout_id=payload.layoutId,
        user_id=auth.user_id,
        version_id=payload.versionId,
        slug=payload.slug,
    )
    return PublishLayoutResponse(
        versionId=result.version.id,
        blueprintId=result.blueprint.id,
        demotedVersionIds=result.demoted_version_ids,
        warnings=result.warnings,
    )


@router.post("/preview")
def preview(
    payload: PreviewLayoutRequest,
    auth: AuthContext = Depends(get_current_user),
):
    layout = validate_layout(payload.layout)
    return render_layout(layout).model_dump(mode="json")


@router.get("/{page_id}/versions")
def get_versions(
    page_id: str,
    slug: Optional[str] = None,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    versions = list_versions(session=session, page_id=page_id, user_id=auth.user_id, slug=slug)
    return {
        "pageId": page_id,
        "versions": [LayoutVersionResponse.from_model(version).model_dump(mode="json") for version in versions],
    }


@router.get("/{page_id}/editor")
def get_editor_layout(
    page_id: str,
    slug: Optional[str] = None,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    editor = load_editor_layout(session=session, page_id=page_id, user_id=auth.user_id, slug=slug)
    return {
        "layout": editor.layout.model_dump(mode="json"),
        "source": editor.source,
        "versionId": editor.version_id,
    }
