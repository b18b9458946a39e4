from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from layout_studio.db.deps import get_session
from layout_studio.services.layout_versions import resolve_live_page
from layout_studio.services.section_renderer import render_layout

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/pages/{page_id}")
def get_public_page(page_id: str, slug: Optional[str] = None, session: Session = Depends(get_session)):
    live = resolve_live_page(session=session, page_id=page_id, slug=slug)
    if live.source == "html":
        return {"source": "html", "html": live.html}
    return {
        "source": "layout",
        "versionId": live.version_id,
        "page": render_layout(live.layout).model_dump(mode="json"),
    }
