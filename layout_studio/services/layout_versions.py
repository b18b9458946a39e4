"""
Blueprint/version workflow.

Each (page, slug) pair has one blueprint and an append-only list of versions. Saving
always inserts a new draft version. Publishing promotes one version and archives any
other published version of the same blueprint, so readers see at most one published
snapshot per blueprint.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from layout_studio.db.enums import BlueprintStatusEnum, LayoutVersionStateEnum
from layout_studio.db.models import LayoutBlueprint, LayoutVersion, Page
from layout_studio.db.repositories import (
    LayoutBlueprintsRepository,
    LayoutVersionsRepository,
    PagesRepository,
)
from layout_studio.errors import (
    DocumentMismatchError,
    NotFoundError,
    OwnershipError,
    PublishConsistencyError,
)
from layout_studio.schemas.layout import PageLayout
from layout_studio.schemas.validation import validate_layout
from layout_studio.services.ids import Clock, IdFactory, new_id, utcnow
from layout_studio.services.layout_mapper import parse_persisted
from layout_studio.services.layout_summary import build_layout_metadata

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    blueprint: LayoutBlueprint
    version: LayoutVersion


@dataclass
class PublishResult:
    blueprint: LayoutBlueprint
    version: LayoutVersion
    demoted_version_ids: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class EditorLayout:
    layout: PageLayout
    source: Literal["draft", "version", "legacy"]
    version_id: Optional[str] = None


@dataclass
class LivePage:
    source: Literal["layout", "html"]
    layout: Optional[PageLayout] = None
    html: Optional[str] = None
    version_id: Optional[str] = None


def require_page_owner(session: Session, *, page_id: str, user_id: str) -> Page:
    page = PagesRepository(session).get(page_id=page_id)
    if not page:
        raise NotFoundError("Page not found")
    if page.owner_id != user_id:
        raise OwnershipError()
    return page


def _resolve_blueprint(
    session: Session,
    *,
    page_id: str,
    slug: Optional[str] = None,
    layout_id: Optional[str] = None,
) -> Optional[LayoutBlueprint]:
    blueprints_repo = LayoutBlueprintsRepository(session)
    if slug is not None:
        return blueprints_repo.get_for_page(page_id=page_id, slug=slug)

    candidates = blueprints_repo.list_for_page(page_id=page_id)
    if not candidates:
        return None
    if layout_id is not None and len(candidates) > 1:
        versions_repo = LayoutVersionsRepository(session)
        for blueprint in candidates:
            versions = versions_repo.list_for_blueprint(blueprint_id=blueprint.id)
            if any(_embedded_layout_id(version) == layout_id for version in versions):
                return blueprint
    return candidates[0]


def _embedded_layout_id(version: LayoutVersion) -> Optional[str]:
    layout = version.layout if isinstance(version.layout, dict) else {}
    return layout.get("id")


def _select_publish_target(
    versions: list[LayoutVersion], *, layout_id: str, version_id: Optional[str]
) -> LayoutVersion:
    """``versions`` is newest first and non-empty."""
    if version_id:
        explicit = next((version for version in versions if version.id == version_id), None)
        if explicit is not None:
            return explicit
        logger.info(
            "Requested layout version not in blueprint; falling back",
            extra={"version_id": version_id, "layout_id": layout_id},
        )
    matching = next((version for version in versions if _embedded_layout_id(version) == layout_id), None)
    return matching or versions[0]


def save_layout(
    *,
    session: Session,
    page_id: str,
    layout: PageLayout | Mapping[str, Any],
    user_id: str,
    clock: Clock = utcnow,
) -> SaveResult:
    # Editor copies skip validation, so the whole document is checked again here.
    if isinstance(layout, PageLayout):
        layout = layout.model_dump(mode="json")
    layout = validate_layout(layout)
    if layout.pageId != page_id:
        raise DocumentMismatchError(expected_page_id=page_id, layout_page_id=layout.pageId)

    page = require_page_owner(session, page_id=page_id, user_id=user_id)

    blueprints_repo = LayoutBlueprintsRepository(session)
    versions_repo = LayoutVersionsRepository(session)
    name = layout.metadata.title or f"{page.name} Layout".strip()
    description = layout.metadata.description or None

    try:
        blueprint = blueprints_repo.get_for_page(page_id=page_id, slug=layout.slug)
        if blueprint is None:
            blueprint = blueprints_repo.create(
                page_id=page_id,
                slug=layout.slug,
                name=name,
                description=description,
                status=BlueprintStatusEnum.draft,
            )
        else:
            blueprints_repo.update(
                blueprint,
                name=name,
                description=description,
                status=BlueprintStatusEnum.draft,
            )

        version = versions_repo.create(
            blueprint_id=blueprint.id,
            layout=layout.model_dump(mode="json"),
            summary=build_layout_metadata(layout, clock=clock),
            created_by=user_id,
            state=LayoutVersionStateEnum.draft,
            created_at=clock(),
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to save layout version", extra={"page_id": page_id, "slug": layout.slug})
        raise

    session.refresh(blueprint)
    session.refresh(version)
    logger.info(
        "Saved layout version",
        extra={
            "page_id": page_id,
            "blueprint_id": blueprint.id,
            "version_id": version.id,
            "revision": version.revision,
            "section_count": len(layout.sections),
        },
    )
    return SaveResult(blueprint=blueprint, version=version)


def publish_layout(
    *,
    session: Session,
    page_id: str,
    layout_id: str,
    user_id: str,
    version_id: Optional[str] = None,
    slug: Optional[str] = None,
) -> PublishResult:
    require_page_owner(session, page_id=page_id, user_id=user_id)

    blueprint = _resolve_blueprint(session, page_id=page_id, slug=slug, layout_id=layout_id)
    if not blueprint:
        raise NotFoundError("Layout blueprint not found")

    blueprints_repo = LayoutBlueprintsRepository(session)
    versions_repo = LayoutVersionsRepository(session)
    versions = versions_repo.list_for_blueprint(blueprint_id=blueprint.id)
    if not versions:
        raise NotFoundError("No layout versions found to publish")

    target = _select_publish_target(versions, layout_id=layout_id, version_id=version_id)

    # Demote before promoting, inside one transaction.
    demoted: list[str] = []
    try:
        for version in versions_repo.list_published(blueprint_id=blueprint.id):
            if version.id == target.id:
                continue
            versions_repo.set_state(version, LayoutVersionStateEnum.archived)
            demoted.append(version.id)
        versions_repo.set_state(target, LayoutVersionStateEnum.published)
        blueprints_repo.update(blueprint, status=BlueprintStatusEnum.published)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception(
            "Layout publish failed; transaction rolled back",
            extra={"blueprint_id": blueprint.id, "version_id": target.id},
        )
        raise PublishConsistencyError(
            "Publish did not complete; no version state was changed",
            blueprint_id=blueprint.id,
            version_id=target.id,
        ) from exc

    session.refresh(blueprint)
    session.refresh(target)

    warnings: list[str] = []
    published_count = versions_repo.count_published(blueprint_id=blueprint.id)
    if published_count != 1:
        message = (
            f"Blueprint {blueprint.id} has {published_count} published versions after publishing {target.id}"
        )
        logger.warning(
            "Layout publish consistency warning",
            extra={"blueprint_id": blueprint.id, "version_id": target.id, "published_count": published_count},
        )
        warnings.append(message)

    logger.info(
        "Published layout version",
        extra={
            "page_id": page_id,
            "blueprint_id": blueprint.id,
            "version_id": target.id,
            "demoted_version_ids": demoted,
        },
    )
    return PublishResult(blueprint=blueprint, version=target, demoted_version_ids=demoted, warnings=warnings)


def list_versions(
    *, session: Session, page_id: str, user_id: str, slug: Optional[str] = None
) -> list[LayoutVersion]:
    require_page_owner(session, page_id=page_id, user_id=user_id)
    blueprint = _resolve_blueprint(session, page_id=page_id, slug=slug)
    if not blueprint:
        return []
    return LayoutVersionsRepository(session).list_for_blueprint(blueprint_id=blueprint.id)


def load_editor_layout(
    *,
    session: Session,
    page_id: str,
    user_id: str,
    slug: Optional[str] = None,
    id_factory: IdFactory = new_id,
) -> EditorLayout:
    page = require_page_owner(session, page_id=page_id, user_id=user_id)

    blueprint = _resolve_blueprint(session, page_id=page_id, slug=slug)
    if blueprint:
        versions_repo = LayoutVersionsRepository(session)
        draft = versions_repo.latest(blueprint_id=blueprint.id, state=LayoutVersionStateEnum.draft)
        if draft:
            return EditorLayout(layout=validate_layout(draft.layout), source="draft", version_id=draft.id)
        latest = versions_repo.latest(blueprint_id=blueprint.id)
        if latest:
            return EditorLayout(layout=validate_layout(latest.layout), source="version", version_id=latest.id)

    if page.layout_record:
        return EditorLayout(layout=parse_persisted(page.layout_record, id_factory=id_factory), source="legacy")

    raise NotFoundError("No layout found. Generate a website first.")


def resolve_live_page(*, session: Session, page_id: str, slug: Optional[str] = None) -> LivePage:
    page = PagesRepository(session).get(page_id=page_id)
    if not page:
        raise NotFoundError("Page not found")

    blueprints_repo = LayoutBlueprintsRepository(session)
    versions_repo = LayoutVersionsRepository(session)
    if slug is not None:
        blueprint = blueprints_repo.get_for_page(page_id=page_id, slug=slug)
        blueprints = [blueprint] if blueprint else []
    else:
        blueprints = blueprints_repo.list_for_page(page_id=page_id)

    for blueprint in blueprints:
        published = versions_repo.latest(blueprint_id=blueprint.id, state=LayoutVersionStateEnum.published)
        if published:
            return LivePage(source="layout", layout=validate_layout(published.layout), version_id=published.id)

    if page.fallback_html:
        return LivePage(source="html", html=page.fallback_html)

    raise NotFoundError("No published layout for page")
