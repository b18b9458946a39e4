from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import func, select

from layout_studio.db.enums import BlueprintStatusEnum, LayoutVersionStateEnum
from layout_studio.db.models import LayoutBlueprint, LayoutVersion, Page
from layout_studio.db.repositories.base import Repository


class PagesRepository(Repository):
    def get(self, *, page_id: str) -> Optional[Page]:
        stmt = select(Page).where(Page.id == page_id)
        return self.session.scalars(stmt).first()


class LayoutBlueprintsRepository(Repository):
    def get_for_page(self, *, page_id: str, slug: str) -> Optional[LayoutBlueprint]:
        stmt = select(LayoutBlueprint).where(LayoutBlueprint.page_id == page_id, LayoutBlueprint.slug == slug)
        return self.session.scalars(stmt).first()

    def list_for_page(self, *, page_id: str) -> list[LayoutBlueprint]:
        stmt = (
            select(LayoutBlueprint)
            .where(LayoutBlueprint.page_id == page_id)
            .order_by(LayoutBlueprint.created_at.asc(), LayoutBlueprint.id.asc())
        )
        return list(self.session.scalars(stmt).all())

    def create(
        self,
        *,
        page_id: str,
        slug: str,
        name: str,
        description: Optional[str] = None,
        status: BlueprintStatusEnum = BlueprintStatusEnum.draft,
    ) -> LayoutBlueprint:
        blueprint = LayoutBlueprint(
            page_id=page_id,
            slug=slug,
            name=name,
            description=description,
            status=status,
        )
        return self.add(blueprint)

    def update(self, blueprint: LayoutBlueprint, **fields: Any) -> LayoutBlueprint:
        for key, value in fields.items():
            setattr(blueprint, key, value)
        self.session.flush()
        return blueprint


class LayoutVersionsRepository(Repository):
    def list_for_blueprint(self, *, blueprint_id: str) -> list[LayoutVersion]:
        """Versions newest first."""
        stmt = (
            select(LayoutVersion)
            .where(LayoutVersion.blueprint_id == blueprint_id)
            .order_by(LayoutVersion.revision.desc())
        )
        return list(self.session.scalars(stmt).all())

    def latest(
        self, *, blueprint_id: str, state: Optional[LayoutVersionStateEnum] = None
    ) -> Optional[LayoutVersion]:
        stmt = select(LayoutVersion).where(LayoutVersion.blueprint_id == blueprint_id)
        if state is not None:
            stmt = stmt.where(LayoutVersion.state == state)
        stmt = stmt.order_by(LayoutVersion.revision.desc())
        return self.session.scalars(stmt).first()

    def next_revision(self, *, blueprint_id: str) -> int:
        stmt = select(func.max(LayoutVersion.revision)).where(LayoutVersion.blueprint_id == blueprint_id)
        current = self.session.execute(stmt).scalar()
        return (current or 0) + 1

    def create(
        self,
        *,
        blueprint_id: str,
        layout: dict[str, Any],
        summary: dict[str, Any],
        created_by: Optional[str],
        state: LayoutVersionStateEnum = LayoutVersionStateEnum.draft,
        **fields: Any,
    ) -> LayoutVersion:
        version = LayoutVersion(
            blueprint_id=blueprint_id,
            revision=self.next_revision(blueprint_id=blueprint_id),
            state=state,
            layout=layout,
            summary=summary,
            created_by=created_by,
            **fields,
        )
        return self.add(version)

    def list_published(self, *, blueprint_id: str) -> list[LayoutVersion]:
        stmt = select(LayoutVersion).where(
            LayoutVersion.blueprint_id == blueprint_id,
            LayoutVersion.state == LayoutVersionStateEnum.published,
        )
        return list(self.session.scalars(stmt).all())

    def count_published(self, *, blueprint_id: str) -> int:
        stmt = select(func.count(LayoutVersion.id)).where(
            LayoutVersion.blueprint_id == blueprint_id,
            LayoutVersion.state == LayoutVersionStateEnum.published,
        )
        return int(self.session.execute(stmt).scalar() or 0)

    def set_state(self, version: LayoutVersion, state: LayoutVersionStateEnum) -> LayoutVersion:
        version.state = state
        self.session.flush()
        return version
