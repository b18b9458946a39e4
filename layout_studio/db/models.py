from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from layout_studio.db.base import Base
from layout_studio.db.enums import BlueprintStatusEnum, LayoutVersionStateEnum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid_str() -> str:
    return str(uuid4())


class Page(Base):
    """Page record owned by the content collaborator; read-only for this service."""

    __tablename__ = "pages"

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True, default=_uuid_str)
    owner_id: Mapped[str] = mapped_column(String(length=128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    layout_record: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    fallback_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class LayoutBlueprint(Base):
    __tablename__ = "layout_blueprints"
    __table_args__ = (
        UniqueConstraint("page_id", "slug", name="uq_layout_blueprints_page_slug"),
        sa.Index("idx_layout_blueprints_page", "page_id"),
    )

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True, default=_uuid_str)
    page_id: Mapped[str] = mapped_column(ForeignKey("pages.id", ondelete="CASCADE"), nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[BlueprintStatusEnum] = mapped_column(
        Enum(BlueprintStatusEnum, name="layout_blueprint_status"),
        nullable=False,
        default=BlueprintStatusEnum.draft,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class LayoutVersion(Base):
    __tablename__ = "layout_versions"
    __table_args__ = (
        UniqueConstraint("blueprint_id", "revision", name="uq_layout_versions_blueprint_revision"),
        sa.Index("idx_layout_versions_blueprint_state", "blueprint_id", "state"),
    )

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True, default=_uuid_str)
    blueprint_id: Mapped[str] = mapped_column(
        ForeignKey("layout_blueprints.id", ondelete="CASCADE"), nullable=False
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    state: Mapped[LayoutVersionStateEnum] = mapped_column(
        Enum(LayoutVersionStateEnum, name="layout_version_state"),
        nullable=False,
        default=LayoutVersionStateEnum.draft,
    )
    layout: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    # "metadata" is reserved on declarative classes.
    summary: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_by: Mapped[Optional[str]] = mapped_column(String(length=128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
