"""
Conversions between the runtime layout document and its external shapes.

The persisted record uses snake_case top-level keys and carries sections of unknown
shape (legacy generators wrote partial sections). ``normalize_section`` is the only
place such partial data is filled in; everything else goes through the strict
schema in ``layout_studio.schemas.layout``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from layout_studio.config import settings
from layout_studio.errors import LayoutValidationError, ValidationIssue
from layout_studio.schemas.layout import (
    LayoutField,
    LayoutMetadata,
    PageLayout,
    Section,
    SectionBlock,
    SectionType,
    ThemeOverrides,
    ThemeTokens,
)
from layout_studio.schemas.validation import (
    issues_from_validation_error,
    validate_layout,
    validate_section,
)
from layout_studio.services.ids import Clock, IdFactory, new_id, utcnow

UNTITLED_SECTION_LABEL = "Untitled Section"


class PersistedLayoutRecord(BaseModel):
    id: str
    page_id: str
    slug: str
    status: Literal["draft", "published"]
    locale: str = "en"
    theme: ThemeTokens
    sections: list[Any]
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


def normalize_section(raw: Any, *, id_factory: IdFactory = new_id) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise LayoutValidationError([ValidationIssue(field="", message="Invalid section payload")])

    fields = raw.get("fields")
    blocks = raw.get("blocks")
    return {
        "id": raw.get("id") if raw.get("id") is not None else id_factory(),
        "type": raw.get("type") if raw.get("type") is not None else "custom",
        "label": raw.get("label") if raw.get("label") is not None else UNTITLED_SECTION_LABEL,
        "variant": raw.get("variant"),
        "fields": list(fields) if isinstance(fields, list) else [],
        "blocks": list(blocks) if isinstance(blocks, list) else [],
        "themeOverrides": raw.get("themeOverrides"),
        "visibility": raw.get("visibility") if raw.get("visibility") is not None else "public",
    }


def parse_persisted(record: Any, *, id_factory: IdFactory = new_id) -> PageLayout:
    try:
        data = PersistedLayoutRecord.model_validate(record)
    except ValidationError as exc:
        raise LayoutValidationError(issues_from_validation_error(exc)) from exc

    issues: list[ValidationIssue] = []
    sections: list[dict[str, Any]] = []
    for index, raw_section in enumerate(data.sections):
        try:
            sections.append(normalize_section(raw_section, id_factory=id_factory))
        except LayoutValidationError as exc:
            issues.extend(
                ValidationIssue(field=f"sections.{index}", message=issue.message, code=issue.code)
                for issue in exc.issues
            )

    candidate = {
        "id": data.id,
        "pageId": data.page_id,
        "slug": data.slug,
        "status": data.status,
        "locale": data.locale,
        "theme": data.theme,
        "sections": sections,
        "metadata": data.metadata,
        "createdAt": data.created_at,
        "updatedAt": data.updated_at,
    }
    try:
        layout = validate_layout(candidate)
    except LayoutValidationError as exc:
        # Unusable section entries were dropped above; report them alongside.
        raise LayoutValidationError([*issues, *exc.issues]) from exc
    if issues:
        raise LayoutValidationError(issues)
    return layout


def serialize_for_persistence(layout: PageLayout) -> dict[str, Any]:
    payload = layout.model_dump(mode="json")
    return {
        "id": payload["id"],
        "page_id": payload["pageId"],
        "slug": payload["slug"],
        "status": payload["status"],
        "locale": payload["locale"],
        "theme": payload["theme"],
        "sections": payload["sections"],
        "metadata": payload["metadata"],
        "created_at": payload["createdAt"],
        "updated_at": payload["updatedAt"],
    }


def create_draft(
    *,
    page_id: str,
    slug: str,
    theme: ThemeTokens | Mapping[str, Any],
    sections: Optional[Sequence[Section | Mapping[str, Any]]] = None,
    metadata: Optional[LayoutMetadata | Mapping[str, Any]] = None,
    locale: Optional[str] = None,
    id_factory: IdFactory = new_id,
    clock: Clock = utcnow,
) -> PageLayout:
    """Materialize a new draft; with no sections this fails validation on purpose."""
    now = clock()
    return validate_layout(
        {
            "id": id_factory(),
            "pageId": page_id,
            "slug": slug,
            "status": "draft",
            "locale": locale or settings.DEFAULT_LOCALE,
            "theme": theme,
            "sections": list(sections or []),
            "metadata": metadata if metadata is not None else {},
            "createdAt": now,
            "updatedAt": now,
        }
    )


def upsert_field(fields: Sequence[LayoutField], field: LayoutField) -> list[LayoutField]:
    for index, existing in enumerate(fields):
        if existing.key == field.key:
            return [*fields[:index], field, *fields[index + 1 :]]
    return [*fields, field]


_VARIANT_TYPE_HINTS: tuple[tuple[str, SectionType], ...] = (
    ("hero", "hero"),
    ("feature", "feature-grid"),
    ("testimonial", "testimonial"),
    ("pricing", "pricing"),
    ("faq", "faq"),
    ("cta", "cta"),
    ("footer", "footer"),
    ("value", "value-prop"),
)


def derive_section_type(variant: Optional[str]) -> SectionType:
    if not variant:
        return "custom"
    normalized = variant.lower()
    for hint, section_type in _VARIANT_TYPE_HINTS:
        if hint in normalized:
            return section_type
    return "custom"


def create_section(
    *,
    id: str,
    label: str,
    fields: Sequence[LayoutField | Mapping[str, Any]],
    variant: Optional[str] = None,
    blocks: Optional[Sequence[SectionBlock | Mapping[str, Any]]] = None,
    theme_overrides: Optional[ThemeOverrides | Mapping[str, Any]] = None,
) -> Section:
    """Build a public section whose type is inferred from a generator's variant name."""
    return validate_section(
        {
            "id": id,
            "type": derive_section_type(variant),
            "label": label,
            "variant": variant,
            "fields": list(fields),
            "blocks": list(blocks or []),
            "themeOverrides": theme_overrides,
            "visibility": "public",
        }
    )
