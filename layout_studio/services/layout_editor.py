"""
In-memory editing of one loaded layout.

The store has a single writer and no locking. Every mutation replaces the layout
object (pydantic ``model_copy``) so snapshots handed to listeners never change
underneath them. Validation of the whole document is deferred to the next
persistence boundary, which is why a layout may briefly hold zero sections here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from layout_studio.errors import LayoutValidationError, ValidationIssue
from layout_studio.schemas.layout import (
    LayoutField,
    PageLayout,
    Section,
    ThemeTokens,
)
from layout_studio.schemas.validation import (
    issues_from_validation_error,
    validate_field,
    validate_section,
)
from layout_studio.services.ids import Clock, IdFactory, new_id, utcnow
from layout_studio.services.layout_mapper import upsert_field

logger = logging.getLogger(__name__)

_THEME_GROUPS = ("palette", "typography", "spacing")


@dataclass(frozen=True)
class EditorSnapshot:
    layout: PageLayout
    selected_section_id: Optional[str]


Listener = Callable[[EditorSnapshot], None]


class LayoutEditorStore:
    def __init__(
        self,
        layout: PageLayout,
        *,
        id_factory: IdFactory = new_id,
        clock: Clock = utcnow,
    ) -> None:
        self._layout = layout
        self._selected_section_id: Optional[str] = layout.sections[0].id if layout.sections else None
        self._listeners: list[Listener] = []
        self._id_factory = id_factory
        self._clock = clock

    @property
    def layout(self) -> PageLayout:
        return self._layout

    @property
    def selected_section_id(self) -> Optional[str]:
        return self._selected_section_id

    @property
    def selected_section(self) -> Optional[Section]:
        if self._selected_section_id is None:
            return None
        return self._layout.find_section(self._selected_section_id)

    def get_snapshot(self) -> EditorSnapshot:
        return EditorSnapshot(layout=self._layout, selected_section_id=self._selected_section_id)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.get_snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    def _replace_layout(self, **updates: Any) -> None:
        self._layout = self._layout.model_copy(update={**updates, "updatedAt": self._clock()})

    def _track(self, event: str) -> None:
        logger.info(
            "Editor event %s",
            event,
            extra={
                "event": event,
                "page_id": self._layout.pageId,
                "layout_id": self._layout.id,
                "section_count": len(self._layout.sections),
            },
        )

    def set_layout(self, layout: PageLayout) -> None:
        self._layout = layout
        if self._selected_section_id is None and layout.sections:
            self._selected_section_id = layout.sections[0].id
        self._notify()

    def select_section(self, section_id: Optional[str]) -> None:
        # Selecting an unknown id is allowed; selected_section is then None.
        self._selected_section_id = section_id
        self._notify()

    def update_section_field(self, section_id: str, field: LayoutField | Mapping[str, Any]) -> None:
        field = validate_field(field)
        sections = [
            section.model_copy(update={"fields": upsert_field(section.fields, field)})
            if section.id == section_id
            else section
            for section in self._layout.sections
        ]
        self._replace_layout(sections=sections)
        self._notify()

    def reorder_sections(self, ordered_ids: Iterable[str]) -> None:
        """
        Rebuild the section list in the order of ``ordered_ids``.

        Ids without a matching section are skipped, and sections whose id is not
        listed are dropped from the layout. Callers rely on this to remove
        sections while reordering.
        """
        by_id = {section.id: section for section in self._layout.sections}
        sections = [by_id[section_id] for section_id in ordered_ids if section_id in by_id]
        self._replace_layout(sections=sections)
        self._track("layout.section.reorder")
        self._notify()

    def add_section(self, section: Section | Mapping[str, Any]) -> Section:
        section = validate_section(section)
        if not section.id:
            section = section.model_copy(update={"id": self._id_factory()})
        self._replace_layout(sections=[*self._layout.sections, section])
        self._selected_section_id = section.id
        self._track("layout.section.add")
        self._notify()
        return section

    def delete_section(self, section_id: str) -> None:
        sections = [section for section in self._layout.sections if section.id != section_id]
        self._replace_layout(sections=sections)
        if self._selected_section_id == section_id:
            self._selected_section_id = sections[0].id if sections else None
        self._notify()

    def update_theme_tokens(self, updates: Mapping[str, Any] | BaseModel) -> ThemeTokens:
        if isinstance(updates, BaseModel):
            updates = updates.model_dump(exclude_unset=True)

        unknown = [key for key in updates if key not in _THEME_GROUPS]
        if unknown:
            raise LayoutValidationError(
                [ValidationIssue(field=f"theme.{key}", message="Unknown theme group") for key in unknown]
            )

        theme = self._layout.theme
        merged: dict[str, BaseModel] = {}
        issues: list[ValidationIssue] = []
        for group in _THEME_GROUPS:
            current = getattr(theme, group)
            patch = updates.get(group)
            if not patch:
                merged[group] = current
                continue
            if isinstance(patch, BaseModel):
                patch = patch.model_dump(exclude_unset=True)
            if not isinstance(patch, Mapping):
                issues.append(ValidationIssue(field=f"theme.{group}", message="Theme group update must be an object"))
                continue
            try:
                merged[group] = type(current).model_validate({**current.model_dump(), **dict(patch)})
            except ValidationError as exc:
                issues.extend(issues_from_validation_error(exc, prefix=("theme", group)))
        if issues:
            raise LayoutValidationError(issues)

        next_theme = theme.model_copy(update=merged)
        self._replace_layout(theme=next_theme)
        self._notify()
        return next_theme
