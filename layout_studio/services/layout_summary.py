from __future__ import annotations

from typing import Any

from layout_studio.schemas.layout import PageLayout
from layout_studio.services.ids import Clock, utcnow


def build_layout_metadata(layout: PageLayout, *, clock: Clock = utcnow) -> dict[str, Any]:
    """Summary stored next to each version snapshot for history listings."""
    return {
        "summary": f"Layout with {len(layout.sections)} sections",
        "sectionCount": len(layout.sections),
        "sections": [
            {"id": section.id, "label": section.label, "type": section.type} for section in layout.sections
        ],
        "updatedAt": clock().isoformat(),
        "templateName": layout.metadata.templateName,
        "theme": {
            "primaryColor": layout.theme.palette.primary,
            "accentColor": layout.theme.palette.accent,
            "font": layout.theme.typography.heading,
        },
    }
