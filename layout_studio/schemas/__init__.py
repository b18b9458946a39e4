from layout_studio.schemas.layout import (
    FIELD_KINDS,
    SECTION_TYPES,
    LayoutField,
    LayoutMetadata,
    PageLayout,
    Section,
    SectionBlock,
    ThemeOverrides,
    ThemeTokens,
)
from layout_studio.schemas.validation import (
    collect_layout_issues,
    validate_field,
    validate_layout,
    validate_section,
)

__all__ = [
    "FIELD_KINDS",
    "SECTION_TYPES",
    "LayoutField",
    "LayoutMetadata",
    "PageLayout",
    "Section",
    "SectionBlock",
    "ThemeOverrides",
    "ThemeTokens",
    "collect_layout_issues",
    "validate_field",
    "validate_layout",
    "validate_section",
]
