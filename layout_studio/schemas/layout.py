"""
Layout document model.

A page layout is a theme plus an ordered list of typed sections. Sections hold
typed fields (a union tagged by ``kind``) and repeatable blocks. These models are
the strict boundary: unknown field kinds, unknown section types, empty required
strings, out-of-range spacing and malformed image URLs are all rejected. Lenient
handling of legacy data lives in ``layout_studio.services.layout_mapper``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union, get_args

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic_core import PydanticCustomError

SectionType = Literal[
    "hero",
    "value-prop",
    "feature-grid",
    "testimonial",
    "pricing",
    "faq",
    "cta",
    "footer",
    "custom",
]
SectionVisibility = Literal["public", "draft", "archived"]
LayoutStatus = Literal["draft", "published"]
TypographyScale = Literal["xs", "sm", "md", "lg"]
LinkStyle = Literal["primary", "secondary", "ghost"]
FieldKind = Literal["text", "richText", "image", "link", "color", "list"]

SECTION_TYPES: tuple[str, ...] = get_args(SectionType)
FIELD_KINDS: tuple[str, ...] = get_args(FieldKind)

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]

_URL_ADAPTER = TypeAdapter(AnyUrl)


def _check_uri(value: str) -> str:
    # Validate with AnyUrl but keep the caller's exact string.
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        raise PydanticCustomError("url_parsing", "Invalid url") from None
    return value


UriStr = Annotated[str, AfterValidator(_check_uri)]
# Timestamps arrive as ISO strings from JSON and stored records.
Timestamp = Annotated[datetime, Field(strict=False)]
Number = Union[int, float]


class DocumentModel(BaseModel):
    model_config = ConfigDict(strict=True)


class ThemePalette(DocumentModel):
    primary: NonEmptyStr
    secondary: NonEmptyStr
    accent: NonEmptyStr
    background: NonEmptyStr
    surface: NonEmptyStr
    muted: NonEmptyStr
    textPrimary: NonEmptyStr
    textSecondary: NonEmptyStr


class ThemeTypography(DocumentModel):
    heading: NonEmptyStr
    body: NonEmptyStr
    accent: Optional[str] = None
    scale: TypographyScale = "md"


class ThemeSpacing(DocumentModel):
    base: float = Field(default=4, ge=2, le=12)
    radius: float = Field(default=12, ge=0, le=32)
    gap: float = Field(default=6, ge=2, le=12)


class ThemeTokens(DocumentModel):
    palette: ThemePalette
    typography: ThemeTypography
    spacing: ThemeSpacing


class ThemeOverrides(DocumentModel):
    """Section-level override: any subgroup may be omitted, present ones are complete."""

    palette: Optional[ThemePalette] = None
    typography: Optional[ThemeTypography] = None
    spacing: Optional[ThemeSpacing] = None


class TextField(DocumentModel):
    kind: Literal["text"] = "text"
    key: str
    label: str
    value: str = ""
    multiline: bool = False


class RichTextField(DocumentModel):
    kind: Literal["richText"] = "richText"
    key: str
    label: str
    markdown: str = ""


class ImageField(DocumentModel):
    kind: Literal["image"] = "image"
    key: str
    label: str
    url: UriStr
    alt: str = ""


class LinkField(DocumentModel):
    kind: Literal["link"] = "link"
    key: str
    label: str
    href: str
    text: str
    style: LinkStyle = "primary"


class ColorField(DocumentModel):
    kind: Literal["color"] = "color"
    key: str
    label: str
    value: str


class ListField(DocumentModel):
    kind: Literal["list"] = "list"
    key: str
    label: str
    itemFieldKey: str
    values: list[dict[str, Any]] = Field(default_factory=list)


LayoutField = Annotated[
    Union[TextField, RichTextField, ImageField, LinkField, ColorField, ListField],
    Field(discriminator="kind"),
]


class SectionBlock(DocumentModel):
    id: str
    label: str
    fields: list[LayoutField]
    sortOrder: Number = 0


class Section(DocumentModel):
    id: str
    type: SectionType
    label: str
    variant: Optional[str] = None
    fields: list[LayoutField] = Field(default_factory=list)
    blocks: list[SectionBlock] = Field(default_factory=list)
    themeOverrides: Optional[ThemeOverrides] = None
    visibility: SectionVisibility = "public"


class LayoutMetadata(DocumentModel):
    title: Optional[str] = None
    description: Optional[str] = None
    seoKeywords: list[str] = Field(default_factory=list)
    templateId: Optional[Number] = None
    templateName: Optional[str] = None


class PageLayout(DocumentModel):
    id: str
    pageId: str
    slug: str
    status: LayoutStatus = "draft"
    locale: str = "en"
    theme: ThemeTokens
    sections: list[Section]
    metadata: LayoutMetadata = Field(default_factory=LayoutMetadata)
    createdAt: Timestamp
    updatedAt: Timestamp

    @field_validator("sections")
    @classmethod
    def require_sections(cls, value: list[Section]) -> list[Section]:
        if not value:
            raise PydanticCustomError("sections_empty", "At least one section is required")
        return value

    def find_section(self, section_id: str) -> Optional[Section]:
        return next((section for section in self.sections if section.id == section_id), None)
