"""
Section rendering.

Turns typed sections into presentational view models. Every section type maps to
exactly one renderer; ``feature-grid`` and ``value-prop`` share the feature
renderer and ``custom`` falls back to raw HTML. Missing fields resolve to default
copy so a freshly added section always renders something sensible.
"""

from __future__ import annotations

from typing import Annotated, Callable, Literal, Optional, Sequence, Union, assert_never

from pydantic import BaseModel, Field

from layout_studio.schemas.layout import (
    SECTION_TYPES,
    ColorField,
    ImageField,
    LayoutField,
    LayoutMetadata,
    LinkField,
    LinkStyle,
    ListField,
    PageLayout,
    RichTextField,
    Section,
    SectionBlock,
    TextField,
    ThemeOverrides,
    ThemeTokens,
)


class LinkView(BaseModel):
    href: str
    text: str
    style: LinkStyle = "primary"


class ImageView(BaseModel):
    url: str
    alt: str = ""


class _SectionViewBase(BaseModel):
    sectionId: str
    sectionType: str
    label: str
    variant: Optional[str] = None
    themeOverrides: Optional[ThemeOverrides] = None


class HeroView(_SectionViewBase):
    view: Literal["hero"] = "hero"
    heading: str
    body: str
    cta: Optional[LinkView] = None
    image: Optional[ImageView] = None


class FeatureItem(BaseModel):
    id: str
    tagline: str
    title: str
    description: str


class FeatureView(_SectionViewBase):
    view: Literal["features"] = "features"
    heading: str
    body: str
    items: list[FeatureItem]


class TestimonialItem(BaseModel):
    id: str
    quote: str
    name: str
    role: str


class TestimonialView(_SectionViewBase):
    view: Literal["testimonials"] = "testimonials"
    heading: str
    items: list[TestimonialItem]


class PricingPlan(BaseModel):
    id: str
    name: str
    price: str
    billing: str
    description: str
    featured: bool = False


class PricingView(_SectionViewBase):
    view: Literal["pricing"] = "pricing"
    heading: str
    plans: list[PricingPlan]


class FaqItem(BaseModel):
    id: str
    question: str
    answer: str


class FaqView(_SectionViewBase):
    view: Literal["faq"] = "faq"
    heading: str
    items: list[FaqItem]


class CtaView(_SectionViewBase):
    view: Literal["cta"] = "cta"
    heading: str
    body: str
    cta: LinkView


class FooterView(_SectionViewBase):
    view: Literal["footer"] = "footer"
    body: str


class RawView(_SectionViewBase):
    view: Literal["raw"] = "raw"
    html: str


SectionView = Annotated[
    Union[HeroView, FeatureView, TestimonialView, PricingView, FaqView, CtaView, FooterView, RawView],
    Field(discriminator="view"),
]


class PageView(BaseModel):
    layoutId: str
    pageId: str
    slug: str
    locale: str
    theme: ThemeTokens
    metadata: LayoutMetadata
    sections: list[SectionView]


def _text(key: str, label: str, value: str) -> dict:
    return {"kind": "text", "key": key, "label": label, "value": value, "multiline": False}


def _rich(key: str, label: str, markdown: str) -> dict:
    return {"kind": "richText", "key": key, "label": label, "markdown": markdown}


def _default_block(block_id: str, label: str, *fields: dict) -> list[SectionBlock]:
    return [SectionBlock.model_validate({"id": block_id, "label": label, "sortOrder": 0, "fields": list(fields)})]


DEFAULT_FEATURE_BLOCKS = _default_block(
    "feature-1",
    "Feature one",
    _text("tagline", "Tagline", "Quality"),
    _text("title", "Title", "Premium experience"),
    _rich("description", "Description", "Deliver premium value with every interaction."),
)
DEFAULT_TESTIMONIAL_BLOCKS = _default_block(
    "testimonial-1",
    "Testimonial",
    _rich("quote", "Quote", "This service transformed our business."),
    _text("name", "Name", "Jordan Wells"),
    _text("role", "Role", "Founder, Horizon"),
)
DEFAULT_PRICING_BLOCKS = _default_block(
    "pricing-1",
    "Basic",
    _text("name", "Name", "Starter"),
    _text("price", "Price", "$49"),
    _text("billing", "Billing", "/mo"),
    _rich("description", "Description", "Great for early-stage teams getting started."),
)
DEFAULT_FAQ_BLOCKS = _default_block(
    "faq-1",
    "FAQ Item",
    _text("question", "Question", "How do I get started?"),
    _rich("answer", "Answer", "Simply reach out to our team and we will guide you through onboarding."),
)

DEFAULT_CTA_LINK = LinkView(href="#", text="Contact us", style="primary")


def _find(fields: Sequence[LayoutField], kind: str, key: str) -> Optional[LayoutField]:
    return next((item for item in fields if item.kind == kind and item.key == key), None)


def get_text(section: Section, key: str, fallback: str) -> str:
    field = _find(section.fields, "text", key)
    return field.value if isinstance(field, TextField) else fallback


def get_rich_text(section: Section, key: str, fallback: str) -> str:
    field = _find(section.fields, "richText", key)
    return field.markdown if isinstance(field, RichTextField) else fallback


def get_link(section: Section, key: str) -> Optional[LinkField]:
    field = _find(section.fields, "link", key)
    return field if isinstance(field, LinkField) else None


def get_image(section: Section, key: str) -> Optional[ImageField]:
    field = _find(section.fields, "image", key)
    return field if isinstance(field, ImageField) else None


def _block_value(fields: Sequence[LayoutField], key: str, fallback: str) -> str:
    field = next((item for item in fields if item.key == key), None)
    if field is None:
        return fallback
    match field:
        case TextField():
            return field.value
        case RichTextField():
            return field.markdown
        case ImageField() | LinkField() | ColorField() | ListField():
            return fallback
        case _:
            assert_never(field)


def _blocks(section: Section, defaults: list[SectionBlock]) -> list[SectionBlock]:
    if not section.blocks:
        return [block.model_copy(deep=True) for block in defaults]
    return sorted(section.blocks, key=lambda block: block.sortOrder)


def _base(section: Section) -> dict:
    return {
        "sectionId": section.id,
        "sectionType": section.type,
        "label": section.label,
        "variant": section.variant,
        "themeOverrides": section.themeOverrides,
    }


def render_hero(section: Section) -> HeroView:
    link = get_link(section, "primaryCta")
    image = get_image(section, "image")
    return HeroView(
        **_base(section),
        heading=get_text(section, "heading", "Build something remarkable"),
        body=get_rich_text(section, "body", "Describe your hero message here."),
        cta=LinkView(href=link.href or "#", text=link.text, style=link.style) if link else None,
        image=ImageView(url=image.url, alt=image.alt) if image else None,
    )


def render_features(section: Section) -> FeatureView:
    items = [
        FeatureItem(
            id=block.id,
            tagline=_block_value(block.fields, "tagline", "Feature"),
            title=_block_value(block.fields, "title", block.label),
            description=_block_value(block.fields, "description", "Add feature details"),
        )
        for block in _blocks(section, DEFAULT_FEATURE_BLOCKS)
    ]
    return FeatureView(
        **_base(section),
        heading=get_text(section, "heading", section.label),
        body=get_rich_text(section, "body", ""),
        items=items,
    )


def render_testimonials(section: Section) -> TestimonialView:
    items = [
        TestimonialItem(
            id=block.id,
            quote=_block_value(block.fields, "quote", "Incredible experience."),
            name=_block_value(block.fields, "name", "Happy Client"),
            role=_block_value(block.fields, "role", "Customer"),
        )
        for block in _blocks(section, DEFAULT_TESTIMONIAL_BLOCKS)
    ]
    return TestimonialView(**_base(section), heading=get_text(section, "heading", "What clients say"), items=items)


def render_pricing(section: Section) -> PricingView:
    plans = [
        PricingPlan(
            id=block.id,
            name=_block_value(block.fields, "name", block.label),
            price=_block_value(block.fields, "price", "$99"),
            billing=_block_value(block.fields, "billing", "/mo"),
            description=_block_value(block.fields, "description", "Add plan details"),
            featured=_block_value(block.fields, "featured", "") == "true",
        )
        for block in _blocks(section, DEFAULT_PRICING_BLOCKS)
    ]
    return PricingView(**_base(section), heading=get_text(section, "heading", "Pricing"), plans=plans)


def render_faq(section: Section) -> FaqView:
    items = [
        FaqItem(
            id=block.id,
            question=_block_value(block.fields, "question", block.label),
            answer=_block_value(block.fields, "answer", "Add your answer here"),
        )
        for block in _blocks(section, DEFAULT_FAQ_BLOCKS)
    ]
    return FaqView(**_base(section), heading=get_text(section, "heading", "Frequently asked questions"), items=items)


def render_cta(section: Section) -> CtaView:
    link = get_link(section, "primaryCta")
    return CtaView(
        **_base(section),
        heading=get_text(section, "heading", "Ready to get started?"),
        body=get_rich_text(section, "body", "Reach out to us to begin your journey."),
        cta=LinkView(href=link.href, text=link.text, style=link.style) if link else DEFAULT_CTA_LINK,
    )


def render_footer(section: Section) -> FooterView:
    return FooterView(**_base(section), body=get_rich_text(section, "body", "© Your company. All rights reserved."))


def render_raw(section: Section) -> RawView:
    # rawHtml is sanitized before it is stored.
    return RawView(**_base(section), html=get_rich_text(section, "rawHtml", ""))


SECTION_RENDERERS: dict[str, Callable[[Section], SectionView]] = {
    "hero": render_hero,
    "feature-grid": render_features,
    "value-prop": render_features,
    "testimonial": render_testimonials,
    "pricing": render_pricing,
    "faq": render_faq,
    "cta": render_cta,
    "footer": render_footer,
    "custom": render_raw,
}

_unrendered = set(SECTION_TYPES) - set(SECTION_RENDERERS)
if _unrendered:
    raise RuntimeError(f"No renderer registered for section types: {sorted(_unrendered)}")


def render_section(section: Section) -> SectionView:
    return SECTION_RENDERERS[section.type](section)


def render_layout(layout: PageLayout) -> PageView:
    """Render the public sections of ``layout`` in document order."""
    return PageView(
        layoutId=layout.id,
        pageId=layout.pageId,
        slug=layout.slug,
        locale=layout.locale,
        theme=layout.theme,
        metadata=layout.metadata,
        sections=[render_section(section) for section in layout.sections if section.visibility == "public"],
    )
