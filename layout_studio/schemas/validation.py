from __future__ import annotations

from typing import Any, Iterable

from pydantic import TypeAdapter, ValidationError

from layout_studio.errors import LayoutValidationError, ValidationIssue
from layout_studio.schemas.layout import FIELD_KINDS, LayoutField, PageLayout, Section

_FIELD_ADAPTER: TypeAdapter = TypeAdapter(LayoutField)


def _path(loc: Iterable[Any]) -> str:
    parts: list[str] = []
    previous: list[Any] = []
    for item in loc:
        # Discriminated unions insert the tag into the location ("fields", 0, "image", "url"),
        # or lead with it when a single field is validated.
        if (
            isinstance(item, str)
            and item in FIELD_KINDS
            and (
                not previous
                or (len(previous) >= 2 and isinstance(previous[-1], int) and previous[-2] == "fields")
            )
        ):
            previous.append(item)
            continue
        parts.append(str(item))
        previous.append(item)
    return ".".join(parts)


def _issues(errors: Iterable[dict], prefix: tuple[Any, ...] = ()) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            field=_path((*prefix, *error["loc"])),
            message=error["msg"],
            code=error["type"],
        )
        for error in errors
    ]


def issues_from_validation_error(exc: ValidationError, *, prefix: tuple[Any, ...] = ()) -> list[ValidationIssue]:
    return _issues(exc.errors(), prefix)


def issues_from_request_errors(errors: Iterable[dict]) -> list[ValidationIssue]:
    """FastAPI request errors with the leading request-part segment ("body", "query", ...) dropped."""
    trimmed = []
    for error in errors:
        loc = tuple(error.get("loc", ()))
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        trimmed.append({**error, "loc": loc})
    return _issues(trimmed)


def collect_layout_issues(raw: Any) -> list[ValidationIssue]:
    """Every violation in ``raw``; an empty list means the layout is valid."""
    try:
        PageLayout.model_validate(raw)
    except ValidationError as exc:
        return issues_from_validation_error(exc)
    return []


def validate_layout(raw: Any) -> PageLayout:
    try:
        return PageLayout.model_validate(raw)
    except ValidationError as exc:
        raise LayoutValidationError(issues_from_validation_error(exc)) from exc


def validate_section(raw: Any) -> Section:
    if isinstance(raw, Section):
        return raw
    try:
        return Section.model_validate(raw)
    except ValidationError as exc:
        raise LayoutValidationError(issues_from_validation_error(exc)) from exc


def validate_field(raw: Any) -> LayoutField:
    try:
        return _FIELD_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise LayoutValidationError(issues_from_validation_error(exc)) from exc
