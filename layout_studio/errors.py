from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str
    code: str = "invalid"

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class LayoutStudioError(RuntimeError):
    pass


class LayoutValidationError(LayoutStudioError):
    """Every schema violation found in one payload, reported together."""

    def __init__(self, issues: Iterable[ValidationIssue]) -> None:
        self.issues: list[ValidationIssue] = list(issues)
        summary = "; ".join(f"{issue.field or '<root>'}: {issue.message}" for issue in self.issues[:5])
        super().__init__(f"Validation failed ({len(self.issues)} issue(s)): {summary}")

    def to_response(self) -> dict:
        return {"error": "Validation failed", "details": [issue.as_dict() for issue in self.issues]}


class NotFoundError(LayoutStudioError):
    pass


class OwnershipError(LayoutStudioError):
    def __init__(self, message: str = "Forbidden: You do not own this resource") -> None:
        super().__init__(message)


class DocumentMismatchError(LayoutStudioError):
    def __init__(self, *, expected_page_id: str, layout_page_id: str) -> None:
        self.expected_page_id = expected_page_id
        self.layout_page_id = layout_page_id
        super().__init__("Layout page mismatch")


class PublishConsistencyError(LayoutStudioError):
    """Publish could not leave exactly one published version for the blueprint."""

    def __init__(self, message: str, *, blueprint_id: str, version_id: str | None = None) -> None:
        self.blueprint_id = blueprint_id
        self.version_id = version_id
        super().__init__(message)
