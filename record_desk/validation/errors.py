from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str


class ValidationError(Exception):
    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("\n".join(f"{i.code}: {i.message}" for i in issues))

    @property
    def messages(self) -> list[str]:
        return [i.message for i in self.issues]


class ImportFormatError(ValidationError):
    """An import payload was rejected as a whole; nothing was committed."""
    pass
