from __future__ import annotations

from dataclasses import dataclass


class EyeCareError(Exception):
    """Base class for every failure surfaced by the record services."""


class ConstraintViolation(EyeCareError):
    pass


class NotFound(EyeCareError):
    pass


class StorageUnavailable(EyeCareError):
    pass


class ParseError(EyeCareError):
    pass


class InvalidTransition(EyeCareError):
    pass


class RecordLocked(EyeCareError):
    pass


@dataclass(frozen=True)
class Violation:
    index: int | None
    field: str
    message: str

    def describe(self) -> str:
        if self.index is None:
            return f"{self.field}: {self.message}"
        return f"record {self.index}: {self.field}: {self.message}"

    def as_dict(self) -> dict[str, object]:
        return {"index": self.index, "field": self.field, "message": self.message}


class ValidationError(EyeCareError):
    def __init__(self, message: str, violations: list[Violation] | None = None) -> None:
        self.violations = list(violations or [])
        if self.violations:
            details = "; ".join(item.describe() for item in self.violations[:5])
            if len(self.violations) > 5:
                details += f" (+{len(self.violations) - 5} more)"
            message = f"{message}: {details}"
        super().__init__(message)
