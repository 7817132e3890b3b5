from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class ImpactEngineError(Exception):
    """Base class for everything the engine raises on purpose."""


class InvalidInputError(ImpactEngineError):
    """Scenario or mitigation failed validation. Fatal; carries every offending field."""

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        fields = ", ".join(e.field for e in self.errors) or "<unknown>"
        super().__init__(f"Invalid input for field(s): {fields}")

    def details(self) -> list[dict]:
        return [e.as_dict() for e in self.errors]


class MissingDataError(ImpactEngineError):
    """External data is unavailable; the dependent report field degrades to 'unavailable'."""


class NumericDomainError(ImpactEngineError):
    """Input would drive a formula outside its domain (e.g. zero normal velocity)."""


class ProviderError(ImpactEngineError):
    """Upstream data service failed. status_code mirrors the HTTP status the service should surface."""

    def __init__(self, message: str, status_code: int = 502):
        self.status_code = status_code
        super().__init__(message)
