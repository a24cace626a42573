"""Structured diagnostics emitted while assembling features.

Every event is recorded in order and also written to the standard logger,
so a build tool can either render the collected list or rely on logging.
"""

import logging
from enum import Enum

from pydantic import BaseModel, Field

from ..core.models import Identity


logger = logging.getLogger(__name__)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class DiagnosticKind(str, Enum):
    CYCLE_DETECTED = "cycle_detected"
    FEATURE_NOT_FOUND = "feature_not_found"
    DUPLICATE_CLASSIFIER = "duplicate_classifier"
    MISSING_CLASSIFIER = "missing_classifier"
    AMBIGUOUS_PACKAGED_UNIT = "ambiguous_packaged_unit"
    EXTERNAL_RESOLUTION_FAILURE = "external_resolution_failure"


class Diagnostic(BaseModel):
    """One diagnostic event."""

    kind: DiagnosticKind
    severity: Severity = Severity.ERROR
    module: str = Field(description="Id of the module the event originates from")
    identity: Identity | None = None
    locations: list[str] = Field(default_factory=list)
    message: str


class Diagnostics:
    """Ordered collection of diagnostics for one build session."""

    def __init__(self) -> None:
        self._events: list[Diagnostic] = []

    def __iter__(self):
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> list[Diagnostic]:
        return list(self._events)

    @property
    def has_errors(self) -> bool:
        return any(e.severity == Severity.ERROR for e in self._events)

    def by_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [e for e in self._events if e.kind == kind]

    def report(
        self,
        kind: DiagnosticKind,
        module: str,
        message: str,
        *,
        identity: Identity | None = None,
        locations: list[str] | None = None,
        severity: Severity = Severity.ERROR,
    ) -> Diagnostic:
        event = Diagnostic(
            kind=kind,
            severity=severity,
            module=module,
            identity=identity,
            locations=list(locations or []),
            message=message,
        )
        self._events.append(event)
        if severity == Severity.ERROR:
            logger.error("[%s] %s", kind.value, message)
        else:
            logger.warning("[%s] %s", kind.value, message)
        return event
