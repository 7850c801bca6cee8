"""
Diagnostics

Advisory consistency signals raised while normalizing. A diagnostic never
changes what gets written; it only reports that the payload looked
inconsistent (a missing field, one id carrying two types, one slot written
with two values, ...).

The sink is injected into the walker. Which sink is used is a
configuration decision (RECORDGRAPH_DIAGNOSTICS):
    off     -> NullDiagnostics (checks are skipped entirely)
    log     -> LoggingDiagnostics
    collect -> CollectingDiagnostics (also logs)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from recordgraph.config import config

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    """Kinds of advisory signals."""

    MISSING_FIELD = "missing_field"
    CONFLICTING_SCALAR = "conflicting_scalar"
    CONFLICTING_LINK = "conflicting_link"
    TYPE_MISMATCH = "type_mismatch"
    NON_BOOLEAN_CONDITION = "non_boolean_condition"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    data_id: Optional[str] = None
    storage_key: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class DiagnosticsSink(ABC):
    """Receives advisory diagnostics."""

    # When False the walker skips consistency checks altogether.
    enabled: bool = True

    @abstractmethod
    def report(self, diagnostic: Diagnostic) -> None:
        pass


class NullDiagnostics(DiagnosticsSink):
    """Production sink: drops everything."""

    enabled = False

    def report(self, diagnostic: Diagnostic) -> None:
        pass


class LoggingDiagnostics(DiagnosticsSink):
    """Development sink: one warning per diagnostic."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def report(self, diagnostic: Diagnostic) -> None:
        self._log.warning(f"[{diagnostic.kind.value}] {diagnostic.message}")


class CollectingDiagnostics(DiagnosticsSink):
    """Keeps every diagnostic for later inspection (tests, tooling)."""

    def __init__(self, forward: Optional[DiagnosticsSink] = None):
        self.diagnostics: List[Diagnostic] = []
        self._forward = forward

    def report(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        if self._forward is not None:
            self._forward.report(diagnostic)

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    def clear(self) -> None:
        self.diagnostics.clear()


def default_diagnostics() -> DiagnosticsSink:
    """Sink selected by configuration."""
    mode = config.normalizer.diagnostics
    if mode == "off":
        return NullDiagnostics()
    if mode == "collect":
        return CollectingDiagnostics(forward=LoggingDiagnostics())
    if mode != "log":
        logger.warning(f"Unknown diagnostics mode {mode!r}, falling back to 'log'")
    return LoggingDiagnostics()
