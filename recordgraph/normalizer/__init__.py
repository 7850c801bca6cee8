"""
Normalizer Module

Response payload -> normalized records. `normalize()` is the entry point;
everything it cannot resolve synchronously comes back on the result.
"""

from .contracts import (
    ActorPayload,
    DeferPlaceholder,
    HandleFieldPayload,
    IncrementalDataPlaceholder,
    ModuleImportPayload,
    NormalizationResult,
    StreamPlaceholder,
)
from .diagnostics import (
    CollectingDiagnostics,
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    LoggingDiagnostics,
    NullDiagnostics,
    default_diagnostics,
)
from .options import GetDataID, NormalizationOptions, default_get_data_id
from .walker import ResponseNormalizer, TraversalContext, normalize

__all__ = [
    "normalize",
    "ResponseNormalizer",
    "TraversalContext",
    "NormalizationOptions",
    "GetDataID",
    "default_get_data_id",
    "NormalizationResult",
    "HandleFieldPayload",
    "DeferPlaceholder",
    "StreamPlaceholder",
    "IncrementalDataPlaceholder",
    "ModuleImportPayload",
    "ActorPayload",
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticsSink",
    "NullDiagnostics",
    "LoggingDiagnostics",
    "CollectingDiagnostics",
    "default_diagnostics",
]
