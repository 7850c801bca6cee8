"""
recordgraph

Normalizes GraphQL-style response trees into a flat, identity-addressed
record store, driven by the compiled selection tree of the query.
"""

from recordgraph.errors import (
    InvalidDataIDError,
    NormalizationError,
    PayloadShapeError,
    RecordValueError,
    RootRecordMissingError,
    UndefinedVariableError,
)
from recordgraph.normalizer import NormalizationOptions, NormalizationResult, normalize
from recordgraph.selection import NormalizationSelector, create_normalization_selector, load_operation
from recordgraph.store import ROOT_ID, InMemoryRecordSource, Record, RecordSource

__version__ = "0.3.0"

__all__ = [
    "__version__",
    "normalize",
    "NormalizationOptions",
    "NormalizationResult",
    "NormalizationSelector",
    "create_normalization_selector",
    "load_operation",
    "ROOT_ID",
    "Record",
    "RecordSource",
    "InMemoryRecordSource",
    "NormalizationError",
    "RootRecordMissingError",
    "UndefinedVariableError",
    "PayloadShapeError",
    "InvalidDataIDError",
    "RecordValueError",
]
