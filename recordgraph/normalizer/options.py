"""Per-call normalization options."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from recordgraph.config import config

from .diagnostics import DiagnosticsSink

# (payload object, type name) -> identity, or a falsy value when unknown
GetDataID = Callable[[Dict[str, Any], str], Any]


def default_get_data_id(field_value: Dict[str, Any], type_name: str) -> Any:
    """Server identity is the object's `id` field."""
    return field_value.get("id")


@dataclass
class NormalizationOptions:
    """
    Options for one normalize() call.

    Attributes:
        get_data_id: Identity resolver applied to every linked object
        treat_missing_fields_as_null: Server prunes null fields, so an absent
            field means null rather than "not fetched"
        path: Response path of the selector's root inside the full response
        diagnostics: Advisory sink; None selects the configured default
    """
    get_data_id: GetDataID = default_get_data_id
    treat_missing_fields_as_null: bool = config.normalizer.treat_missing_fields_as_null
    path: Optional[Sequence[str]] = None
    diagnostics: Optional[DiagnosticsSink] = None
