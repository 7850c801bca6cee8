"""Normalization selector: where to write, with which selections and variables."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from .nodes import NormalizationNode


class NormalizationSelector(BaseModel):
    """A selection tree anchored at a record identity."""

    model_config = ConfigDict(frozen=True)

    data_id: str
    node: NormalizationNode
    variables: Dict[str, Any] = Field(default_factory=dict)


def create_normalization_selector(
    node: Any,
    data_id: str,
    variables: Dict[str, Any],
) -> NormalizationSelector:
    return NormalizationSelector(data_id=data_id, node=node, variables=variables)
