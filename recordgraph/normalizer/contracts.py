"""
Normalization result contract models (v1).

Everything the walker hands back instead of resolving synchronously:
handle transforms, incremental placeholders, @module and actor payloads.
All of these are one-shot values consumed by a collaborator.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from recordgraph.selection.nodes import LinkedField, Stream
from recordgraph.selection.selector import NormalizationSelector
from recordgraph.store.record_source import RecordSource


class HandleFieldPayload(BaseModel):
    """Client-side field transform to apply after normalization."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    args: Dict[str, Any] = Field(default_factory=dict)
    data_id: str
    field_key: str
    handle: str
    handle_key: str
    handle_args: Dict[str, Any] = Field(default_factory=dict)


class DeferPlaceholder(BaseModel):
    """A @defer fragment whose data will arrive in a later chunk."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["defer"] = "defer"
    data: Dict[str, Any]
    label: str
    path: List[str]
    selector: NormalizationSelector
    type_name: str


class StreamPlaceholder(BaseModel):
    """A @stream list that will receive more items in later chunks."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["stream"] = "stream"
    label: str
    path: List[str]
    parent_id: str
    node: Stream
    variables: Dict[str, Any] = Field(default_factory=dict)


IncrementalDataPlaceholder = Annotated[
    Union[DeferPlaceholder, StreamPlaceholder],
    Field(discriminator="kind"),
]


class ModuleImportPayload(BaseModel):
    """Sub-document selected by @module, to be fetched and normalized later."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    data: Dict[str, Any]
    data_id: str
    operation_reference: Any
    path: List[str]
    type_name: str
    variables: Dict[str, Any] = Field(default_factory=dict)


class ActorPayload(BaseModel):
    """Linked subtree owned by another actor, normalized by that actor's store."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    data: Dict[str, Any]
    data_id: str
    path: List[str]
    type_name: str
    variables: Dict[str, Any] = Field(default_factory=dict)
    node: LinkedField
    actor_identifier: str


class NormalizationResult(BaseModel):
    """Outcome of one normalize() call."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    contract_version: Literal["v1"] = "v1"
    errors: Optional[List[Dict[str, Any]]] = None
    field_payloads: List[HandleFieldPayload] = Field(default_factory=list)
    incremental_placeholders: List[IncrementalDataPlaceholder] = Field(default_factory=list)
    module_import_payloads: List[ModuleImportPayload] = Field(default_factory=list)
    actor_payloads: List[ActorPayload] = Field(default_factory=list)
    source: RecordSource
    is_final: bool = False
