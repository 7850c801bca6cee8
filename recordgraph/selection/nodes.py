"""
Selection Tree Nodes

Typed model of the compiler's normalization artifact. Artifacts arrive as
JSON with camelCase keys and a `kind` discriminator; they are validated once
here so the walker can rely on the node types instead of re-checking shape.

INVARIANTS:
- The set of node kinds is closed (see `Selection`).
- Nodes are immutable once parsed.
- Unknown artifact keys (metadata, cacheID, ...) are ignored.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Node(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


# =============================================================================
# Arguments
# =============================================================================

class LiteralArgument(_Node):
    """Argument whose value is fixed at compile time."""
    kind: Literal["Literal"] = "Literal"
    name: str
    value: Any = None
    type: Optional[str] = None


class VariableArgument(_Node):
    """Argument bound to an operation variable."""
    kind: Literal["Variable"] = "Variable"
    name: str
    variable_name: str = Field(alias="variableName")
    type: Optional[str] = None


class ObjectValueArgument(_Node):
    """Input-object argument built from nested arguments."""
    kind: Literal["ObjectValue"] = "ObjectValue"
    name: str
    object_fields: List["Argument"] = Field(default_factory=list, alias="fields")


class ListValueArgument(_Node):
    """List argument built from nested arguments (null entries allowed)."""
    kind: Literal["ListValue"] = "ListValue"
    name: str
    items: List[Optional["Argument"]] = Field(default_factory=list)


Argument = Annotated[
    Union[LiteralArgument, VariableArgument, ObjectValueArgument, ListValueArgument],
    Field(discriminator="kind"),
]


# =============================================================================
# Fields
# =============================================================================

class ScalarField(_Node):
    kind: Literal["ScalarField"] = "ScalarField"
    name: str
    alias: Optional[str] = None
    args: Optional[List[Argument]] = None
    storage_key: Optional[str] = Field(default=None, alias="storageKey")

    @property
    def response_key(self) -> str:
        return self.alias or self.name


class LinkedField(_Node):
    """
    Field pointing at one record (or a list of records when `plural`).

    `concrete_type` is None for fields of interface/union type; the record
    type is then read from the payload's `__typename`.
    """
    kind: Literal["LinkedField"] = "LinkedField"
    name: str
    alias: Optional[str] = None
    args: Optional[List[Argument]] = None
    storage_key: Optional[str] = Field(default=None, alias="storageKey")
    concrete_type: Optional[str] = Field(default=None, alias="concreteType")
    plural: bool = False
    selections: List["Selection"] = Field(default_factory=list)

    @property
    def response_key(self) -> str:
        return self.alias or self.name


class _HandleField(_Node):
    name: str
    alias: Optional[str] = None
    args: Optional[List[Argument]] = None
    handle: str
    key: str = ""
    filters: Optional[List[str]] = None
    handle_args: Optional[List[Argument]] = Field(default=None, alias="handleArgs")
    dynamic_key: Optional[Argument] = Field(default=None, alias="dynamicKey")
    storage_key: Optional[str] = Field(default=None, alias="storageKey")


class ScalarHandle(_HandleField):
    kind: Literal["ScalarHandle"] = "ScalarHandle"


class LinkedHandle(_HandleField):
    kind: Literal["LinkedHandle"] = "LinkedHandle"


# =============================================================================
# Control structures
# =============================================================================

class Condition(_Node):
    """@include/@skip: children apply only when the variable equals `passing_value`."""
    kind: Literal["Condition"] = "Condition"
    condition: str
    passing_value: bool = Field(alias="passingValue")
    selections: List["Selection"] = Field(default_factory=list)


class InlineFragment(_Node):
    """Type refinement; `abstract_key` set when `type` is an interface/union."""
    kind: Literal["InlineFragment"] = "InlineFragment"
    type: str
    abstract_key: Optional[str] = Field(default=None, alias="abstractKey")
    selections: List["Selection"] = Field(default_factory=list)


class TypeDiscriminator(_Node):
    kind: Literal["TypeDiscriminator"] = "TypeDiscriminator"
    abstract_key: str = Field(alias="abstractKey")


class ModuleImport(_Node):
    """@module: a dynamically selected sub-document."""
    kind: Literal["ModuleImport"] = "ModuleImport"
    document_name: str = Field(alias="documentName")
    fragment_name: Optional[str] = Field(default=None, alias="fragmentName")
    fragment_prop_name: Optional[str] = Field(default=None, alias="fragmentPropName")


class Defer(_Node):
    kind: Literal["Defer"] = "Defer"
    label: str
    if_: Optional[str] = Field(default=None, alias="if")
    selections: List["Selection"] = Field(default_factory=list)


class Stream(_Node):
    kind: Literal["Stream"] = "Stream"
    label: str
    if_: Optional[str] = Field(default=None, alias="if")
    selections: List["Selection"] = Field(default_factory=list)


class ClientExtension(_Node):
    """Fields that exist only on the client; the server never sends them."""
    kind: Literal["ClientExtension"] = "ClientExtension"
    selections: List["Selection"] = Field(default_factory=list)


class ActorChange(_Node):
    """Linked field whose target belongs to another actor (`actor_key`)."""
    kind: Literal["ActorChange"] = "ActorChange"
    linked_field: LinkedField = Field(alias="linkedField")


Selection = Annotated[
    Union[
        ScalarField,
        LinkedField,
        Condition,
        InlineFragment,
        TypeDiscriminator,
        ScalarHandle,
        LinkedHandle,
        ModuleImport,
        Defer,
        Stream,
        ClientExtension,
        ActorChange,
    ],
    Field(discriminator="kind"),
]


# =============================================================================
# Roots
# =============================================================================

class Operation(_Node):
    kind: Literal["Operation"] = "Operation"
    name: str
    selections: List[Selection] = Field(default_factory=list)


class SplitOperation(_Node):
    """Normalization root of a @module sub-document."""
    kind: Literal["SplitOperation"] = "SplitOperation"
    name: str
    selections: List[Selection] = Field(default_factory=list)


NormalizationNode = Annotated[
    Union[
        Operation,
        SplitOperation,
        LinkedField,
        Condition,
        InlineFragment,
        Defer,
        Stream,
        ClientExtension,
    ],
    Field(discriminator="kind"),
]


for _model in (
    ObjectValueArgument,
    ListValueArgument,
    LinkedField,
    Condition,
    InlineFragment,
    Defer,
    Stream,
    ClientExtension,
    ActorChange,
    Operation,
    SplitOperation,
):
    _model.model_rebuild()


_NODE_ADAPTER: TypeAdapter = TypeAdapter(NormalizationNode)


def parse_normalization_node(data: Dict[str, Any]):
    """Validate a compiled normalization node (raises pydantic.ValidationError)."""
    return _NODE_ADAPTER.validate_python(data)


def load_operation(artifact: Dict[str, Any]):
    """
    Load the normalization root from a compiled artifact.

    Accepts a full `Request` artifact (uses its `operation`) or a bare
    normalization node.
    """
    if artifact.get("kind") == "Request":
        return parse_normalization_node(artifact["operation"])
    return parse_normalization_node(artifact)
