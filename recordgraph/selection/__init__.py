"""
Selection Module

Compiled selection trees (what the query asked for) and the selectors that
anchor them at a record.
"""

from .nodes import (
    ActorChange,
    Argument,
    ClientExtension,
    Condition,
    Defer,
    InlineFragment,
    LinkedField,
    LinkedHandle,
    ListValueArgument,
    LiteralArgument,
    ModuleImport,
    NormalizationNode,
    ObjectValueArgument,
    Operation,
    ScalarField,
    ScalarHandle,
    Selection,
    SplitOperation,
    Stream,
    TypeDiscriminator,
    VariableArgument,
    load_operation,
    parse_normalization_node,
)
from .selector import NormalizationSelector, create_normalization_selector

__all__ = [
    "ActorChange",
    "Argument",
    "ClientExtension",
    "Condition",
    "Defer",
    "InlineFragment",
    "LinkedField",
    "LinkedHandle",
    "ListValueArgument",
    "LiteralArgument",
    "ModuleImport",
    "NormalizationNode",
    "ObjectValueArgument",
    "Operation",
    "ScalarField",
    "ScalarHandle",
    "Selection",
    "SplitOperation",
    "Stream",
    "TypeDiscriminator",
    "VariableArgument",
    "load_operation",
    "parse_normalization_node",
    "NormalizationSelector",
    "create_normalization_selector",
]
