"""
Storage Keys

Reserved record keys and the derivation of a field's storage key from its
name and applied arguments. Two selections of the same field with different
arguments must land in different slots of the record, so arguments are part
of the key: `friends(first:10,orderby:"name")`.
"""

import json
from typing import Any, Dict, List, Optional

from recordgraph.errors import UndefinedVariableError
from recordgraph.selection.nodes import (
    ListValueArgument,
    LiteralArgument,
    ObjectValueArgument,
    VariableArgument,
)

ID_KEY = "__id"
TYPENAME_KEY = "__typename"
REF_KEY = "__ref"
REFS_KEY = "__refs"
ACTOR_IDENTIFIER_KEY = "__actorIdentifier"

MODULE_COMPONENT_KEY_PREFIX = "__module_component_"
MODULE_OPERATION_KEY_PREFIX = "__module_operation_"


def stable_copy(value: Any) -> Any:
    """Copy `value` with dict keys sorted recursively."""
    if isinstance(value, dict):
        return {key: stable_copy(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [stable_copy(item) for item in value]
    return value


def get_stable_variable_value(name: str, variables: Dict[str, Any]) -> Any:
    if name not in variables:
        raise UndefinedVariableError(name)
    return stable_copy(variables[name])


def get_argument_value(arg, variables: Dict[str, Any]) -> Any:
    if isinstance(arg, VariableArgument):
        return get_stable_variable_value(arg.variable_name, variables)
    if isinstance(arg, LiteralArgument):
        return arg.value
    if isinstance(arg, ObjectValueArgument):
        return {field.name: get_argument_value(field, variables) for field in arg.object_fields}
    if isinstance(arg, ListValueArgument):
        return [get_argument_value(item, variables) for item in arg.items if item is not None]
    raise TypeError(f"Unsupported argument kind: {type(arg).__name__}")


def get_argument_values(args: List[Any], variables: Dict[str, Any]) -> Dict[str, Any]:
    return {arg.name: get_argument_value(arg, variables) for arg in args}


def _integral_floats_as_ints(value: Any) -> Any:
    """Render `1.0` as `1` so float and int arguments share a storage key."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {key: _integral_floats_as_ints(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_integral_floats_as_ints(item) for item in value]
    return value


def format_storage_key(name: str, arg_values: Optional[Dict[str, Any]]) -> str:
    """
    Format `name(arg1:<json>,arg2:<json>)`.

    Arguments are ordered by name; null-valued arguments are omitted, and a
    field whose arguments are all null keeps its bare name.
    """
    if not arg_values:
        return name
    values = [
        f"{arg_name}:{json.dumps(_integral_floats_as_ints(arg_values[arg_name]), separators=(',', ':'), ensure_ascii=False)}"
        for arg_name in sorted(arg_values)
        if arg_values[arg_name] is not None
    ]
    if not values:
        return name
    return f"{name}({','.join(values)})"


def get_storage_key(field, variables: Dict[str, Any]) -> str:
    """Storage key of a field or handle: precomputed key, else name plus arguments."""
    if field.storage_key:
        return field.storage_key
    if field.args:
        return format_storage_key(field.name, get_argument_values(field.args, variables))
    return field.name


def get_handle_key(handle: str, key: str, field_name: str) -> str:
    if key:
        return f"__{key}_{handle}"
    return f"__{field_name}_{handle}"


def get_handle_storage_key(handle_field, variables: Dict[str, Any]) -> str:
    """
    Storage key under which a handle writes its transformed value.

    Only the arguments named in `filters` (plus the dynamic key, if any)
    distinguish handle slots.
    """
    handle_name = get_handle_key(handle_field.handle, handle_field.key, handle_field.name)
    filter_args = None
    if handle_field.args and handle_field.filters:
        filter_args = [arg for arg in handle_field.args if arg.name in handle_field.filters]
    if handle_field.dynamic_key is not None:
        filter_args = (filter_args or []) + [handle_field.dynamic_key]
    if filter_args is None:
        return handle_name
    return format_storage_key(handle_name, get_argument_values(filter_args, variables))


def get_module_component_key(document_name: str) -> str:
    return f"{MODULE_COMPONENT_KEY_PREFIX}{document_name}"


def get_module_operation_key(document_name: str) -> str:
    return f"{MODULE_OPERATION_KEY_PREFIX}{document_name}"
