"""Identities of type-refinement records (abstract type membership per concrete type)."""

from .client_id import CLIENT_ID_PREFIX

TYPE_SCHEMA_TYPE = "__TypeSchema"


def generate_type_id(type_name: str) -> str:
    return f"{CLIENT_ID_PREFIX}__type:{type_name}"
