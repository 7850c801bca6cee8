"""
Store Module

Records, record sources, identities and storage keys.
"""

from .client_id import CLIENT_ID_PREFIX, ROOT_ID, ROOT_TYPE, generate_client_id, is_client_id
from .record import Record
from .record_source import InMemoryRecordSource, RecordSource
from .storage_keys import (
    ID_KEY,
    TYPENAME_KEY,
    get_argument_values,
    get_handle_storage_key,
    get_module_component_key,
    get_module_operation_key,
    get_storage_key,
)
from .type_id import TYPE_SCHEMA_TYPE, generate_type_id

__all__ = [
    "CLIENT_ID_PREFIX",
    "ROOT_ID",
    "ROOT_TYPE",
    "generate_client_id",
    "is_client_id",
    "Record",
    "RecordSource",
    "InMemoryRecordSource",
    "ID_KEY",
    "TYPENAME_KEY",
    "get_argument_values",
    "get_handle_storage_key",
    "get_module_component_key",
    "get_module_operation_key",
    "get_storage_key",
    "TYPE_SCHEMA_TYPE",
    "generate_type_id",
]
