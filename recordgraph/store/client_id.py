"""
Client Identities

Deterministic identities for records the server did not identify.

Design principles:
1. Same (parent, storage key, index) -> same ID, so re-normalizing the same
   shape reuses records instead of minting new ones
2. Every client ID starts with CLIENT_ID_PREFIX; server IDs never do
"""

from typing import Optional

CLIENT_ID_PREFIX = "client:"

# Anchor record for query roots
ROOT_ID = "client:root"
ROOT_TYPE = "__Root"


def generate_client_id(
    data_id: str,
    storage_key: str,
    index: Optional[int] = None,
) -> str:
    """
    Derive the client ID of the record stored at `storage_key` of `data_id`.

    Args:
        data_id: Identity of the parent record
        storage_key: Storage key of the linking field
        index: Position in a plural link, if any

    Returns:
        "client:<data_id>:<storage_key>[:<index>]" (prefix not repeated
        when the parent is itself a client record)
    """
    key = f"{data_id}:{storage_key}"
    if index is not None:
        key += f":{index}"
    if not key.startswith(CLIENT_ID_PREFIX):
        key = CLIENT_ID_PREFIX + key
    return key


def is_client_id(data_id: str) -> bool:
    return data_id.startswith(CLIENT_ID_PREFIX)
