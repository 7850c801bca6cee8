"""
Record

A mutable mapping from storage key to value, addressed by identity.

Value encoding:
    scalar          -> stored as-is (str/int/float/bool/None/opaque JSON)
    single link     -> {"__ref": data_id}
    plural link     -> {"__refs": [data_id | None, ...]}
    actor link      -> {"__ref": data_id, "__actorIdentifier": actor}

INVARIANTS:
- `__id` and `__typename` are written at creation
- Keys are only ever overwritten, never deleted
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterator, List, Optional, Tuple

from recordgraph.errors import RecordValueError

from .storage_keys import ACTOR_IDENTIFIER_KEY, ID_KEY, REF_KEY, REFS_KEY, TYPENAME_KEY


def _is_link(value: Any) -> bool:
    return isinstance(value, dict) and (REF_KEY in value or REFS_KEY in value)


class Record:
    """Single normalized entity."""

    __slots__ = ("_fields",)

    def __init__(self, data_id: str, type_name: str):
        self._fields: Dict[str, Any] = {ID_KEY: data_id, TYPENAME_KEY: type_name}

    @classmethod
    def from_dict(cls, fields: Dict[str, Any]) -> "Record":
        """Rebuild a record from its `to_dict()` form."""
        if not isinstance(fields.get(ID_KEY), str):
            raise RecordValueError(f"Record is missing a string `{ID_KEY}`: {fields!r}")
        record = cls(fields[ID_KEY], fields.get(TYPENAME_KEY))
        record._fields.update(copy.deepcopy(fields))
        return record

    # --- Identity ---

    @property
    def data_id(self) -> str:
        return self._fields[ID_KEY]

    @property
    def type_name(self) -> str:
        return self._fields[TYPENAME_KEY]

    # --- Raw mapping access ---

    def __contains__(self, storage_key: str) -> bool:
        return storage_key in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Record({self.data_id!r}, {self.type_name!r}, fields={len(self._fields)})"

    def get(self, storage_key: str, default: Any = None) -> Any:
        """Raw stored value (links in their encoded form)."""
        return self._fields.get(storage_key, default)

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._fields)

    # --- Scalars ---

    def get_value(self, storage_key: str) -> Any:
        value = self._fields.get(storage_key)
        if _is_link(value):
            raise RecordValueError(
                f"Expected a scalar (non-link) value for `{self.data_id}.{storage_key}` "
                f"but found a link: {value!r}."
            )
        return value

    def set_value(self, storage_key: str, value: Any) -> None:
        self._fields[storage_key] = value

    # --- Links ---

    def get_linked_record_id(self, storage_key: str) -> Optional[str]:
        """Linked identity at `storage_key`; None when absent or null."""
        link = self._fields.get(storage_key)
        if link is None:
            return None
        if not isinstance(link, dict) or REF_KEY not in link:
            raise RecordValueError(
                f"Expected `{self.data_id}.{storage_key}` to be a linked ID, was {link!r}."
            )
        return link[REF_KEY]

    def set_linked_record_id(self, storage_key: str, linked_id: str) -> None:
        self._fields[storage_key] = {REF_KEY: linked_id}

    def get_linked_record_ids(self, storage_key: str) -> Optional[List[Optional[str]]]:
        """Linked identities at `storage_key`; None when absent or null."""
        links = self._fields.get(storage_key)
        if links is None:
            return None
        if not isinstance(links, dict) or not isinstance(links.get(REFS_KEY), list):
            raise RecordValueError(
                f"Expected `{self.data_id}.{storage_key}` to contain an array of linked IDs, "
                f"got {links!r}."
            )
        return links[REFS_KEY]

    def set_linked_record_ids(self, storage_key: str, linked_ids: List[Optional[str]]) -> None:
        self._fields[storage_key] = {REFS_KEY: list(linked_ids)}

    def get_actor_linked_record_id(self, storage_key: str) -> Optional[Tuple[str, str]]:
        """(actor identifier, linked identity) at `storage_key`, or None."""
        link = self._fields.get(storage_key)
        if link is None:
            return None
        if not isinstance(link, dict) or REF_KEY not in link or ACTOR_IDENTIFIER_KEY not in link:
            raise RecordValueError(
                f"Expected `{self.data_id}.{storage_key}` to be an actor specific linked ID, "
                f"was {link!r}."
            )
        return link[ACTOR_IDENTIFIER_KEY], link[REF_KEY]

    def set_actor_linked_record_id(self, storage_key: str, actor_identifier: str, linked_id: str) -> None:
        self._fields[storage_key] = {REF_KEY: linked_id, ACTOR_IDENTIFIER_KEY: actor_identifier}
