"""
Record Source

Mutable identity -> record storage that the normalizer writes into.

INVARIANTS:
- Keys are unique: one record per identity
- Writes are visible to the next read immediately (no staging)
- The source carries its own abstract-refinement policy so that every
  normalization against it behaves the same way
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from recordgraph.config import config

from .client_id import ROOT_ID, ROOT_TYPE
from .record import Record

logger = logging.getLogger(__name__)


class RecordSource(ABC):
    """Abstract mutable record source."""

    def __init__(self, precise_type_refinement: Optional[bool] = None):
        if precise_type_refinement is None:
            precise_type_refinement = config.normalizer.precise_type_refinement
        self._precise_type_refinement = bool(precise_type_refinement)

    @property
    def precise_type_refinement(self) -> bool:
        """
        Abstract-type refinement policy for this store.

        True: fragments on interfaces/unions are only normalized when the
        payload proves membership, and membership is memoized in type records.
        False (legacy): such fragments are always normalized.
        """
        return self._precise_type_refinement

    @abstractmethod
    def get(self, data_id: str) -> Optional[Record]:
        """Get a record by identity, or None."""
        pass

    @abstractmethod
    def set(self, data_id: str, record: Record) -> None:
        """Insert or replace the record at `data_id`."""
        pass

    @abstractmethod
    def get_record_ids(self) -> List[str]:
        """All identities in insertion order."""
        pass

    def has(self, data_id: str) -> bool:
        return self.get(data_id) is not None

    def size(self) -> int:
        return len(self.get_record_ids())

    def to_json(self) -> Dict[str, Dict[str, Any]]:
        """Plain-dict snapshot: identity -> record fields."""
        snapshot = {}
        for data_id in self.get_record_ids():
            record = self.get(data_id)
            if record is not None:
                snapshot[data_id] = record.to_dict()
        return snapshot


class InMemoryRecordSource(RecordSource):
    """Dict-backed record source."""

    def __init__(
        self,
        records: Optional[Dict[str, Record]] = None,
        *,
        precise_type_refinement: Optional[bool] = None,
    ):
        super().__init__(precise_type_refinement=precise_type_refinement)
        self._records: Dict[str, Record] = dict(records or {})

    @classmethod
    def create(
        cls,
        records: Optional[Dict[str, Dict[str, Any]]] = None,
        *,
        precise_type_refinement: Optional[bool] = None,
    ) -> "InMemoryRecordSource":
        """Build a source from a `to_json()` snapshot."""
        source = cls(precise_type_refinement=precise_type_refinement)
        for data_id, fields in (records or {}).items():
            source.set(data_id, Record.from_dict(fields))
        return source

    @classmethod
    def with_root(cls, *, precise_type_refinement: Optional[bool] = None) -> "InMemoryRecordSource":
        """Empty source holding only the query root record."""
        source = cls(precise_type_refinement=precise_type_refinement)
        source.set(ROOT_ID, Record(ROOT_ID, ROOT_TYPE))
        return source

    def __contains__(self, data_id: str) -> bool:
        return data_id in self._records

    def __repr__(self) -> str:
        return f"InMemoryRecordSource(records={len(self._records)})"

    def get(self, data_id: str) -> Optional[Record]:
        return self._records.get(data_id)

    def set(self, data_id: str, record: Record) -> None:
        if data_id != record.data_id:
            logger.warning(f"Storing record {record.data_id} under mismatched identity {data_id}")
        self._records[data_id] = record

    def get_record_ids(self) -> List[str]:
        return list(self._records)

    def size(self) -> int:
        return len(self._records)
