"""
Property record storage.

The pipeline does not own property records; it reads the latest snapshot by
subject id whenever it evaluates criteria, so attributes refreshed by the
discovery feed are seen on the next transition.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Optional

from core.deal_flow.models import PropertyRecord


class RecordStore(ABC):
    """Abstract snapshot store of discovered property records."""

    @abstractmethod
    def get_record(self, subject_id: str) -> Optional[PropertyRecord]:
        """
        Fetch the latest snapshot for a property.

        Returns:
            PropertyRecord, or None if the property is no longer available.
        """

    @abstractmethod
    def put_record(self, record: PropertyRecord) -> None:
        """Store (or replace) the snapshot for record.id."""


class InMemoryRecordStore(RecordStore):
    """Record store held in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[str, PropertyRecord] = {}

    def get_record(self, subject_id: str) -> Optional[PropertyRecord]:
        with self._lock:
            return self._records.get(subject_id)

    def put_record(self, record: PropertyRecord) -> None:
        with self._lock:
            self._records[record.id] = record

    def remove_record(self, subject_id: str) -> None:
        """Drop a snapshot, e.g. when a listing is withdrawn."""
        with self._lock:
            self._records.pop(subject_id, None)
