from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar

from crediario.logging_config import STORE_LOGGER
from crediario.repositories.contracts import ChangeFeed, KeyValueStore

log = logging.getLogger(__name__)
store_log = logging.getLogger(STORE_LOGGER)

R = TypeVar("R")


class RecordStore(Generic[R]):
    """The in-memory list owned by one persisted slot.

    Every write is read-modify-write-notify: the new list replaces the old one
    in memory, is saved, and on success is published to every subscriber of
    the slot (including other stores opened on the same key). A failed save is
    logged; memory keeps the new list and nothing is published.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        notifier: ChangeFeed,
        key: str,
        decode: Callable[[Mapping[str, Any]], R],
        encode: Callable[[R], dict],
    ):
        self.kv = kv
        self.notifier = notifier
        self.key = key
        self._decode = decode
        self._encode = encode
        self._records: list[R] = self._decode_all(kv.load_all(key))
        self._unsubscribe = notifier.subscribe(key, self._on_change)

    def _decode_all(self, payload: Any) -> list[R]:
        if payload is None:
            return []
        if not isinstance(payload, list):
            log.warning("slot_not_a_list key=%s type=%s", self.key, type(payload).__name__)
            return []
        records: list[R] = []
        for index, raw in enumerate(payload):
            try:
                records.append(self._decode(raw))
            except (KeyError, TypeError, ValueError) as e:
                log.warning("record_skipped key=%s index=%s error=%s", self.key, index, e)
        return records

    def _on_change(self, _key: str, payload: Any) -> None:
        self._records = self._decode_all(payload)

    def _commit(self, records: list[R]) -> bool:
        self._records = records
        payload = [self._encode(r) for r in records]
        if not self.kv.save_all(self.key, payload):
            store_log.error("slot_not_persisted key=%s records=%s", self.key, len(records))
            return False
        self.notifier.publish(self.key, payload)
        return True

    def all(self) -> list[R]:
        return list(self._records)

    def get(self, record_id: str) -> Optional[R]:
        return next((r for r in self._records if getattr(r, "id") == record_id), None)

    def append(self, record: R) -> R:
        self._commit([*self._records, record])
        return record

    def replace(self, record_id: str, record: R) -> bool:
        if self.get(record_id) is None:
            return False
        self._commit([record if getattr(r, "id") == record_id else r for r in self._records])
        return True

    def remove(self, record_id: str) -> bool:
        remaining = [r for r in self._records if getattr(r, "id") != record_id]
        if len(remaining) == len(self._records):
            return False
        self._commit(remaining)
        return True

    def close(self) -> None:
        self._unsubscribe()
