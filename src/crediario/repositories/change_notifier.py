from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

from crediario.repositories.contracts import ChangeCallback

log = logging.getLogger(__name__)


class ChangeNotifier:
    """In-process broadcast of slot writes.

    Delivery is synchronous and follows subscription order. A failing
    subscriber is logged and skipped; the others still receive the payload.
    """

    def __init__(self):
        self._subscribers: dict[str, list[ChangeCallback]] = defaultdict(list)

    def subscribe(self, key: str, callback: ChangeCallback) -> Callable[[], None]:
        self._subscribers[key].append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers[key].remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, key: str, payload: Any) -> None:
        for callback in list(self._subscribers.get(key, ())):
            try:
                callback(key, payload)
            except Exception:
                log.exception("subscriber_failed key=%s callback=%r", key, callback)

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, ()))
