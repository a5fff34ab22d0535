from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

CUSTOMERS_KEY = "crediario_clientes"
TRANSACTIONS_KEY = "crediario_transacoes"
EXPENSES_KEY = "crediario_despesas"
CONFIG_KEY = "crediario_config"

ChangeCallback = Callable[[str, Any], None]


class KeyValueStore(Protocol):
    def load_all(self, key: str) -> Optional[Any]: ...
    def save_all(self, key: str, value: Any) -> bool: ...


class ChangeFeed(Protocol):
    def subscribe(self, key: str, callback: ChangeCallback) -> Callable[[], None]: ...
    def publish(self, key: str, payload: Any) -> None: ...
