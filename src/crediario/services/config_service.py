from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from crediario.domain.errors import ValidationError
from crediario.domain.models import AppConfig
from crediario.logging_config import STORE_LOGGER
from crediario.repositories.contracts import CONFIG_KEY, ChangeFeed, KeyValueStore
from crediario.services.validators import check_fields, to_amount

log = logging.getLogger(STORE_LOGGER)

_UPDATABLE = {
    "business_name",
    "business_phone",
    "collection_message_template",
    "default_daily_interest_rate",
    "notifications_enabled",
}


class ConfigService:
    def __init__(self, kv: KeyValueStore, notifier: ChangeFeed):
        self.kv = kv
        self.notifier = notifier
        self._config = self._decode(kv.load_all(CONFIG_KEY))
        self._unsubscribe = notifier.subscribe(CONFIG_KEY, self._on_change)

    def _decode(self, payload: Any) -> AppConfig:
        if payload is None:
            return AppConfig()
        if not isinstance(payload, dict):
            log.warning("config_not_a_mapping type=%s", type(payload).__name__)
            return AppConfig()
        try:
            return AppConfig.from_dict(payload)
        except (TypeError, ValueError) as e:
            log.warning("config_invalid error=%s", e)
            return AppConfig()

    def _on_change(self, _key: str, payload: Any) -> None:
        self._config = self._decode(payload)

    def get(self) -> AppConfig:
        return self._config

    def update(self, **changes: Any) -> AppConfig:
        check_fields(changes, _UPDATABLE, set(), "Config")

        normalized: dict = {}
        for key, value in changes.items():
            if key == "default_daily_interest_rate":
                rate = to_amount(value, "Default daily interest rate")
                if rate < 0:
                    raise ValidationError("Default daily interest rate must be >= 0.")
                normalized[key] = rate
            elif key == "notifications_enabled":
                normalized[key] = bool(value)
            else:
                normalized[key] = str(value or "").strip()

        if not normalized.get("business_name", self._config.business_name):
            raise ValidationError("Business name is required.")

        self._config = replace(self._config, **normalized)
        payload = self._config.to_dict()
        if self.kv.save_all(CONFIG_KEY, payload):
            self.notifier.publish(CONFIG_KEY, payload)
            log.info("config_updated fields=%s", ",".join(sorted(changes)))
        else:
            log.error("config_not_persisted fields=%s", ",".join(sorted(changes)))
        return self._config

    def close(self) -> None:
        self._unsubscribe()
