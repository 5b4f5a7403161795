"""Key/value admin settings stored in ``admin_settings``."""

from typing import Any, Dict

from repositories.postgres_repo import PostgresRepository
from repositories.query_builder import QueryDescriptor
from utils.error_handling import ValidationError
from utils.validators import ensure_present

SETTINGS = "admin_settings"


class AdminSettingsRepository:
    """Read all settings as a dict; upsert one setting at a time."""

    def __init__(self, store: PostgresRepository):
        self.store = store

    def get_all(self) -> Dict[str, Any]:
        result = self.store.query(QueryDescriptor(collection=SETTINGS))
        return {row["setting_key"]: row["setting_value"] for row in result.rows}

    def update(self, key: str, value: Any) -> Dict[str, Any]:
        try:
            ensure_present(key, "setting_key")
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        row = self.store.upsert(
            SETTINGS, {"setting_key": key.strip(), "setting_value": value}, key="setting_key"
        )
        return {row["setting_key"]: row["setting_value"]}
