from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from .config import DB_URL, SETTINGS_FILE
from .settings_models import ShopDeliveryConfig
from .settings_parser import parse_settings_row, validate_settings_update

logger = logging.getLogger(__name__)


class SettingsStore:
    """Per-shop settings rows. Subclasses implement row read/write."""

    kind = "base"

    def __init__(self) -> None:
        # Serialises read-merge-write in update()
        self._update_lock = threading.Lock()

    def get_row(self, shop: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def _write_row(self, shop: str, row: Dict[str, Any]) -> None:
        raise NotImplementedError

    def get_config(self, shop: str) -> ShopDeliveryConfig:
        """Parsed config; unknown shops and broken rows get the default config."""
        try:
            row = self.get_row(shop)
        except Exception as e:
            logger.warning("Settings read failed for %s, using defaults: %s", shop, e)
            row = None
        return parse_settings_row(row)

    def update(self, shop: str, changes: Dict[str, Any]) -> ShopDeliveryConfig:
        columns = validate_settings_update(changes)
        with self._update_lock:
            row = dict(self.get_row(shop) or {})
            row.update(columns)
            self._write_row(shop, row)
        logger.info("Saved delivery settings for %s: %s", shop, sorted(columns))
        return parse_settings_row(row)


class InMemorySettingsStore(SettingsStore):
    kind = "memory"

    def __init__(self, rows: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        super().__init__()
        self._rows: Dict[str, Dict[str, Any]] = {k: dict(v) for k, v in (rows or {}).items()}
        self._lock = threading.Lock()

    def get_row(self, shop: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(shop)
            return dict(row) if row is not None else None

    def _write_row(self, shop: str, row: Dict[str, Any]) -> None:
        with self._lock:
            self._rows[shop] = dict(row)


class JsonFileSettingsStore(SettingsStore):
    """JSON object file keyed by shop domain; reloaded when its mtime changes."""

    kind = "json"

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._mtime: float = -1.0
        self._lock = threading.Lock()

    def _current_mtime(self) -> float:
        return self.path.stat().st_mtime if self.path.exists() else 0.0

    def ensure_latest(self) -> None:
        mtime = self._current_mtime()
        if mtime != self._mtime:
            self._rows = self._read_json()
            self._mtime = mtime

    def _read_json(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Settings file %s unreadable: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, dict)}

    def get_row(self, shop: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self.ensure_latest()
            row = self._rows.get(shop)
            return dict(row) if row is not None else None

    def _write_row(self, shop: str, row: Dict[str, Any]) -> None:
        with self._lock:
            self.ensure_latest()
            self._rows[shop] = dict(row)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(self._rows, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self.path)
            self._mtime = self._current_mtime()


class SqlSettingsStore(SettingsStore):
    """One row per shop holding the JSON-encoded settings row (SQLAlchemy Core)."""

    kind = "sql"

    def __init__(self, url: str) -> None:
        super().__init__()
        from sqlalchemy import create_engine, text

        self._text = text
        self.engine = create_engine(url, pool_pre_ping=True)
        with self.engine.begin() as conn:
            conn.execute(text(
                """
                CREATE TABLE IF NOT EXISTS delivery_settings (
                  shop TEXT PRIMARY KEY,
                  settings_json TEXT NOT NULL,
                  updated_at TEXT
                );
                """
            ))
        logger.info("DB initialized: delivery_settings table ready")

    def get_row(self, shop: str) -> Optional[Dict[str, Any]]:
        with self.engine.connect() as conn:
            res = conn.execute(
                self._text("SELECT settings_json FROM delivery_settings WHERE shop = :shop"),
                {"shop": shop},
            ).first()
        if res is None:
            return None
        try:
            row = json.loads(res[0] or "{}")
        except ValueError:
            logger.warning("Stored settings for %s are not valid JSON", shop)
            return None
        return row if isinstance(row, dict) else None

    def _write_row(self, shop: str, row: Dict[str, Any]) -> None:
        params = {
            "shop": shop,
            "js": json.dumps(row, ensure_ascii=False),
            "ts": datetime.now().isoformat(timespec="seconds"),
        }
        with self.engine.begin() as conn:
            updated = conn.execute(
                self._text("UPDATE delivery_settings SET settings_json = :js, updated_at = :ts WHERE shop = :shop"),
                params,
            )
            if not updated.rowcount:
                conn.execute(
                    self._text("INSERT INTO delivery_settings (shop, settings_json, updated_at) VALUES (:shop, :js, :ts)"),
                    params,
                )


@lru_cache(maxsize=1)
def get_settings_store() -> SettingsStore:
    if DB_URL:
        try:
            return SqlSettingsStore(DB_URL)
        except Exception as e:
            logger.exception(f"DB init failed, falling back: {e}")
    if SETTINGS_FILE:
        return JsonFileSettingsStore(SETTINGS_FILE)
    return InMemorySettingsStore()
