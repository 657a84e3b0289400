# cellar/modules/receipt.py
"""
Installation receipts.

The installed database is a JSON object keyed by formula full name:

{
  "<full_name>": {
      "version": "1.2.3",
      "used_options": ["with-ssl"],
      "installed_at": "2026-01-01T00:00:00Z"
  },
  ...
}
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from cellar.modules import logger as _logger
from cellar.modules.config import config


class ReceiptError(Exception):
    pass


class ReceiptStore:
    def __init__(self, installed_db: Union[str, Dict[str, Any], None] = None,
                 logger: Optional[_logger.Logger] = None):
        """
        installed_db: path to the JSON database, or an already loaded dict.
        """
        self.log = logger or _logger.Logger("receipt")
        if isinstance(installed_db, dict):
            self.db_path = None
            self._db = installed_db
        else:
            path = installed_db or config.installed_db
            self.db_path = os.path.abspath(path)
            self._db = self._load()

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.db_path):
            self.log.debug(f"installed_db not found at {self.db_path}; starting empty")
            return {}
        try:
            with open(self.db_path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            self.log.error(f"Could not read installed_db {self.db_path}: {e}")
            raise ReceiptError(f"Could not read installed_db {self.db_path}: {e}") from e
        if not isinstance(data, dict):
            raise ReceiptError(f"installed_db {self.db_path} must hold a JSON object")
        return data

    def save(self):
        if not self.db_path:
            return
        os.makedirs(os.path.dirname(self.db_path), exist_ok=True)
        with open(self.db_path, "w", encoding="utf-8") as fh:
            json.dump(self._db, fh, indent=2)
        self.log.debug(f"installed_db saved to {self.db_path}")

    def receipt_for(self, formula) -> Optional[Dict[str, Any]]:
        entry = self._db.get(formula.full_name)
        if entry is None and formula.full_name != formula.name:
            entry = self._db.get(formula.name)
        return entry

    def installed_version(self, formula) -> Optional[str]:
        entry = self.receipt_for(formula)
        if not entry:
            return None
        return entry.get("version")

    def used_options_for(self, formula) -> List[str]:
        entry = self.receipt_for(formula)
        if not entry:
            return []
        return list(entry.get("used_options", []))

    def record(self, formula, used_options=()):
        self._db[formula.full_name] = {
            "version": formula.version,
            "used_options": list(used_options),
            "installed_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        self.log.info(f"Receipt recorded for {formula.full_name} {formula.version}")


_default_store: Optional[ReceiptStore] = None


def default_store() -> ReceiptStore:
    global _default_store
    if _default_store is None:
        _default_store = ReceiptStore()
    return _default_store


def set_default_store(store: Optional[ReceiptStore]):
    global _default_store
    _default_store = store
