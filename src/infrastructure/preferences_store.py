# adega_delivery/src/infrastructure/preferences_store.py
from __future__ import annotations

import logging
import os
import tempfile
import time
from dataclasses import asdict
from typing import Any, Callable, Dict, Optional

import ujson as json

from src.core.config import PREFERENCES_NAMESPACE
from src.domain.entities import Preferences

log = logging.getLogger("infra.preferences")


class PreferencesStore:
    """
    Session preferences (dark mode, last filters, search) persisted as one
    namespaced JSON entry. Every save rewrites the whole entry through a
    temp file and os.replace, so readers never see a half-written file.

    With ttl_seconds set, sessions idle longer than that are treated as
    absent and dropped on the next save.
    """

    def __init__(
        self,
        path: str,
        namespace: str = PREFERENCES_NAMESPACE,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _read_entry(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f) or {}
        except ValueError:
            log.warning("Preferences file %s is not valid JSON, starting fresh", self.path)
            return {}
        return dict(raw.get(self.namespace) or {})

    def _expired(self, value: Any, now: float) -> bool:
        if self.ttl_seconds is None:
            return False
        stamp = value.get("updated_at") if isinstance(value, dict) else None
        # entries written before timestamps existed count as fresh
        return stamp is not None and now - float(stamp) > self.ttl_seconds

    def load(self, session_id: str) -> Preferences:
        value = self._read_entry().get(session_id)
        if value is not None and self._expired(value, self._clock()):
            return Preferences()
        return Preferences.from_dict(value)

    def save(self, session_id: str, prefs: Preferences) -> None:
        now = self._clock()
        entry = {k: v for k, v in self._read_entry().items() if not self._expired(v, now)}
        entry[session_id] = {**asdict(prefs), "updated_at": now}
        self._write_atomic({self.namespace: entry})

    def _write_atomic(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=directory or ".", prefix=".prefs-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise
