"""JSON persistence of the last observed status per product url."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional

from .stock import Status

logger = logging.getLogger(__name__)


class StatusStore:
    """
    url -> Status, persisted as one JSON object.

    Workers of a cycle write distinct keys concurrently; `save()` runs once
    after the cycle and replaces the file atomically.
    """

    def __init__(self, path: str | Path, initial: Optional[Mapping[str, Status]] = None) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._status: Dict[str, Status] = dict(initial or {})

    @classmethod
    def load(cls, path: str | Path) -> "StatusStore":
        """Empty store on a missing or unparseable file."""
        path = Path(path)
        if not path.exists():
            return cls(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read state file %s, starting empty: %s", path, e)
            return cls(path)

        # older files wrap the map as {"lastStatus": {...}}
        if isinstance(data, dict) and isinstance(data.get("lastStatus"), dict):
            data = data["lastStatus"]
        if not isinstance(data, dict):
            logger.warning("State file %s is not a JSON object, starting empty.", path)
            return cls(path)

        return cls(path, {str(url): Status.parse(value) for url, value in data.items()})

    def get(self, url: str) -> Status:
        with self._lock:
            return self._status.get(url, Status.UNKNOWN)

    def set(self, url: str, status: Status) -> None:
        with self._lock:
            self._status[url] = status

    def snapshot(self) -> Dict[str, Status]:
        with self._lock:
            return dict(self._status)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._status

    def __len__(self) -> int:
        with self._lock:
            return len(self._status)

    def save(self) -> None:
        """Write the whole map. OSError propagates to the caller."""
        data = {url: status.value for url, status in self.snapshot().items()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.path)


__all__ = ["StatusStore"]
