"""
Durable storage backends for column preferences.

The contract is deliberately tiny: ``get(key) -> str | None`` and
``set(key, str)``. The column store owns the payload format and versioning;
a backend only moves strings.
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_SAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]")


class PreferenceStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryPreferenceStorage:
    """Dict-backed storage (process lifetime only)."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class FilePreferenceStorage:
    """File-based storage: one JSON document per key.

    Stores payloads under ``{directory}/{key}.json``. Keys with characters
    outside ``[A-Za-z0-9._-]`` are sanitized and suffixed with a short hash
    so distinct keys never share a file.

    Args:
        directory: Directory holding the preference files.
    """

    def __init__(self, directory: Path | str) -> None:
        self._dir = Path(directory)

    def _path(self, key: str) -> Path:
        safe = _SAFE_FILENAME.sub("_", key)
        if safe != key:
            digest = hashlib.sha256(key.encode()).hexdigest()[:8]
            safe = f"{safe}_{digest}"
        return self._dir / f"{safe}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not read preferences %s: %s", path.name, exc)
            return None

    def set(self, key: str, value: str) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)
        logger.debug("Saved preferences: %s", path.name)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
