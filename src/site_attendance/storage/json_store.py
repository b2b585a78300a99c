from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

import structlog

from .store import ChangeListener, KeyValueStore

logger = structlog.get_logger(__name__)


class JsonFileStore(KeyValueStore):
    """Stores the state blob as a JSON file.

    Writes go through a temp file + `os.replace` so readers never see a partial
    document. External writes are detected by `poll()` comparing the file's
    modification stamp against the one left by our own last save.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._listeners: list[ChangeListener] = []
        self._stamp = self._current_stamp()

    @property
    def path(self) -> Path:
        return self._path

    def _current_stamp(self) -> Optional[tuple[int, int]]:
        try:
            st = self._path.stat()
        except FileNotFoundError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def load(self) -> Optional[dict]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        self._stamp = self._current_stamp()
        if not raw.strip():
            return None
        return json.loads(raw)

    def save(self, blob: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=self._path.name, suffix=".tmp", dir=str(self._path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(blob, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self._path)
        except Exception:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        self._stamp = self._current_stamp()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def poll(self) -> bool:
        """Fire listeners if someone else rewrote the file since we last touched it."""
        stamp = self._current_stamp()
        if stamp is None or stamp == self._stamp:
            return False

        try:
            blob = self.load()
        except ValueError as e:
            # Half-written or hand-edited file; the in-memory state stays authoritative.
            logger.warning("external_store_unreadable", path=str(self._path), error=str(e))
            return False
        if blob is None:
            return False

        logger.info("external_store_change", path=str(self._path))
        for listener in list(self._listeners):
            listener(blob)
        return True
