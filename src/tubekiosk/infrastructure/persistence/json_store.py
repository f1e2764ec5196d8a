"""Whole-document JSON persistence under the data directory."""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from copy import deepcopy
from pathlib import Path
from typing import Any

import structlog

from tubekiosk.domain.errors import PersistenceError

log = structlog.get_logger(__name__)


class JsonDocumentStore:
    """Reads and atomically replaces small JSON documents.

    - A missing document is created with its default on first read.
    - An unreadable or corrupt document yields the default (logged, not raised).
    - A write lands in a temp file next to the target, then ``os.replace``.
    Blocking file I/O runs in a worker thread.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir

    def path_for(self, name: str) -> Path:
        return self.data_dir / name

    async def read(self, name: str, default: Any) -> Any:
        return await asyncio.to_thread(self._read_sync, name, default)

    async def write(self, name: str, data: Any) -> None:
        await asyncio.to_thread(self._write_sync, name, data)

    def _read_sync(self, name: str, default: Any) -> Any:
        path = self.path_for(name)

        if not path.exists():
            try:
                self._write_sync(name, default)
                log.info("document_created", document=name, path=str(path))
            except PersistenceError as exc:
                log.error("document_create_failed", document=name, error=str(exc))
            return deepcopy(default)

        try:
            raw = path.read_text(encoding="utf-8")
            data = json.loads(raw) if raw.strip() else None
        except (OSError, ValueError) as exc:
            log.error("document_read_failed", document=name, error=str(exc))
            return deepcopy(default)

        if data is None:
            return deepcopy(default)
        return data

    def _write_sync(self, name: str, data: Any) -> None:
        path = self.path_for(name)
        tmp_path: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"cannot write {name}: {exc}") from exc
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
