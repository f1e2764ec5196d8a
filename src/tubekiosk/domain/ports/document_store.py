"""Document Store Port - JSON documents keyed by file-like names."""

from __future__ import annotations

from typing import Any, Protocol


class DocumentStorePort(Protocol):
    """Port for whole-document JSON persistence.

    Writes are all-or-nothing (temp file + atomic rename).
    """

    async def read(self, name: str, default: Any) -> Any:
        """Return the document, or ``default`` when missing or unreadable."""
        ...

    async def write(self, name: str, data: Any) -> None:
        """Replace the document atomically. Raises ``PersistenceError``."""
        ...
