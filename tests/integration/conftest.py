"""Shared fixtures for integration tests.

These tests use real infrastructure components (JsonDocumentStore, the JSON
repositories, the FastAPI app) on a temporary data directory.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from tubekiosk.infrastructure.persistence.json_store import JsonDocumentStore


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture()
def store(data_dir: Path) -> JsonDocumentStore:
    return JsonDocumentStore(data_dir)


@pytest.fixture()
def write_document(data_dir: Path) -> Callable[[str, Any], Path]:
    """Seed a JSON document under the data directory."""

    def _write(name: str, data: Any) -> Path:
        path = data_dir / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def read_document(data_dir: Path) -> Callable[[str], Any]:
    def _read(name: str) -> Any:
        return json.loads((data_dir / name).read_text(encoding="utf-8"))

    return _read
