"""JSON document stores backing the listening ledger and badge records."""

from __future__ import annotations

import copy
import json
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Protocol

from lestream import storage


class DocumentStore(Protocol):
    """Port for whole-document JSON persistence keyed by relative name."""

    def read(self, name: str) -> dict | None:
        """Return the document or ``None`` when missing."""

    def write(self, name: str, payload: dict) -> None:
        """Replace the document."""

    def list_names(self, prefix: str) -> list[str]:
        """List document names starting with ``prefix``."""


@dataclass(frozen=True, slots=True)
class FileDocumentStore:
    """Documents stored as JSON files under a root directory."""

    root: Path

    def read(self, name: str) -> dict | None:
        path = self.root / name
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def write(self, name: str, payload: dict) -> None:
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        # Readers only ever see a complete document.
        with NamedTemporaryFile("w", encoding="utf-8", dir=path.parent, suffix=".tmp", delete=False) as handle:
            temp_name = handle.name
            try:
                json.dump(payload, handle, indent=2, sort_keys=True)
            except Exception:
                handle.close()
                os.unlink(temp_name)
                raise
        os.replace(temp_name, path)

    def list_names(self, prefix: str) -> list[str]:
        base = self.root / prefix
        if not base.exists():
            return []
        return sorted(path.relative_to(self.root).as_posix() for path in base.rglob("*.json") if path.is_file())


@dataclass(frozen=True, slots=True)
class MinIODocumentStore:
    """Documents stored as JSON objects in S3-compatible object storage."""

    def read(self, name: str) -> dict | None:
        return storage.read_json_object(name)

    def write(self, name: str, payload: dict) -> None:
        storage.write_json_object(name, payload)

    def list_names(self, prefix: str) -> list[str]:
        return storage.list_object_names(prefix)


@dataclass(slots=True)
class InMemoryDocumentStore:
    """Process-local store used for simulated runs and tests."""

    documents: dict[str, dict] = field(default_factory=dict)
    _guard: threading.Lock = field(default_factory=threading.Lock)

    def read(self, name: str) -> dict | None:
        with self._guard:
            document = self.documents.get(name)
            return copy.deepcopy(document) if document is not None else None

    def write(self, name: str, payload: dict) -> None:
        with self._guard:
            self.documents[name] = copy.deepcopy(payload)

    def list_names(self, prefix: str) -> list[str]:
        with self._guard:
            return sorted(name for name in self.documents if name.startswith(prefix))
