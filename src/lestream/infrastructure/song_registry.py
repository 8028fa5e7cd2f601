"""Song registry adapter backed by the catalog's JSON file."""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from tempfile import NamedTemporaryFile

from pydantic import ValidationError

from lestream.domain.models import Song
from lestream.song_catalog import SongEntry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JsonSongRegistry:
    """Reads and appends songs in a ``songs.json`` array file."""

    path: Path
    _guard: threading.Lock = field(default_factory=threading.Lock)

    def get_song(self, song_id: str) -> Song | None:
        for payload in self._load_payloads():
            if payload.get("id") == song_id:
                return SongEntry.model_validate(payload).to_song()
        return None

    def list_songs(self) -> list[Song]:
        songs: list[Song] = []
        for payload in self._load_payloads():
            try:
                songs.append(SongEntry.model_validate(payload).to_song())
            except ValidationError as error:
                logger.warning("Skipping malformed song entry", extra={"song_id": payload.get("id")}, exc_info=error)
        return songs

    def add_song(self, song: Song) -> Song:
        with self._guard:
            payloads = self._load_payloads()
            payloads.append(SongEntry.from_song(song).to_payload())
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile("w", encoding="utf-8", dir=self.path.parent, suffix=".tmp", delete=False) as handle:
                temp_name = handle.name
                try:
                    json.dump(payloads, handle, indent=2)
                except Exception:
                    handle.close()
                    os.unlink(temp_name)
                    raise
            os.replace(temp_name, self.path)
        return song

    def _load_payloads(self) -> list[dict]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, list):
            raise ValueError(f"Song catalog must be a JSON array: {self.path}")
        return payload
