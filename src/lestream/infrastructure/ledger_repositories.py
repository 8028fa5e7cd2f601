"""Document-backed listening ledger and badge repositories."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator
from urllib.parse import quote, unquote

from lestream.domain.models import BadgeRecord, ListenerArtistStat, PendingBadgeSaga
from lestream.infrastructure.document_stores import DocumentStore

LISTENING_PREFIX = "listening/"
BADGES_PREFIX = "badges/"


class KeyedLock:
    """One re-entrant lock per key, created on demand."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.RLock())
        with lock:
            yield


def _document_name(prefix: str, listener_id: str) -> str:
    return f"{prefix}{quote(listener_id, safe='')}.json"


def _listener_from_name(prefix: str, name: str) -> str:
    return unquote(name[len(prefix) : -len(".json")])


def _stat_to_dict(stat: ListenerArtistStat) -> dict:
    return {
        "address": stat.recipient_address,
        "totalSeconds": stat.total_seconds,
        "lastUpdated": stat.last_updated.isoformat(),
    }


def _stat_from_dict(listener_id: str, artist_name: str, payload: dict) -> ListenerArtistStat:
    return ListenerArtistStat(
        listener_id=listener_id,
        artist_name=artist_name,
        recipient_address=payload.get("address", ""),
        total_seconds=float(payload.get("totalSeconds", 0)),
        last_updated=datetime.fromisoformat(payload["lastUpdated"]),
    )


def _badge_to_dict(record: BadgeRecord) -> dict:
    return {
        "artistName": record.artist_name,
        "tier": record.tier,
        "badgeObjectId": record.badge_object_id,
        "txDigest": record.settlement_reference,
        "accruedSeconds": record.accrued_seconds,
        "timestamp": record.timestamp.isoformat(),
    }


def _badge_from_dict(listener_id: str, payload: dict) -> BadgeRecord:
    return BadgeRecord(
        listener_id=listener_id,
        artist_name=payload["artistName"],
        tier=int(payload["tier"]),
        badge_object_id=payload.get("badgeObjectId", ""),
        settlement_reference=payload.get("txDigest", ""),
        accrued_seconds=int(payload.get("accruedSeconds", 0)),
        timestamp=datetime.fromisoformat(payload["timestamp"]),
    )


def _pending_to_dict(pending: PendingBadgeSaga) -> dict:
    return {
        "badgeObjectId": pending.badge_object_id,
        "mintReference": pending.mint_reference,
        "reportedSeconds": pending.reported_seconds,
        "completedSteps": list(pending.completed_steps),
        "lastReference": pending.last_reference,
        "startedAt": pending.started_at.isoformat(),
    }


def _pending_from_dict(listener_id: str, artist_name: str, payload: dict) -> PendingBadgeSaga:
    return PendingBadgeSaga(
        listener_id=listener_id,
        artist_name=artist_name,
        badge_object_id=payload.get("badgeObjectId", ""),
        mint_reference=payload.get("mintReference", ""),
        reported_seconds=int(payload.get("reportedSeconds", 0)),
        completed_steps=tuple(payload.get("completedSteps", ())),
        last_reference=payload.get("lastReference", ""),
        started_at=datetime.fromisoformat(payload["startedAt"]),
    )


@dataclass(slots=True)
class DocumentListeningLedger:
    """Listening ledger with one document per listener."""

    store: DocumentStore
    locks: KeyedLock = field(default_factory=KeyedLock)

    def locked(self, listener_id: str):
        return self.locks.hold(listener_id)

    def read_stats(self, listener_id: str) -> dict[str, ListenerArtistStat]:
        document = self.store.read(_document_name(LISTENING_PREFIX, listener_id)) or {}
        return {
            artist_name: _stat_from_dict(listener_id, artist_name, payload)
            for artist_name, payload in document.get("artists", {}).items()
        }

    def write_stats(self, listener_id: str, stats: dict[str, ListenerArtistStat]) -> None:
        self.store.write(
            _document_name(LISTENING_PREFIX, listener_id),
            {
                "listener": listener_id,
                "artists": {artist_name: _stat_to_dict(stat) for artist_name, stat in stats.items()},
            },
        )

    def list_listeners(self) -> list[str]:
        return [_listener_from_name(LISTENING_PREFIX, name) for name in self.store.list_names(LISTENING_PREFIX)]


@dataclass(slots=True)
class DocumentBadgeRepository:
    """Badge records and pending sagas with one document per listener."""

    store: DocumentStore
    locks: KeyedLock = field(default_factory=KeyedLock)

    def locked(self, listener_id: str):
        return self.locks.hold(listener_id)

    def get(self, listener_id: str, artist_name: str) -> BadgeRecord | None:
        payload = self._read(listener_id)["badges"].get(artist_name)
        return _badge_from_dict(listener_id, payload) if payload else None

    def list_for_listener(self, listener_id: str) -> list[BadgeRecord]:
        return [_badge_from_dict(listener_id, payload) for payload in self._read(listener_id)["badges"].values()]

    def save(self, record: BadgeRecord) -> None:
        with self.locked(record.listener_id):
            document = self._read(record.listener_id)
            document["badges"][record.artist_name] = _badge_to_dict(record)
            document["pending"].pop(record.artist_name, None)
            self._write(record.listener_id, document)

    def get_pending(self, listener_id: str, artist_name: str) -> PendingBadgeSaga | None:
        payload = self._read(listener_id)["pending"].get(artist_name)
        return _pending_from_dict(listener_id, artist_name, payload) if payload else None

    def save_pending(self, pending: PendingBadgeSaga) -> None:
        with self.locked(pending.listener_id):
            document = self._read(pending.listener_id)
            document["pending"][pending.artist_name] = _pending_to_dict(pending)
            self._write(pending.listener_id, document)

    def _read(self, listener_id: str) -> dict:
        document = self.store.read(_document_name(BADGES_PREFIX, listener_id)) or {}
        return {
            "listener": listener_id,
            "badges": dict(document.get("badges", {})),
            "pending": dict(document.get("pending", {})),
        }

    def _write(self, listener_id: str, document: dict) -> None:
        self.store.write(_document_name(BADGES_PREFIX, listener_id), document)
