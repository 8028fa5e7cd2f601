"""Application services for the listening ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable
from uuid import uuid4

from lestream.application.event_publisher import EventPublisher, NullEventPublisher
from lestream.application.ports import BadgeRepository, ListeningLedgerRepository, SongRegistry
from lestream.application.recipient_resolver import ResolveRecipient
from lestream.domain.errors import InvalidInput, NotFound, ResolutionError
from lestream.domain.events import ListeningRecorded, TierThresholdCrossed
from lestream.domain.models import ListenerArtistStat, ListeningUpdate, SongSplit, TierCrossing, TopListenerEntry
from lestream.domain.policies import DEFAULT_TIER_THRESHOLDS, TierThresholds
from lestream.domain.services import tier_for_seconds, validate_seconds

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(slots=True)
class RecordListening:
    """Use case that adds listened seconds to every collaborator of a song."""

    song_registry: SongRegistry
    ledger: ListeningLedgerRepository
    resolver: ResolveRecipient | None = None
    thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS
    event_publisher: EventPublisher = NullEventPublisher()
    clock: Callable[[], datetime] = _utcnow

    def run(
        self,
        listener_id: str,
        song_id: str,
        seconds: float,
        correlation_id: str | None = None,
    ) -> ListeningUpdate:
        listener_id = (listener_id or "").strip()
        if not listener_id:
            raise InvalidInput("listener id is required.", code="missing_listener")
        seconds = validate_seconds(seconds)

        song = self.song_registry.get_song(song_id)
        if song is None:
            raise NotFound(f"Song not found: {song_id}", code="song_not_found")

        run_correlation_id = correlation_id or str(uuid4())
        crossings: list[TierCrossing] = []
        touched: dict[str, ListenerArtistStat] = {}

        with self.ledger.locked(listener_id):
            stats = self.ledger.read_stats(listener_id)
            # Each split entry is credited, so an artist listed twice is credited twice.
            for split in song.splits:
                now = self.clock()
                stat = stats.get(split.ledger_name)
                if stat is None:
                    stat = ListenerArtistStat(
                        listener_id=listener_id,
                        artist_name=split.ledger_name,
                        recipient_address=self._first_listen_address(split),
                        total_seconds=0.0,
                        last_updated=now,
                    )
                    stats[split.ledger_name] = stat

                previous_tier = tier_for_seconds(stat.total_seconds, self.thresholds)
                stat.total_seconds += seconds
                stat.last_updated = now
                new_tier = tier_for_seconds(stat.total_seconds, self.thresholds)
                if new_tier > previous_tier:
                    crossings.append(TierCrossing(stat.artist_name, previous_tier, new_tier))
                touched[stat.artist_name] = stat

            self.ledger.write_stats(listener_id, stats)

        self.event_publisher.publish(
            ListeningRecorded(
                correlation_id=run_correlation_id,
                payload_summary={
                    "listener_id": listener_id,
                    "song_id": song.song_id,
                    "seconds": seconds,
                    "artist_count": len(touched),
                },
            )
        )
        for crossing in crossings:
            self.event_publisher.publish(
                TierThresholdCrossed(
                    correlation_id=run_correlation_id,
                    payload_summary={
                        "listener_id": listener_id,
                        "artist_name": crossing.artist_name,
                        "previous_tier": crossing.previous_tier,
                        "new_tier": crossing.new_tier,
                    },
                )
            )

        return ListeningUpdate(
            listener_id=listener_id,
            song_id=song.song_id,
            seconds=seconds,
            updated_stats=tuple(touched.values()),
            tier_crossings=tuple(crossings),
        )

    def get_stats(self, listener_id: str) -> tuple[ListenerArtistStat, ...]:
        return tuple(self.ledger.read_stats(listener_id).values())

    def top_listeners(
        self,
        artist_name: str,
        badges: BadgeRepository | None = None,
        limit: int = 10,
    ) -> tuple[TopListenerEntry, ...]:
        """Rank every listener of one artist by cumulative seconds."""

        if not artist_name:
            raise InvalidInput("artist name is required.", code="missing_artist")

        entries: list[TopListenerEntry] = []
        for listener_id in self.ledger.list_listeners():
            stat = self.ledger.read_stats(listener_id).get(artist_name)
            if stat is None:
                continue
            has_badge = badges is not None and badges.get(listener_id, artist_name) is not None
            entries.append(
                TopListenerEntry(
                    listener_id=listener_id,
                    total_seconds=stat.total_seconds,
                    tier=tier_for_seconds(stat.total_seconds, self.thresholds),
                    has_badge=has_badge,
                )
            )

        entries.sort(key=lambda entry: entry.total_seconds, reverse=True)
        return tuple(entries[: max(0, limit)])

    def _first_listen_address(self, split: SongSplit) -> str:
        if self.resolver is None:
            return split.recipient_identifier
        try:
            return self.resolver.resolve(split.recipient_identifier, split.preferred_domain).address
        except ResolutionError as error:
            logger.info(
                "Recording unresolved collaborator identifier",
                extra={"identifier": split.recipient_identifier, "reason": error.message},
            )
            return split.recipient_identifier
