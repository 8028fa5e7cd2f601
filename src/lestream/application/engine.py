"""Facade exposing the settlement engine operations to interfaces."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from lestream.application.badge_service import MintOrUpgradeBadge
from lestream.application.listening_service import RecordListening
from lestream.application.ports import BadgeRepository, RewardTokenPlatform, SongRegistry
from lestream.application.settlement_service import SettleRoyalties
from lestream.domain.errors import NotFound
from lestream.domain.models import (
    BadgeOutcome,
    BadgeRecord,
    ListenerArtistStat,
    ListeningUpdate,
    SettlementResult,
    Song,
    SongSplit,
    TopListenerEntry,
)
from lestream.domain.policies import SplitPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BadgeListing:
    listener_id: str
    badges: tuple[BadgeRecord, ...]
    on_chain_count: int | None = None


@dataclass(slots=True)
class ListeningSettlementEngine:
    """Single entry point shared by the API and CLI handlers."""

    song_registry: SongRegistry
    listening: RecordListening
    settlement: SettleRoyalties
    badges: MintOrUpgradeBadge
    badge_repository: BadgeRepository
    reward_tokens: RewardTokenPlatform
    listener_wallet_ref: str = ""
    reward_admin_address: str | None = None
    default_policy: SplitPolicy = field(default=SplitPolicy.CONFIGURED_PERCENTAGE)

    def record_listening(
        self,
        listener_id: str,
        song_id: str,
        seconds: float,
        correlation_id: str | None = None,
    ) -> ListeningUpdate:
        return self.listening.run(listener_id, song_id, seconds, correlation_id=correlation_id)

    def settle_royalties(
        self,
        song_id: str,
        seconds: float,
        policy: SplitPolicy | None = None,
        listener_wallet_ref: str | None = None,
        correlation_id: str | None = None,
    ) -> SettlementResult:
        song = self.song_registry.get_song(song_id)
        if song is None:
            raise NotFound(f"Song not found: {song_id}", code="song_not_found")
        return self.settlement.settle_for_listen(
            listener_wallet_ref or self.listener_wallet_ref,
            song,
            seconds,
            policy=policy or self.default_policy,
            correlation_id=correlation_id,
        )

    def settle(
        self,
        total_amount: Decimal | str,
        splits: Sequence[SongSplit],
        policy: SplitPolicy | None = None,
        listener_wallet_ref: str | None = None,
        correlation_id: str | None = None,
    ) -> SettlementResult:
        return self.settlement.settle(
            listener_wallet_ref or self.listener_wallet_ref,
            total_amount,
            splits,
            policy=policy or self.default_policy,
            correlation_id=correlation_id,
        )

    def mint_or_upgrade_badge(self, listener_id: str, artist_name: str, correlation_id: str | None = None) -> BadgeOutcome:
        return self.badges.run(listener_id, artist_name, correlation_id=correlation_id)

    def get_listener_stats(self, listener_id: str) -> tuple[ListenerArtistStat, ...]:
        return self.listening.get_stats(listener_id)

    def get_badges(self, listener_id: str) -> BadgeListing:
        records = tuple(self.badges.list_badges(listener_id))
        on_chain_count: int | None = None
        if self.reward_admin_address:
            try:
                on_chain_count = len(self.reward_tokens.get_owned_tokens(self.reward_admin_address))
            except Exception as error:  # noqa: BLE001
                logger.warning("On-chain badge query failed; returning stored badges only.", exc_info=error)
        return BadgeListing(listener_id=listener_id, badges=records, on_chain_count=on_chain_count)

    def top_listeners(self, artist_name: str, limit: int = 10) -> tuple[TopListenerEntry, ...]:
        return self.listening.top_listeners(artist_name, badges=self.badge_repository, limit=limit)

    def list_songs(self) -> list[Song]:
        return self.song_registry.list_songs()

    def register_song(self, song: Song) -> Song:
        return self.song_registry.add_song(song)
