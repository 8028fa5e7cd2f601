"""Application ports implemented by infrastructure adapters."""

from __future__ import annotations

from decimal import Decimal
from typing import ContextManager, Protocol

from lestream.domain.models import (
    BadgeRecord,
    ListenerArtistStat,
    MintReceipt,
    PendingBadgeSaga,
    RewardToken,
    Song,
)


class SongRegistry(Protocol):
    """Read access to published songs and their collaborator splits."""

    def get_song(self, song_id: str) -> Song | None:
        """Return the song or ``None`` when the id is unknown."""

    def list_songs(self) -> list[Song]:
        """Return all published songs."""

    def add_song(self, song: Song) -> Song:
        """Publish a validated song."""


class NameService(Protocol):
    """Alias resolution and public preference records."""

    def resolve(self, alias: str) -> str | None:
        """Resolve an alias to a chain address."""

    def get_preference_record(self, alias: str, key: str) -> str | None:
        """Read a public text record published by the alias owner."""


class TransferRail(Protocol):
    """Same-domain value transfer from a custodial wallet."""

    def transfer(self, wallet_ref: str, dest_address: str, amount: Decimal) -> str:
        """Send ``amount`` and return the transfer reference."""


class BridgeRail(Protocol):
    """Cross-domain burn / attest / mint transfer."""

    def bridge(
        self,
        source_wallet_ref: str,
        source_domain: str,
        dest_domain: str,
        dest_address: str,
        amount: Decimal,
    ) -> str:
        """Bridge ``amount`` and return the destination-domain reference."""


class RewardTokenPlatform(Protocol):
    """Reward token issuance used for loyalty badges."""

    def mint(self, owner_address: str) -> MintReceipt:
        """Mint a new badge token."""

    def add_accrued_time(self, token_id: str, seconds: int) -> str:
        """Add listening seconds to a token."""

    def set_tier(self, token_id: str) -> str:
        """Recompute the token's tier from its accrued time."""

    def get_owned_tokens(self, owner: str) -> list[RewardToken]:
        """List tokens owned by ``owner``."""


class ListeningLedgerRepository(Protocol):
    """Durable (listener, artist) -> cumulative seconds mapping."""

    def locked(self, listener_id: str) -> ContextManager[None]:
        """Serialize read-modify-write cycles for one listener."""

    def read_stats(self, listener_id: str) -> dict[str, ListenerArtistStat]:
        """Return the listener's stats keyed by artist name."""

    def write_stats(self, listener_id: str, stats: dict[str, ListenerArtistStat]) -> None:
        """Persist the listener's stats."""

    def list_listeners(self) -> list[str]:
        """Return every listener id with ledger entries."""


class BadgeRepository(Protocol):
    """Durable badge records and in-flight saga progress."""

    def locked(self, listener_id: str) -> ContextManager[None]:
        """Serialize read-modify-write cycles for one listener."""

    def get(self, listener_id: str, artist_name: str) -> BadgeRecord | None:
        """Return the pair's badge record."""

    def list_for_listener(self, listener_id: str) -> list[BadgeRecord]:
        """Return all badge records of a listener."""

    def save(self, record: BadgeRecord) -> None:
        """Insert or replace a badge record and drop its pending saga."""

    def get_pending(self, listener_id: str, artist_name: str) -> PendingBadgeSaga | None:
        """Return the pair's in-flight saga, if any."""

    def save_pending(self, pending: PendingBadgeSaga) -> None:
        """Persist saga progress."""
