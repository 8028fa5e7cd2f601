"""Domain models for listening, settlement and badge workflows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from lestream.domain.policies import BadgeTier, DomainSource, SplitPolicy


@dataclass(frozen=True, slots=True)
class SongSplit:
    """One collaborator's configured payout share on a song."""

    recipient_identifier: str
    percentage: Decimal
    preferred_domain: str | None = None
    artist_name: str | None = None

    @property
    def ledger_name(self) -> str:
        return self.artist_name or self.recipient_identifier


@dataclass(frozen=True, slots=True)
class Song:
    """Registry entry consumed read-only by the engine."""

    song_id: str
    title: str
    price_per_second: Decimal
    splits: tuple[SongSplit, ...]
    created_at: datetime | None = None


@dataclass(slots=True)
class ListenerArtistStat:
    """Cumulative listening time of one listener with one artist."""

    listener_id: str
    artist_name: str
    recipient_address: str
    total_seconds: float
    last_updated: datetime


@dataclass(frozen=True, slots=True)
class TierCrossing:
    """Informational record of a listen pushing a pair into a higher tier."""

    artist_name: str
    previous_tier: int
    new_tier: int


@dataclass(frozen=True, slots=True)
class ListeningUpdate:
    """Result of recording one listen."""

    listener_id: str
    song_id: str
    seconds: float
    updated_stats: tuple[ListenerArtistStat, ...]
    tier_crossings: tuple[TierCrossing, ...]


@dataclass(frozen=True, slots=True)
class TopListenerEntry:
    listener_id: str
    total_seconds: float
    tier: int
    has_badge: bool


@dataclass(frozen=True, slots=True)
class ResolvedRecipient:
    """Canonical address and effective domain for a recipient identifier."""

    identifier: str
    address: str
    effective_domain: str
    domain_source: DomainSource


@dataclass(frozen=True, slots=True)
class ShareAllocation:
    split: SongSplit
    percentage: Decimal
    amount: Decimal


@dataclass(frozen=True, slots=True)
class PaymentOutcome:
    """Success or failure of paying one recipient."""

    recipient_identifier: str
    artist_name: str
    recipient_address: str | None
    percentage: Decimal
    amount: Decimal
    domain: str | None
    bridged: bool
    reference: str | None = None
    error: str | None = None
    error_code: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and bool(self.reference)


@dataclass(frozen=True, slots=True)
class SettlementSummary:
    successful: int
    failed: int


@dataclass(frozen=True, slots=True)
class SettlementResult:
    """Ordered per-recipient outcomes of one settlement request."""

    payments: tuple[PaymentOutcome, ...]
    policy: SplitPolicy
    total_amount: Decimal
    correlation_id: str
    song_id: str | None = None

    @property
    def summary(self) -> SettlementSummary:
        successful = sum(1 for payment in self.payments if payment.succeeded)
        return SettlementSummary(successful=successful, failed=len(self.payments) - successful)


@dataclass(slots=True)
class BadgeRecord:
    """Persisted loyalty badge for a (listener, artist) pair."""

    listener_id: str
    artist_name: str
    tier: int
    badge_object_id: str
    settlement_reference: str
    accrued_seconds: int
    timestamp: datetime

    @property
    def tier_name(self) -> str:
        return BadgeTier(self.tier).name.title()


@dataclass(slots=True)
class PendingBadgeSaga:
    """Progress of a mint/upgrade saga whose steps have not all succeeded yet."""

    listener_id: str
    artist_name: str
    badge_object_id: str
    mint_reference: str
    reported_seconds: int
    completed_steps: tuple[str, ...]
    last_reference: str
    started_at: datetime


@dataclass(frozen=True, slots=True)
class BadgeOutcome:
    record: BadgeRecord
    action: str


@dataclass(frozen=True, slots=True)
class MintReceipt:
    reference: str
    token_id: str


@dataclass(frozen=True, slots=True)
class RewardToken:
    """Reward token as reported by the reward-token platform."""

    token_id: str
    artist_id: str
    listen_seconds: int
    tier: int
