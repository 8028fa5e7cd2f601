"""Domain event contracts for listening, settlement and badge workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True, slots=True)
class DomainEvent:
    """Base domain event emitted by application services."""

    correlation_id: str
    payload_summary: dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


@dataclass(frozen=True, slots=True)
class ListeningRecorded(DomainEvent):
    """Listening seconds were added to a listener's ledger and persisted."""


@dataclass(frozen=True, slots=True)
class TierThresholdCrossed(DomainEvent):
    """A listen pushed a (listener, artist) pair into a higher eligible tier."""


@dataclass(frozen=True, slots=True)
class RoyaltyPaymentSettled(DomainEvent):
    """One recipient's share was transferred or bridged."""


@dataclass(frozen=True, slots=True)
class RoyaltyPaymentFailed(DomainEvent):
    """One recipient's share could not be paid; siblings are unaffected."""


@dataclass(frozen=True, slots=True)
class SettlementCompleted(DomainEvent):
    """All recipients of a settlement request were attempted."""


@dataclass(frozen=True, slots=True)
class BadgeMinted(DomainEvent):
    """A new badge record was persisted after a successful mint saga."""


@dataclass(frozen=True, slots=True)
class BadgeUpgraded(DomainEvent):
    """An existing badge record advanced to a higher tier."""


@dataclass(frozen=True, slots=True)
class BadgeSagaStepFailed(DomainEvent):
    """A reward-token step failed; progress so far is kept for resumption."""
