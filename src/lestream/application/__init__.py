"""DDD application layer."""

from .badge_service import MintOrUpgradeBadge
from .engine import BadgeListing, ListeningSettlementEngine
from .event_publisher import EventPublisher, NullEventPublisher
from .listening_service import RecordListening
from .recipient_resolver import ResolveRecipient
from .settlement_service import SettleRoyalties

__all__ = [
    "EventPublisher",
    "NullEventPublisher",
    "RecordListening",
    "ResolveRecipient",
    "SettleRoyalties",
    "MintOrUpgradeBadge",
    "ListeningSettlementEngine",
    "BadgeListing",
]
