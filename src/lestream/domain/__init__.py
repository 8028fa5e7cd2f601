"""DDD domain layer."""

from .errors import (
    BadgeSagaError,
    InsufficientActivity,
    InvalidInput,
    NotFound,
    RailError,
    ResolutionError,
    SettlementEngineError,
)
from .events import (
    BadgeMinted,
    BadgeSagaStepFailed,
    BadgeUpgraded,
    DomainEvent,
    ListeningRecorded,
    RoyaltyPaymentFailed,
    RoyaltyPaymentSettled,
    SettlementCompleted,
    TierThresholdCrossed,
)
from .models import (
    BadgeOutcome,
    BadgeRecord,
    ListenerArtistStat,
    ListeningUpdate,
    PaymentOutcome,
    ResolvedRecipient,
    SettlementResult,
    ShareAllocation,
    Song,
    SongSplit,
    TierCrossing,
)
from .policies import (
    DEFAULT_DOMAIN_POLICY,
    DEFAULT_TIER_THRESHOLDS,
    BadgeTier,
    DomainSource,
    SettlementDomainPolicy,
    SplitPolicy,
    TierThresholds,
)
from .services import compute_shares, round_to_currency_unit, tier_for_seconds, tier_name

__all__ = [
    "SettlementEngineError",
    "InvalidInput",
    "NotFound",
    "ResolutionError",
    "RailError",
    "BadgeSagaError",
    "InsufficientActivity",
    "DomainEvent",
    "ListeningRecorded",
    "TierThresholdCrossed",
    "RoyaltyPaymentSettled",
    "RoyaltyPaymentFailed",
    "SettlementCompleted",
    "BadgeMinted",
    "BadgeUpgraded",
    "BadgeSagaStepFailed",
    "BadgeOutcome",
    "BadgeRecord",
    "ListenerArtistStat",
    "ListeningUpdate",
    "PaymentOutcome",
    "ResolvedRecipient",
    "SettlementResult",
    "ShareAllocation",
    "Song",
    "SongSplit",
    "TierCrossing",
    "BadgeTier",
    "DomainSource",
    "SettlementDomainPolicy",
    "SplitPolicy",
    "TierThresholds",
    "DEFAULT_DOMAIN_POLICY",
    "DEFAULT_TIER_THRESHOLDS",
    "compute_shares",
    "round_to_currency_unit",
    "tier_for_seconds",
    "tier_name",
]
