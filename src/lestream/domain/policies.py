"""Domain value objects representing stable settlement and badge policies."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class SplitPolicy(str, Enum):
    """How a total owed amount is divided among a song's collaborators."""

    CONFIGURED_PERCENTAGE = "configured-percentage"
    EQUAL_SPLIT = "equal-split"


class BadgeTier(IntEnum):
    """Loyalty tiers, ordered and never downgraded."""

    NONE = 0
    BRONZE = 1
    SILVER = 2
    GOLD = 3


class DomainSource(str, Enum):
    """Which rule picked a recipient's effective settlement domain."""

    PREFERENCE_RECORD = "preference-record"
    SPLIT_CONFIG = "split-config"
    HUB_DEFAULT = "hub-default"


@dataclass(frozen=True, slots=True)
class TierThresholds:
    """Lower bounds (inclusive, in seconds) of each badge tier."""

    bronze_seconds: float = 60.0
    silver_seconds: float = 3_600.0
    gold_seconds: float = 36_000.0


@dataclass(frozen=True, slots=True)
class SettlementDomainPolicy:
    """Settlement domains known to the engine and how aliases declare a preference."""

    hub_domain: str
    supported_domains: tuple[str, ...]
    preference_record_key: str = "lestream.payout-chain"
    alias_suffixes: tuple[str, ...] = (".eth", ".xyz", ".box")

    def is_supported(self, domain: str) -> bool:
        return domain in self.supported_domains

    def requires_bridging(self, domain: str) -> bool:
        return domain != self.hub_domain


TESTNET_DOMAINS: tuple[str, ...] = (
    "Arc_Testnet",
    "Ethereum_Sepolia",
    "Arbitrum_Sepolia",
    "Avalanche_Fuji",
    "Base_Sepolia",
    "Optimism_Sepolia",
    "Polygon_Amoy",
    "Unichain_Sepolia",
    "Solana_Devnet",
)

DEFAULT_TIER_THRESHOLDS = TierThresholds()
DEFAULT_DOMAIN_POLICY = SettlementDomainPolicy(hub_domain="Arc_Testnet", supported_domains=TESTNET_DOMAINS)
