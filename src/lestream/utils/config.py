from __future__ import annotations

from pathlib import Path

import json

from pydantic import BaseModel, Field, field_validator, model_validator

from lestream.domain.policies import (
    TESTNET_DOMAINS,
    SettlementDomainPolicy,
    SplitPolicy,
    TierThresholds,
)


class DomainConfig(BaseModel):
    hub_domain: str = "Arc_Testnet"
    supported_domains: list[str] = Field(default_factory=lambda: list(TESTNET_DOMAINS))
    preference_record_key: str = Field("lestream.payout-chain", min_length=1)
    alias_suffixes: list[str] = Field(default_factory=lambda: [".eth", ".xyz", ".box"])

    @field_validator("alias_suffixes")
    @classmethod
    def _validate_alias_suffixes(cls, value: list[str]) -> list[str]:
        normalized = [suffix.lower() for suffix in value]
        if any(not suffix.startswith(".") for suffix in normalized):
            raise ValueError("alias_suffixes must start with '.'.")
        return normalized

    @model_validator(mode="after")
    def _hub_is_supported(self) -> "DomainConfig":
        if self.hub_domain not in self.supported_domains:
            raise ValueError("hub_domain must be one of supported_domains.")
        return self

    def to_policy(self) -> SettlementDomainPolicy:
        return SettlementDomainPolicy(
            hub_domain=self.hub_domain,
            supported_domains=tuple(self.supported_domains),
            preference_record_key=self.preference_record_key,
            alias_suffixes=tuple(self.alias_suffixes),
        )


class BadgeConfig(BaseModel):
    bronze_seconds: float = Field(60.0, gt=0.0)
    silver_seconds: float = Field(3_600.0, gt=0.0)
    gold_seconds: float = Field(36_000.0, gt=0.0)
    step_attempts: int = Field(1, ge=1, le=5)

    @model_validator(mode="after")
    def _thresholds_ascend(self) -> "BadgeConfig":
        if not self.bronze_seconds < self.silver_seconds < self.gold_seconds:
            raise ValueError("badge thresholds must be strictly ascending.")
        return self

    def to_thresholds(self) -> TierThresholds:
        return TierThresholds(
            bronze_seconds=self.bronze_seconds,
            silver_seconds=self.silver_seconds,
            gold_seconds=self.gold_seconds,
        )


class SettlementConfig(BaseModel):
    default_policy: SplitPolicy = SplitPolicy.CONFIGURED_PERCENTAGE
    max_concurrent_transfers: int = Field(4, ge=1, le=32)


class EngineConfig(BaseModel):
    domains: DomainConfig = Field(default_factory=DomainConfig)
    badges: BadgeConfig = Field(default_factory=BadgeConfig)
    settlement: SettlementConfig = Field(default_factory=SettlementConfig)


def load_engine_config(path: Path | None) -> EngineConfig:
    if path is None:
        return EngineConfig()
    data = _load_config_data(path)
    return EngineConfig.model_validate(data)


def _load_config_data(path: Path) -> dict:
    if path.suffix.lower() in {".yaml", ".yml"}:
        try:
            import yaml
        except ImportError as exc:
            raise ImportError("PyYAML is required to load YAML configs.") from exc

        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
