from .config import (
    BadgeConfig,
    DomainConfig,
    EngineConfig,
    SettlementConfig,
    load_engine_config,
)

__all__ = [
    "BadgeConfig",
    "DomainConfig",
    "EngineConfig",
    "SettlementConfig",
    "load_engine_config",
]
