"""Public package exports for Lestream with lazy imports."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "ListeningSettlementEngine",
    "RecordListening",
    "ResolveRecipient",
    "SettleRoyalties",
    "MintOrUpgradeBadge",
    "SplitPolicy",
    "Song",
    "SongSplit",
    "compute_shares",
    "tier_for_seconds",
    "build_engine",
    "load_runtime_settings",
    "load_engine_config",
    "validate_song_registration",
]

_EXPORT_MODULES: dict[str, str] = {
    "ListeningSettlementEngine": "lestream.application.engine",
    "RecordListening": "lestream.application.listening_service",
    "ResolveRecipient": "lestream.application.recipient_resolver",
    "SettleRoyalties": "lestream.application.settlement_service",
    "MintOrUpgradeBadge": "lestream.application.badge_service",
    "SplitPolicy": "lestream.domain.policies",
    "Song": "lestream.domain.models",
    "SongSplit": "lestream.domain.models",
    "compute_shares": "lestream.domain.services",
    "tier_for_seconds": "lestream.domain.services",
    "build_engine": "lestream.bootstrap",
    "load_runtime_settings": "lestream.bootstrap",
    "load_engine_config": "lestream.utils.config",
    "validate_song_registration": "lestream.song_catalog",
}


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MODULES:
        raise AttributeError(f"module 'lestream' has no attribute {name!r}")

    module = import_module(_EXPORT_MODULES[name])
    value = getattr(module, name)
    globals()[name] = value
    return value
