"""Runtime wiring of the settlement engine from environment settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

from lestream.application.badge_service import MintOrUpgradeBadge
from lestream.application.engine import ListeningSettlementEngine
from lestream.application.event_publisher import EventPublisher
from lestream.application.listening_service import RecordListening
from lestream.application.recipient_resolver import ResolveRecipient
from lestream.application.settlement_service import SettleRoyalties
from lestream.infrastructure.document_stores import DocumentStore, FileDocumentStore, MinIODocumentStore
from lestream.infrastructure.ens_name_service import EnsNameService
from lestream.infrastructure.ledger_repositories import DocumentBadgeRepository, DocumentListeningLedger, KeyedLock
from lestream.infrastructure.logging_event_publisher import LoggingEventPublisher
from lestream.infrastructure.rail_gateway import RailGatewayClient
from lestream.infrastructure.simulated_rails import SimulatedPaymentRails, SimulatedRewardTokens, StaticNameService
from lestream.infrastructure.song_registry import JsonSongRegistry
from lestream.settlement_options import parse_case_insensitive_enum
from lestream.utils.config import EngineConfig, load_engine_config

logger = logging.getLogger(__name__)


class StorageBackend(str, Enum):
    FILE = "file"
    MINIO = "minio"


class RailMode(str, Enum):
    GATEWAY = "gateway"
    SIMULATED = "simulated"


@dataclass(frozen=True, slots=True)
class RuntimeSettings:
    """Process settings read from ``LESTREAM_*`` environment variables."""

    data_dir: Path
    storage_backend: StorageBackend
    songs_path: Path
    config_path: Path | None
    rail_mode: RailMode
    rail_gateway_url: str | None
    rail_gateway_api_key: str | None
    ens_rpc_url: str | None
    listener_wallet_id: str
    reward_admin_address: str | None
    http_timeout_seconds: float


@lru_cache(maxsize=1)
def load_runtime_settings() -> RuntimeSettings:
    """Load runtime settings from environment."""

    data_dir = Path(os.getenv("LESTREAM_DATA_DIR", "data"))
    config_path = os.getenv("LESTREAM_CONFIG_PATH")
    return RuntimeSettings(
        data_dir=data_dir,
        storage_backend=parse_case_insensitive_enum(
            os.getenv("LESTREAM_STORAGE_BACKEND", StorageBackend.FILE.value), StorageBackend
        ),
        songs_path=Path(os.getenv("LESTREAM_SONGS_PATH", str(data_dir / "songs.json"))),
        config_path=Path(config_path) if config_path else None,
        rail_mode=parse_case_insensitive_enum(os.getenv("LESTREAM_RAIL_MODE", RailMode.SIMULATED.value), RailMode),
        rail_gateway_url=os.getenv("LESTREAM_RAIL_GATEWAY_URL") or None,
        rail_gateway_api_key=os.getenv("LESTREAM_RAIL_GATEWAY_API_KEY") or None,
        ens_rpc_url=os.getenv("LESTREAM_ENS_RPC_URL") or None,
        listener_wallet_id=os.getenv("LESTREAM_LISTENER_WALLET_ID", ""),
        reward_admin_address=os.getenv("LESTREAM_REWARD_ADMIN_ADDRESS") or None,
        http_timeout_seconds=float(os.getenv("LESTREAM_HTTP_TIMEOUT_SECONDS", "30")),
    )


def _build_document_store(settings: RuntimeSettings) -> DocumentStore:
    if settings.storage_backend is StorageBackend.MINIO:
        return MinIODocumentStore()
    return FileDocumentStore(root=settings.data_dir)


def _load_static_aliases(path: Path) -> StaticNameService:
    """Alias table for simulated runs: ``{"alias": {"address": ..., "records": {...}}}``."""

    if not path.exists():
        return StaticNameService()
    payload = json.loads(path.read_text(encoding="utf-8"))
    return StaticNameService(
        addresses={alias.lower(): entry["address"] for alias, entry in payload.items() if entry.get("address")},
        records={alias.lower(): dict(entry.get("records", {})) for alias, entry in payload.items()},
    )


def build_engine(
    settings: RuntimeSettings,
    config: EngineConfig | None = None,
    event_publisher: EventPublisher | None = None,
) -> ListeningSettlementEngine:
    """Wire adapters, use cases and the engine facade for one process."""

    config = config or load_engine_config(settings.config_path)
    publisher = event_publisher or LoggingEventPublisher()
    domain_policy = config.domains.to_policy()
    thresholds = config.badges.to_thresholds()
    store = _build_document_store(settings)

    if settings.rail_mode is RailMode.GATEWAY:
        if not settings.rail_gateway_url:
            raise ValueError("LESTREAM_RAIL_GATEWAY_URL is required when LESTREAM_RAIL_MODE=gateway.")
        gateway = RailGatewayClient(
            base_url=settings.rail_gateway_url,
            api_key=settings.rail_gateway_api_key,
            timeout_seconds=settings.http_timeout_seconds,
        )
        transfer_rail = bridge_rail = gateway
        reward_tokens = gateway
    else:
        simulated = SimulatedPaymentRails()
        transfer_rail = bridge_rail = simulated
        reward_tokens = SimulatedRewardTokens(owner=settings.reward_admin_address or "simulated-admin", store=store)

    if settings.ens_rpc_url:
        name_service = EnsNameService(rpc_url=settings.ens_rpc_url, timeout_seconds=settings.http_timeout_seconds)
    else:
        name_service = _load_static_aliases(settings.data_dir / "aliases.json")

    ledger = DocumentListeningLedger(store=store, locks=KeyedLock())
    badge_repository = DocumentBadgeRepository(store=store, locks=KeyedLock())
    song_registry = JsonSongRegistry(path=settings.songs_path)
    resolver = ResolveRecipient(name_service=name_service, domain_policy=domain_policy)

    logger.info(
        "Settlement engine configured",
        extra={
            "storage_backend": settings.storage_backend.value,
            "rail_mode": settings.rail_mode.value,
            "hub_domain": domain_policy.hub_domain,
        },
    )

    return ListeningSettlementEngine(
        song_registry=song_registry,
        listening=RecordListening(
            song_registry=song_registry,
            ledger=ledger,
            resolver=resolver,
            thresholds=thresholds,
            event_publisher=publisher,
        ),
        settlement=SettleRoyalties(
            resolver=resolver,
            transfer_rail=transfer_rail,
            bridge_rail=bridge_rail,
            domain_policy=domain_policy,
            event_publisher=publisher,
            max_concurrent_transfers=config.settlement.max_concurrent_transfers,
        ),
        badges=MintOrUpgradeBadge(
            ledger=ledger,
            badges=badge_repository,
            reward_tokens=reward_tokens,
            thresholds=thresholds,
            event_publisher=publisher,
            step_attempts=config.badges.step_attempts,
        ),
        badge_repository=badge_repository,
        reward_tokens=reward_tokens,
        listener_wallet_ref=settings.listener_wallet_id,
        reward_admin_address=settings.reward_admin_address,
        default_policy=config.settlement.default_policy,
    )


@lru_cache(maxsize=1)
def get_engine() -> ListeningSettlementEngine:
    """Build and cache the process-wide engine."""

    return build_engine(load_runtime_settings())
