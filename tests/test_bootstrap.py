from __future__ import annotations

import json

import pytest

from lestream import bootstrap
from lestream.infrastructure.document_stores import FileDocumentStore, MinIODocumentStore
from lestream.infrastructure.ens_name_service import EnsNameService
from lestream.infrastructure.rail_gateway import RailGatewayClient
from lestream.infrastructure.simulated_rails import SimulatedPaymentRails, StaticNameService
from lestream.utils.config import EngineConfig

ADDRESS_A = "0x" + "a" * 40


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    bootstrap.load_runtime_settings.cache_clear()
    yield
    bootstrap.load_runtime_settings.cache_clear()


def test_runtime_settings_defaults(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("LESTREAM_DATA_DIR", str(tmp_path))
    for name in ("LESTREAM_STORAGE_BACKEND", "LESTREAM_RAIL_MODE", "LESTREAM_SONGS_PATH", "LESTREAM_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)

    settings = bootstrap.load_runtime_settings()

    assert settings.storage_backend is bootstrap.StorageBackend.FILE
    assert settings.rail_mode is bootstrap.RailMode.SIMULATED
    assert settings.songs_path == tmp_path / "songs.json"
    assert settings.config_path is None
    assert settings.http_timeout_seconds == 30.0


def test_runtime_settings_reject_unknown_backend(monkeypatch) -> None:
    monkeypatch.setenv("LESTREAM_STORAGE_BACKEND", "floppy")

    with pytest.raises(ValueError, match="Allowed values"):
        bootstrap.load_runtime_settings()


def test_simulated_engine_runs_end_to_end(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("LESTREAM_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LESTREAM_LISTENER_WALLET_ID", "wallet-1")
    monkeypatch.setenv("LESTREAM_RAIL_MODE", "simulated")
    for name in ("LESTREAM_STORAGE_BACKEND", "LESTREAM_SONGS_PATH", "LESTREAM_ENS_RPC_URL", "LESTREAM_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)
    (tmp_path / "aliases.json").write_text(
        json.dumps({"alice.eth": {"address": ADDRESS_A, "records": {"lestream.payout-chain": "Base_Sepolia"}}})
    )
    (tmp_path / "songs.json").write_text(
        json.dumps(
            [
                {
                    "id": "song-1",
                    "songName": "Night Drive",
                    "pricePerSecond": "0.001",
                    "collaborators": [{"artistName": "Alice", "address": "alice.eth", "percentage": 100}],
                }
            ]
        )
    )

    engine = bootstrap.build_engine(bootstrap.load_runtime_settings(), EngineConfig())

    assert isinstance(engine.settlement.transfer_rail, SimulatedPaymentRails)
    assert isinstance(engine.settlement.resolver.name_service, StaticNameService)
    assert isinstance(engine.listening.ledger.store, FileDocumentStore)

    engine.record_listening("listener-1", "song-1", 120)
    result = engine.settle_royalties("song-1", 10)
    outcome = engine.mint_or_upgrade_badge("listener-1", "Alice")

    assert result.payments[0].bridged
    assert result.payments[0].domain == "Base_Sepolia"
    assert outcome.action == "minted"
    assert (tmp_path / "listening" / "listener-1.json").exists()
    assert (tmp_path / "badges" / "listener-1.json").exists()


def test_gateway_mode_wires_http_adapters(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("LESTREAM_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LESTREAM_RAIL_MODE", "gateway")
    monkeypatch.setenv("LESTREAM_RAIL_GATEWAY_URL", "https://gateway.local")
    monkeypatch.setenv("LESTREAM_ENS_RPC_URL", "https://rpc.local")
    monkeypatch.setenv("LESTREAM_STORAGE_BACKEND", "minio")
    monkeypatch.setenv("LESTREAM_HTTP_TIMEOUT_SECONDS", "7.5")

    engine = bootstrap.build_engine(bootstrap.load_runtime_settings(), EngineConfig())

    assert isinstance(engine.settlement.transfer_rail, RailGatewayClient)
    assert engine.settlement.transfer_rail.timeout_seconds == 7.5
    assert isinstance(engine.settlement.resolver.name_service, EnsNameService)
    assert isinstance(engine.listening.ledger.store, MinIODocumentStore)


def test_gateway_mode_requires_url(monkeypatch) -> None:
    monkeypatch.setenv("LESTREAM_RAIL_MODE", "gateway")
    monkeypatch.delenv("LESTREAM_RAIL_GATEWAY_URL", raising=False)

    with pytest.raises(ValueError, match="LESTREAM_RAIL_GATEWAY_URL"):
        bootstrap.build_engine(bootstrap.load_runtime_settings(), EngineConfig())


def test_simulated_badge_upgrade_after_restart(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("LESTREAM_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LESTREAM_RAIL_MODE", "simulated")
    monkeypatch.setenv("LESTREAM_REWARD_ADMIN_ADDRESS", "admin")
    for name in ("LESTREAM_STORAGE_BACKEND", "LESTREAM_SONGS_PATH", "LESTREAM_ENS_RPC_URL", "LESTREAM_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)
    (tmp_path / "songs.json").write_text(
        json.dumps(
            [
                {
                    "id": "song-1",
                    "songName": "Night Drive",
                    "pricePerSecond": "0.001",
                    "collaborators": [{"artistName": "Alice", "address": ADDRESS_A, "percentage": 100}],
                }
            ]
        )
    )
    settings = bootstrap.load_runtime_settings()

    first = bootstrap.build_engine(settings, EngineConfig())
    first.record_listening("l1", "song-1", 61)
    minted = first.mint_or_upgrade_badge("l1", "Alice")

    restarted = bootstrap.build_engine(settings, EngineConfig())
    restarted.record_listening("l1", "song-1", 4000)
    upgraded = restarted.mint_or_upgrade_badge("l1", "Alice")

    assert minted.action == "minted"
    assert upgraded.action == "upgraded"
    assert upgraded.record.badge_object_id == minted.record.badge_object_id
    assert upgraded.record.tier == 2
    assert restarted.get_badges("l1").on_chain_count == 1
