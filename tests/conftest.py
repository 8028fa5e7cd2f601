from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from lestream.application.badge_service import MintOrUpgradeBadge
from lestream.application.engine import ListeningSettlementEngine
from lestream.application.listening_service import RecordListening
from lestream.application.recipient_resolver import ResolveRecipient
from lestream.application.settlement_service import SettleRoyalties
from lestream.domain.errors import RailError
from lestream.domain.models import MintReceipt, RewardToken, Song, SongSplit
from lestream.infrastructure.document_stores import InMemoryDocumentStore
from lestream.infrastructure.ledger_repositories import DocumentBadgeRepository, DocumentListeningLedger
from lestream.infrastructure.simulated_rails import StaticNameService

ADDRESS_A = "0x" + "a" * 40
ADDRESS_B = "0x" + "b" * 40
ADDRESS_C = "0x" + "c" * 40


class RecordingPublisher:
    def __init__(self) -> None:
        self.events = []

    def publish(self, event) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [type(event).__name__ for event in self.events]


class FakeSongRegistry:
    def __init__(self, songs=()) -> None:
        self.songs = {song.song_id: song for song in songs}

    def get_song(self, song_id):
        return self.songs.get(song_id)

    def list_songs(self):
        return list(self.songs.values())

    def add_song(self, song):
        self.songs[song.song_id] = song
        return song


class FakeRails:
    """Transfer and bridge rail that records calls and fails for chosen addresses."""

    def __init__(self, failing_addresses=(), raising_addresses=()) -> None:
        self.transfers = []
        self.bridges = []
        self.failing_addresses = set(failing_addresses)
        self.raising_addresses = set(raising_addresses)

    def _check(self, address):
        if address in self.raising_addresses:
            raise ConnectionError("socket closed")
        if address in self.failing_addresses:
            raise RailError("Failed to create transaction", code="transfer_failed")

    def transfer(self, wallet_ref, dest_address, amount):
        self._check(dest_address)
        self.transfers.append((wallet_ref, dest_address, amount))
        return f"tx-{len(self.transfers)}"

    def bridge(self, source_wallet_ref, source_domain, dest_domain, dest_address, amount):
        self._check(dest_address)
        self.bridges.append((source_wallet_ref, source_domain, dest_domain, dest_address, amount))
        return f"bridge-{len(self.bridges)}"


class FakeRewardTokens:
    """Reward-token platform recording calls; ``failures`` maps a call name to how many times it fails."""

    def __init__(self, failures=None) -> None:
        self.calls = []
        self.failures = dict(failures or {})
        self.tokens = {}

    def _maybe_fail(self, name):
        remaining = self.failures.get(name, 0)
        if remaining:
            self.failures[name] = remaining - 1
            raise RailError(f"{name} unavailable", code="reward_token_failed")

    def mint(self, owner_address):
        self.calls.append(("mint", owner_address))
        self._maybe_fail("mint")
        token_id = f"0xbadge{len(self.tokens) + 1}"
        self.tokens[token_id] = RewardToken(token_id, owner_address, 0, 1)
        return MintReceipt(reference=f"digest-mint-{len(self.calls)}", token_id=token_id)

    def add_accrued_time(self, token_id, seconds):
        self.calls.append(("add_accrued_time", token_id, seconds))
        self._maybe_fail("add_accrued_time")
        return f"digest-time-{len(self.calls)}"

    def set_tier(self, token_id):
        self.calls.append(("set_tier", token_id))
        self._maybe_fail("set_tier")
        return f"digest-tier-{len(self.calls)}"

    def get_owned_tokens(self, owner):
        return list(self.tokens.values())

    def call_names(self):
        return [call[0] for call in self.calls]


class StepClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def make_song(song_id="song-1", price="0.0001", splits=None) -> Song:
    return Song(
        song_id=song_id,
        title="Test Song",
        price_per_second=Decimal(price),
        splits=tuple(
            splits
            or (
                SongSplit(ADDRESS_A, Decimal(50), artist_name="Alice"),
                SongSplit(ADDRESS_B, Decimal(30), artist_name="Bob"),
                SongSplit(ADDRESS_C, Decimal(20), artist_name="Cleo"),
            )
        ),
    )


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def name_service() -> StaticNameService:
    return StaticNameService(
        addresses={"alice.eth": ADDRESS_A, "bob.eth": ADDRESS_B},
        records={"bob.eth": {"lestream.payout-chain": "Base_Sepolia"}},
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def ledger(store) -> DocumentListeningLedger:
    return DocumentListeningLedger(store=store)


@pytest.fixture
def badge_repository(store) -> DocumentBadgeRepository:
    return DocumentBadgeRepository(store=store)


@pytest.fixture
def registry() -> FakeSongRegistry:
    return FakeSongRegistry([make_song()])


@pytest.fixture
def rails() -> FakeRails:
    return FakeRails()


@pytest.fixture
def reward_tokens() -> FakeRewardTokens:
    return FakeRewardTokens()


@pytest.fixture
def engine(registry, ledger, badge_repository, rails, reward_tokens, name_service, publisher) -> ListeningSettlementEngine:
    resolver = ResolveRecipient(name_service=name_service)
    return ListeningSettlementEngine(
        song_registry=registry,
        listening=RecordListening(
            song_registry=registry,
            ledger=ledger,
            resolver=resolver,
            event_publisher=publisher,
            clock=StepClock(),
        ),
        settlement=SettleRoyalties(
            resolver=resolver,
            transfer_rail=rails,
            bridge_rail=rails,
            event_publisher=publisher,
        ),
        badges=MintOrUpgradeBadge(
            ledger=ledger,
            badges=badge_repository,
            reward_tokens=reward_tokens,
            event_publisher=publisher,
            clock=StepClock(),
        ),
        badge_repository=badge_repository,
        reward_tokens=reward_tokens,
        listener_wallet_ref="wallet-1",
        reward_admin_address="0xadmin",
    )
