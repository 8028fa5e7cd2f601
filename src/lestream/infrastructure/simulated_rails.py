"""In-process rails for local runs without custody, bridge or reward-token access."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from decimal import Decimal
from uuid import uuid4

from lestream.domain.errors import RailError
from lestream.domain.models import MintReceipt, RewardToken
from lestream.domain.services import tier_for_seconds
from lestream.infrastructure.document_stores import DocumentStore, InMemoryDocumentStore

_TOKEN_PREFIX = "reward-tokens/"


@dataclass(slots=True)
class StaticNameService:
    """Alias table with optional text records, e.g. loaded from a JSON file."""

    addresses: dict[str, str] = field(default_factory=dict)
    records: dict[str, dict[str, str]] = field(default_factory=dict)

    def resolve(self, alias: str) -> str | None:
        return self.addresses.get(alias.lower())

    def get_preference_record(self, alias: str, key: str) -> str | None:
        return self.records.get(alias.lower(), {}).get(key)


@dataclass(slots=True)
class SimulatedPaymentRails:
    """Records transfers and bridges instead of moving funds."""

    transfers: list[dict] = field(default_factory=list)
    bridges: list[dict] = field(default_factory=list)
    _guard: threading.Lock = field(default_factory=threading.Lock)

    def transfer(self, wallet_ref: str, dest_address: str, amount: Decimal) -> str:
        reference = f"sim-tx-{uuid4()}"
        with self._guard:
            self.transfers.append(
                {"wallet": wallet_ref, "destination": dest_address, "amount": str(amount), "reference": reference}
            )
        return reference

    def bridge(
        self,
        source_wallet_ref: str,
        source_domain: str,
        dest_domain: str,
        dest_address: str,
        amount: Decimal,
    ) -> str:
        reference = f"sim-bridge-{uuid4()}"
        with self._guard:
            self.bridges.append(
                {
                    "wallet": source_wallet_ref,
                    "source_domain": source_domain,
                    "destination_domain": dest_domain,
                    "destination": dest_address,
                    "amount": str(amount),
                    "reference": reference,
                }
            )
        return reference


@dataclass(slots=True)
class SimulatedRewardTokens:
    """Reward tokens kept in a document store, with the platform's tier rule."""

    owner: str = "simulated-admin"
    store: DocumentStore = field(default_factory=InMemoryDocumentStore)
    _guard: threading.Lock = field(default_factory=threading.Lock)

    def mint(self, owner_address: str) -> MintReceipt:
        token_id = f"0x{uuid4().hex}"
        with self._guard:
            self._save(RewardToken(token_id=token_id, artist_id=owner_address, listen_seconds=0, tier=1))
        return MintReceipt(reference=f"sim-digest-{uuid4()}", token_id=token_id)

    def add_accrued_time(self, token_id: str, seconds: int) -> str:
        with self._guard:
            token = self._load(token_id)
            self._save(replace(token, listen_seconds=token.listen_seconds + int(seconds)))
        return f"sim-digest-{uuid4()}"

    def set_tier(self, token_id: str) -> str:
        with self._guard:
            token = self._load(token_id)
            self._save(replace(token, tier=max(1, tier_for_seconds(token.listen_seconds))))
        return f"sim-digest-{uuid4()}"

    def get_owned_tokens(self, owner: str) -> list[RewardToken]:
        if owner != self.owner:
            return []
        with self._guard:
            return [
                _token_from_dict(payload)
                for payload in (self.store.read(name) for name in self.store.list_names(_TOKEN_PREFIX))
                if payload is not None
            ]

    def _load(self, token_id: str) -> RewardToken:
        payload = self.store.read(_token_document(token_id))
        if payload is None:
            raise RailError(f"Unknown reward token: {token_id}", code="unknown_token")
        return _token_from_dict(payload)

    def _save(self, token: RewardToken) -> None:
        self.store.write(
            _token_document(token.token_id),
            {
                "token_id": token.token_id,
                "artist_id": token.artist_id,
                "listen_seconds": token.listen_seconds,
                "tier": token.tier,
            },
        )


def _token_document(token_id: str) -> str:
    return f"{_TOKEN_PREFIX}{token_id}.json"


def _token_from_dict(payload: dict) -> RewardToken:
    return RewardToken(
        token_id=payload["token_id"],
        artist_id=payload["artist_id"],
        listen_seconds=int(payload["listen_seconds"]),
        tier=int(payload["tier"]),
    )
