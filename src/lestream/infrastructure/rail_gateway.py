"""HTTP client for the payment and reward-token gateway.

The gateway fronts the custodial wallet, bridge and reward-token SDKs; this
adapter only speaks JSON over HTTP and maps failures to ``RailError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from urllib.parse import quote

import requests

from lestream.domain.errors import RailError
from lestream.domain.models import MintReceipt, RewardToken

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RailGatewayClient:
    """Implements the transfer, bridge and reward-token ports over one gateway."""

    base_url: str
    api_key: str | None = None
    timeout_seconds: float = 30.0
    session: requests.Session = field(default_factory=requests.Session)

    def transfer(self, wallet_ref: str, dest_address: str, amount: Decimal) -> str:
        payload = self._request(
            "POST",
            "/transfers",
            json={"walletId": wallet_ref, "destinationAddress": dest_address, "amount": str(amount)},
        )
        reference = payload.get("id") or payload.get("txId")
        if not reference:
            raise RailError("Failed to create transaction", code="transfer_failed")
        return str(reference)

    def bridge(
        self,
        source_wallet_ref: str,
        source_domain: str,
        dest_domain: str,
        dest_address: str,
        amount: Decimal,
    ) -> str:
        payload = self._request(
            "POST",
            "/bridges",
            json={
                "sourceWalletId": source_wallet_ref,
                "sourceChain": source_domain,
                "destinationChain": dest_domain,
                "destinationAddress": dest_address,
                "amount": str(amount),
            },
        )
        reference = payload.get("destinationTxHash") or payload.get("reference")
        if not reference:
            raise RailError(payload.get("error") or "Bridge returned no destination reference", code="bridge_failed")
        return str(reference)

    def mint(self, owner_address: str) -> MintReceipt:
        payload = self._request("POST", "/reward-tokens", json={"owner": owner_address})
        digest = payload.get("digest")
        if not digest:
            raise RailError("Mint returned no transaction digest", code="mint_failed")
        return MintReceipt(reference=str(digest), token_id=str(payload.get("tokenId") or ""))

    def add_accrued_time(self, token_id: str, seconds: int) -> str:
        payload = self._request(
            "POST",
            f"/reward-tokens/{quote(token_id, safe='')}/accrued-time",
            json={"seconds": int(seconds)},
        )
        return self._digest(payload, "add accrued time")

    def set_tier(self, token_id: str) -> str:
        payload = self._request("POST", f"/reward-tokens/{quote(token_id, safe='')}/tier", json={})
        return self._digest(payload, "set tier")

    def get_owned_tokens(self, owner: str) -> list[RewardToken]:
        payload = self._request("GET", "/reward-tokens", params={"owner": owner})
        return [
            RewardToken(
                token_id=str(item["id"]),
                artist_id=str(item.get("artistId", "")),
                listen_seconds=int(item.get("listenSeconds", 0)),
                tier=int(item.get("tier", 0)),
            )
            for item in payload.get("tokens", [])
        ]

    def _digest(self, payload: dict[str, Any], action: str) -> str:
        digest = payload.get("digest")
        if not digest:
            raise RailError(f"Gateway returned no digest for {action}", code="reward_token_failed")
        return str(digest)

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        url = f"{self.base_url.rstrip('/')}{path}"
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout_seconds, **kwargs)
        except requests.RequestException as error:
            raise RailError(f"Gateway request failed: {error}", code="gateway_unavailable") from error

        if response.status_code >= 400:
            try:
                detail = response.json().get("error") or response.text
            except ValueError:
                detail = response.text
            logger.warning("Gateway call rejected", extra={"path": path, "status_code": response.status_code})
            raise RailError(f"Gateway returned {response.status_code}: {detail}", code="gateway_rejected")

        try:
            return response.json()
        except ValueError as error:
            raise RailError("Gateway returned a non-JSON body", code="gateway_invalid_response") from error
