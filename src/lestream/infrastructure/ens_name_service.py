"""ENS name-service adapter built on web3.py's ENS module."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests
from ens import ENS
from ens.exceptions import ENSException
from web3 import Web3
from web3.exceptions import Web3Exception

from lestream.domain.errors import ResolutionError

logger = logging.getLogger(__name__)

_LOOKUP_ERRORS = (requests.RequestException, Web3Exception, ENSException)


def connect_ens(rpc_url: str, timeout_seconds: float) -> ENS:
    """Build an ENS client over an HTTP JSON-RPC provider."""

    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout_seconds}))
    return ENS.from_web3(w3)


@dataclass(slots=True)
class EnsNameService:
    """Resolve aliases and read text records through ENS.

    Name normalization, wildcard resolvers and offchain (CCIP-read) lookups are
    handled by the ENS client.
    """

    rpc_url: str
    timeout_seconds: float = 10.0
    ns: Any = field(default=None)

    def __post_init__(self) -> None:
        if self.ns is None:
            self.ns = connect_ens(self.rpc_url, self.timeout_seconds)

    def resolve(self, alias: str) -> str | None:
        try:
            address = self.ns.address(alias)
        except _LOOKUP_ERRORS as error:
            raise ResolutionError(f"name service unavailable: {error}", code="name_service_unavailable") from error

        if not address:
            return None
        return str(address).lower()

    def get_preference_record(self, alias: str, key: str) -> str | None:
        try:
            text = self.ns.get_text(alias, key)
        except _LOOKUP_ERRORS as error:
            logger.warning("Failed to read text record", extra={"alias": alias, "key": key, "error": str(error)})
            return None
        return text or None
