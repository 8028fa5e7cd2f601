"""Recipient resolution with preference-record precedence."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from lestream.application.ports import NameService
from lestream.domain.errors import ResolutionError
from lestream.domain.models import ResolvedRecipient
from lestream.domain.policies import DEFAULT_DOMAIN_POLICY, DomainSource, SettlementDomainPolicy
from lestream.domain.services import is_alias, is_chain_address

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ResolveRecipient:
    """Use case turning an address or alias into an address and effective domain.

    Domain precedence, highest first: the alias owner's public preference
    record, the domain configured on the split, the hub domain.
    """

    name_service: NameService
    domain_policy: SettlementDomainPolicy = DEFAULT_DOMAIN_POLICY

    def resolve(self, identifier: str, explicit_domain: str | None = None) -> ResolvedRecipient:
        candidate = (identifier or "").strip()
        if is_chain_address(candidate):
            return self._with_domain(candidate, candidate.lower(), explicit_domain, preference=None)

        if not is_alias(candidate, self.domain_policy.alias_suffixes):
            raise ResolutionError(f"unrecognized recipient identifier: {identifier!r}", code="unrecognized_identifier")

        alias = candidate.lower()
        address = self.name_service.resolve(alias)
        if not address:
            raise ResolutionError("alias not found", code="alias_not_found")
        if not is_chain_address(address):
            raise ResolutionError(f"alias resolved to a malformed address: {address!r}", code="alias_not_found")

        preference = self.name_service.get_preference_record(alias, self.domain_policy.preference_record_key)
        return self._with_domain(alias, address.lower(), explicit_domain, preference=preference)

    def _with_domain(
        self,
        identifier: str,
        address: str,
        explicit_domain: str | None,
        preference: str | None,
    ) -> ResolvedRecipient:
        preference = (preference or "").strip()
        if preference:
            if self.domain_policy.is_supported(preference):
                return ResolvedRecipient(identifier, address, preference, DomainSource.PREFERENCE_RECORD)
            logger.warning(
                "Ignoring unsupported payout domain preference",
                extra={"identifier": identifier, "preference": preference},
            )

        if explicit_domain:
            return ResolvedRecipient(identifier, address, explicit_domain, DomainSource.SPLIT_CONFIG)
        return ResolvedRecipient(identifier, address, self.domain_policy.hub_domain, DomainSource.HUB_DEFAULT)
