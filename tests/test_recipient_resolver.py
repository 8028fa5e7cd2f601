import pytest

from lestream.application.recipient_resolver import ResolveRecipient
from lestream.domain.errors import ResolutionError
from lestream.domain.policies import DomainSource
from lestream.infrastructure.simulated_rails import StaticNameService

ADDRESS_A = "0x" + "a" * 40
CHECKSUMMED = "0x" + "AbCdEf0123" * 4


class CountingNameService(StaticNameService):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.lookups = []

    def resolve(self, alias):
        self.lookups.append(("resolve", alias))
        return super().resolve(alias)

    def get_preference_record(self, alias, key):
        self.lookups.append(("record", alias, key))
        return super().get_preference_record(alias, key)


def test_address_resolves_without_lookup_and_lowercases():
    names = CountingNameService()
    resolver = ResolveRecipient(name_service=names)

    resolved = resolver.resolve(CHECKSUMMED)

    assert resolved.address == CHECKSUMMED.lower()
    assert resolved.effective_domain == "Arc_Testnet"
    assert resolved.domain_source is DomainSource.HUB_DEFAULT
    assert names.lookups == []


def test_explicit_domain_applies_to_plain_address():
    resolver = ResolveRecipient(name_service=StaticNameService())

    resolved = resolver.resolve(ADDRESS_A, "Base_Sepolia")

    assert resolved.effective_domain == "Base_Sepolia"
    assert resolved.domain_source is DomainSource.SPLIT_CONFIG


def test_preference_record_overrides_explicit_domain():
    names = StaticNameService(
        addresses={"alice.eth": ADDRESS_A},
        records={"alice.eth": {"lestream.payout-chain": "Avalanche_Fuji"}},
    )
    resolver = ResolveRecipient(name_service=names)

    resolved = resolver.resolve("Alice.eth", "Base_Sepolia")

    assert resolved.identifier == "alice.eth"
    assert resolved.address == ADDRESS_A
    assert resolved.effective_domain == "Avalanche_Fuji"
    assert resolved.domain_source is DomainSource.PREFERENCE_RECORD


def test_unsupported_preference_record_is_ignored():
    names = StaticNameService(
        addresses={"alice.eth": ADDRESS_A},
        records={"alice.eth": {"lestream.payout-chain": "Moon_Mainnet"}},
    )
    resolver = ResolveRecipient(name_service=names)

    resolved = resolver.resolve("alice.eth", "Base_Sepolia")

    assert resolved.effective_domain == "Base_Sepolia"
    assert resolved.domain_source is DomainSource.SPLIT_CONFIG


def test_alias_without_record_or_domain_uses_hub():
    resolver = ResolveRecipient(name_service=StaticNameService(addresses={"alice.box": ADDRESS_A}))

    resolved = resolver.resolve("alice.box")

    assert resolved.effective_domain == "Arc_Testnet"
    assert resolved.domain_source is DomainSource.HUB_DEFAULT


def test_unknown_alias_fails_with_alias_not_found():
    resolver = ResolveRecipient(name_service=StaticNameService())

    with pytest.raises(ResolutionError) as exc_info:
        resolver.resolve("ghost.eth")

    assert exc_info.value.code == "alias_not_found"
    assert exc_info.value.message == "alias not found"


def test_alias_resolving_to_malformed_address_fails():
    resolver = ResolveRecipient(name_service=StaticNameService(addresses={"bad.eth": "0x1234"}))

    with pytest.raises(ResolutionError) as exc_info:
        resolver.resolve("bad.eth")

    assert exc_info.value.code == "alias_not_found"


@pytest.mark.parametrize("identifier", ["", "alice", "alice.com", "0x123"])
def test_unrecognized_identifier_fails(identifier):
    resolver = ResolveRecipient(name_service=StaticNameService())

    with pytest.raises(ResolutionError) as exc_info:
        resolver.resolve(identifier)

    assert exc_info.value.code == "unrecognized_identifier"
