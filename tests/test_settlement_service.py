from decimal import Decimal

import pytest

from conftest import ADDRESS_A, ADDRESS_B, ADDRESS_C, FakeRails, RecordingPublisher, make_song
from lestream.application.recipient_resolver import ResolveRecipient
from lestream.application.settlement_service import SettleRoyalties
from lestream.domain.errors import InvalidInput
from lestream.domain.models import PaymentOutcome, SongSplit
from lestream.domain.policies import SplitPolicy
from lestream.infrastructure.simulated_rails import StaticNameService


def _service(rails, name_service=None, publisher=None, max_concurrent_transfers=4) -> SettleRoyalties:
    return SettleRoyalties(
        resolver=ResolveRecipient(name_service=name_service or StaticNameService()),
        transfer_rail=rails,
        bridge_rail=rails,
        event_publisher=publisher or RecordingPublisher(),
        max_concurrent_transfers=max_concurrent_transfers,
    )


def test_configured_split_pays_each_collaborator_on_hub():
    rails = FakeRails()
    splits = [
        SongSplit(ADDRESS_A, Decimal(50)),
        SongSplit(ADDRESS_B, Decimal(30)),
        SongSplit(ADDRESS_C, Decimal(20)),
    ]

    result = _service(rails).settle("wallet-1", "0.10", splits)

    assert [payment.amount for payment in result.payments] == [Decimal("0.05"), Decimal("0.03"), Decimal("0.02")]
    assert all(payment.succeeded and not payment.bridged for payment in result.payments)
    assert sorted(rails.transfers) == sorted(
        [
            ("wallet-1", ADDRESS_A, Decimal("0.050000")),
            ("wallet-1", ADDRESS_B, Decimal("0.030000")),
            ("wallet-1", ADDRESS_C, Decimal("0.020000")),
        ]
    )
    assert rails.bridges == []
    assert result.summary.successful == 3
    assert result.summary.failed == 0


def test_partial_failure_does_not_affect_siblings():
    rails = FakeRails()
    names = StaticNameService(addresses={"alice.eth": ADDRESS_A, "cleo.eth": ADDRESS_C})
    splits = [
        SongSplit("alice.eth", Decimal(50)),
        SongSplit("bob.eth", Decimal(30)),
        SongSplit("cleo.eth", Decimal(20)),
    ]

    result = _service(rails, names).settle("wallet-1", Decimal("0.10"), splits)

    assert [payment.recipient_identifier for payment in result.payments] == ["alice.eth", "bob.eth", "cleo.eth"]
    assert [payment.succeeded for payment in result.payments] == [True, False, True]
    failed = result.payments[1]
    assert failed.error == "alias not found"
    assert failed.error_code == "alias_not_found"
    assert failed.recipient_address is None
    assert result.summary.successful == 2
    assert result.summary.failed == 1


def test_rail_errors_and_unexpected_exceptions_become_failed_outcomes():
    rails = FakeRails(failing_addresses={ADDRESS_B}, raising_addresses={ADDRESS_C})
    splits = [
        SongSplit(ADDRESS_A, Decimal(50)),
        SongSplit(ADDRESS_B, Decimal(30)),
        SongSplit(ADDRESS_C, Decimal(20)),
    ]

    result = _service(rails).settle("wallet-1", "1", splits)

    assert result.payments[0].succeeded
    assert result.payments[1].error_code == "transfer_failed"
    assert result.payments[2].error_code == "rail_error"
    assert result.payments[2].error == "socket closed"
    assert result.summary.failed == 2


def test_non_hub_domain_is_bridged_from_hub():
    rails = FakeRails()
    splits = [
        SongSplit(ADDRESS_A, Decimal(60), preferred_domain="Base_Sepolia"),
        SongSplit(ADDRESS_B, Decimal(40), preferred_domain="Arc_Testnet"),
    ]

    result = _service(rails).settle("wallet-1", "1", splits)

    bridged, direct = result.payments
    assert bridged.bridged and bridged.domain == "Base_Sepolia"
    assert not direct.bridged and direct.domain == "Arc_Testnet"
    assert rails.bridges == [("wallet-1", "Arc_Testnet", "Base_Sepolia", ADDRESS_A, Decimal("0.600000"))]
    assert rails.transfers == [("wallet-1", ADDRESS_B, Decimal("0.400000"))]


def test_preference_record_redirects_payment():
    rails = FakeRails()
    names = StaticNameService(
        addresses={"bob.eth": ADDRESS_B},
        records={"bob.eth": {"lestream.payout-chain": "Optimism_Sepolia"}},
    )

    result = _service(rails, names).settle(
        "wallet-1",
        "1",
        [SongSplit("bob.eth", Decimal(100), preferred_domain="Base_Sepolia")],
    )

    assert result.payments[0].domain == "Optimism_Sepolia"
    assert rails.bridges[0][2] == "Optimism_Sepolia"


def test_equal_split_policy_is_reported_on_result():
    rails = FakeRails()
    splits = [SongSplit(address, Decimal(10)) for address in (ADDRESS_A, ADDRESS_B, ADDRESS_C)]

    result = _service(rails, max_concurrent_transfers=1).settle("wallet-1", "0.009", splits, policy=SplitPolicy.EQUAL_SPLIT)

    assert result.policy is SplitPolicy.EQUAL_SPLIT
    assert [payment.amount for payment in result.payments] == [Decimal("0.003000")] * 3


def test_missing_wallet_is_rejected():
    with pytest.raises(InvalidInput) as exc_info:
        _service(FakeRails()).settle("", "1", [SongSplit(ADDRESS_A, Decimal(100))])

    assert exc_info.value.code == "missing_wallet"


def test_settle_for_listen_prices_seconds():
    rails = FakeRails()
    song = make_song(price="0.0001")

    result = _service(rails).settle_for_listen("wallet-1", song, 100, correlation_id="corr-1")

    assert result.total_amount == Decimal("0.010000")
    assert result.song_id == "song-1"
    assert result.correlation_id == "corr-1"
    assert [payment.amount for payment in result.payments] == [Decimal("0.005"), Decimal("0.003"), Decimal("0.002")]


def test_settlement_publishes_per_recipient_and_completion_events():
    publisher = RecordingPublisher()
    rails = FakeRails(failing_addresses={ADDRESS_B})
    splits = [SongSplit(ADDRESS_A, Decimal(50)), SongSplit(ADDRESS_B, Decimal(50))]

    _service(rails, publisher=publisher).settle("wallet-1", "1", splits, correlation_id="corr-9")

    names = publisher.names()
    assert sorted(names[:2]) == ["RoyaltyPaymentFailed", "RoyaltyPaymentSettled"]
    assert names[-1] == "SettlementCompleted"
    assert publisher.events[-1].payload_summary["successful"] == 1
    assert {event.correlation_id for event in publisher.events} == {"corr-9"}


def test_empty_rail_reference_is_a_failed_payment():
    class _BlankRails(FakeRails):
        def transfer(self, wallet_ref, dest_address, amount):
            super().transfer(wallet_ref, dest_address, amount)
            return "" if dest_address == ADDRESS_B else "tx-ok"

    splits = [SongSplit(ADDRESS_A, Decimal(50)), SongSplit(ADDRESS_B, Decimal(50))]

    result = _service(_BlankRails()).settle("wallet-1", "1", splits)

    assert [payment.succeeded for payment in result.payments] == [True, False]
    assert result.payments[1].error_code == "missing_reference"
    assert result.summary.failed == 1


def test_payment_outcome_without_reference_is_not_successful():
    outcome = PaymentOutcome(ADDRESS_A, "Alice", ADDRESS_A, Decimal(100), Decimal("1"), "Arc_Testnet", False, reference="")

    assert not outcome.succeeded
