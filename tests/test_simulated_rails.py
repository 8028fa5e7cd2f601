from decimal import Decimal

import pytest

from lestream.domain.errors import RailError
from lestream.infrastructure.document_stores import FileDocumentStore
from lestream.infrastructure.simulated_rails import SimulatedPaymentRails, SimulatedRewardTokens, StaticNameService


def test_static_name_service_is_case_insensitive():
    names = StaticNameService(addresses={"alice.eth": "0xabc"}, records={"alice.eth": {"k": "v"}})

    assert names.resolve("ALICE.eth") == "0xabc"
    assert names.get_preference_record("Alice.ETH", "k") == "v"
    assert names.get_preference_record("alice.eth", "missing") is None


def test_simulated_payment_rails_record_calls():
    rails = SimulatedPaymentRails()

    transfer_ref = rails.transfer("wallet", "0xabc", Decimal("0.5"))
    bridge_ref = rails.bridge("wallet", "Arc_Testnet", "Base_Sepolia", "0xdef", Decimal("0.25"))

    assert transfer_ref.startswith("sim-tx-")
    assert bridge_ref.startswith("sim-bridge-")
    assert rails.transfers[0]["amount"] == "0.5"
    assert rails.bridges[0]["destination_domain"] == "Base_Sepolia"


def test_simulated_reward_tokens_apply_tier_rule():
    tokens = SimulatedRewardTokens(owner="admin")

    receipt = tokens.mint("0xabc")
    tokens.add_accrued_time(receipt.token_id, 3600)
    tokens.set_tier(receipt.token_id)

    (token,) = tokens.get_owned_tokens("admin")
    assert token.listen_seconds == 3600
    assert token.tier == 2
    assert tokens.get_owned_tokens("someone-else") == []


def test_simulated_reward_tokens_survive_a_new_instance_over_the_same_store(tmp_path):
    store = FileDocumentStore(root=tmp_path)
    receipt = SimulatedRewardTokens(owner="admin", store=store).mint("0xabc")

    restarted = SimulatedRewardTokens(owner="admin", store=store)
    restarted.add_accrued_time(receipt.token_id, 40000)
    restarted.set_tier(receipt.token_id)

    (token,) = restarted.get_owned_tokens("admin")
    assert token.token_id == receipt.token_id
    assert token.tier == 3


def test_unknown_reward_token_is_a_rail_error():
    tokens = SimulatedRewardTokens()

    with pytest.raises(RailError) as exc_info:
        tokens.add_accrued_time("0xmissing", 10)
    with pytest.raises(RailError):
        tokens.set_tier("0xmissing")

    assert exc_info.value.code == "unknown_token"
