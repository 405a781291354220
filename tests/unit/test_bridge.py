"""Тесты BridgeTransferManager.

Coverage:
- transfer_cross_chain: burn, Pending запись, nonce, UnsupportedChain
- complete_transfer: mint на destination, DuplicateCompletion
- acknowledge_completion: Pending → Completed на source
- Сохранение суммарного supply при round trip
"""

import pytest

from usdx_protocol.core.domain.records import TransferStatus
from usdx_protocol.core.domain.units import to_base_units
from usdx_protocol.core.errors import (
    DuplicateCompletion,
    InsufficientBalanceError,
    Unauthorized,
    UnsupportedChain,
    ValidationError,
)

HUB_CHAIN_ID = 1
SPOKE_CHAIN_ID = 137
THOUSAND = to_base_units("1000")


@pytest.fixture
def hub_usdx_holder(network, funded_user):
    network.hub.vault.deposit(funded_user, THOUSAND)
    return funded_user


def _relay(network, record):
    """Доставка transfer так, как это делает relayer."""
    destination = network.bridge_for(record.dest_chain_id)
    destination.complete_transfer(
        "relayer",
        record.transfer_id,
        record.source_chain_id,
        record.sender,
        record.amount,
        record.recipient,
    )
    network.bridge_for(record.source_chain_id).acknowledge_completion("relayer", record.transfer_id)


class TestInitiateTransfer:
    def test_burns_and_records_pending(self, network, hub_usdx_holder):
        bridge = network.hub.bridge
        record = bridge.transfer_cross_chain(hub_usdx_holder, 300, SPOKE_CHAIN_ID, "bob")

        assert record.status == TransferStatus.PENDING
        assert record.nonce == 0
        assert record.source_chain_id == HUB_CHAIN_ID
        assert bridge.transfer_nonce == 1
        assert bridge.get_pending_transfer(record.transfer_id) == record
        assert network.hub.usdx.balance_of(hub_usdx_holder) == THOUSAND - 300

        event = network.hub.chain.get_logs()[-1].event
        assert event.kind == "TransferInitiated"
        assert event.transfer_id == record.transfer_id
        assert event.dest_chain_id == SPOKE_CHAIN_ID

    def test_identical_transfers_get_distinct_ids(self, network, hub_usdx_holder):
        bridge = network.hub.bridge
        first = bridge.transfer_cross_chain(hub_usdx_holder, 10, SPOKE_CHAIN_ID, "bob")
        second = bridge.initiate_transfer(hub_usdx_holder, 10, SPOKE_CHAIN_ID, "bob")

        assert first.transfer_id != second.transfer_id
        assert [r.nonce for r in bridge.pending_transfers()] == [0, 1]

    @pytest.mark.parametrize("dest", [999, HUB_CHAIN_ID])
    def test_unsupported_destination(self, network, hub_usdx_holder, dest):
        with pytest.raises(UnsupportedChain) as exc_info:
            network.hub.bridge.transfer_cross_chain(hub_usdx_holder, 10, dest, "bob")

        assert exc_info.value.reason == "UnsupportedChain"
        assert isinstance(exc_info.value, ValidationError)
        assert network.hub.usdx.balance_of(hub_usdx_holder) == THOUSAND
        assert network.hub.bridge.transfer_nonce == 0

    def test_insufficient_balance(self, network, hub_usdx_holder):
        with pytest.raises(InsufficientBalanceError):
            network.hub.bridge.transfer_cross_chain(hub_usdx_holder, THOUSAND + 1, SPOKE_CHAIN_ID, "bob")
        assert network.hub.bridge.pending_transfers() == []

    def test_zero_amount(self, network, hub_usdx_holder):
        with pytest.raises(ValidationError):
            network.hub.bridge.transfer_cross_chain(hub_usdx_holder, 0, SPOKE_CHAIN_ID, "bob")


class TestCompleteTransfer:
    def test_complete_mints_on_destination(self, network, hub_usdx_holder):
        record = network.hub.bridge.transfer_cross_chain(hub_usdx_holder, 300, SPOKE_CHAIN_ID, "bob")
        spoke = network.spokes[SPOKE_CHAIN_ID]

        completed = spoke.bridge.complete_transfer(
            "relayer", record.transfer_id, HUB_CHAIN_ID, hub_usdx_holder, 300, "bob"
        )

        assert completed.status == TransferStatus.COMPLETED
        assert spoke.usdx.balance_of("bob") == 300
        assert spoke.bridge.get_transfer(record.transfer_id).completed_at is not None
        assert spoke.chain.get_logs()[-1].event.kind == "TransferCompleted"

    def test_second_completion_rejected(self, network, hub_usdx_holder):
        record = network.hub.bridge.transfer_cross_chain(hub_usdx_holder, 300, SPOKE_CHAIN_ID, "bob")
        spoke = network.spokes[SPOKE_CHAIN_ID]
        args = ("relayer", record.transfer_id, HUB_CHAIN_ID, hub_usdx_holder, 300, "bob")
        spoke.bridge.complete_transfer(*args)

        with pytest.raises(DuplicateCompletion):
            spoke.bridge.complete_transfer(*args)
        assert spoke.usdx.total_supply == 300

    def test_requires_relayer(self, network, hub_usdx_holder):
        record = network.hub.bridge.transfer_cross_chain(hub_usdx_holder, 300, SPOKE_CHAIN_ID, "bob")
        with pytest.raises(Unauthorized):
            network.spokes[SPOKE_CHAIN_ID].bridge.complete_transfer(
                "bob", record.transfer_id, HUB_CHAIN_ID, hub_usdx_holder, 300, "bob"
            )

    def test_unsupported_source(self, network):
        with pytest.raises(UnsupportedChain):
            network.spokes[SPOKE_CHAIN_ID].bridge.complete_transfer(
                "relayer", "0x" + "11" * 32, 999, "alice", 300, "bob"
            )

    def test_malformed_transfer_id(self, network):
        with pytest.raises(ValidationError):
            network.spokes[SPOKE_CHAIN_ID].bridge.complete_transfer(
                "relayer", "0xabc", HUB_CHAIN_ID, "alice", 300, "bob"
            )


class TestAcknowledge:
    def test_source_record_completed(self, network, hub_usdx_holder):
        record = network.hub.bridge.transfer_cross_chain(hub_usdx_holder, 300, SPOKE_CHAIN_ID, "bob")
        _relay(network, record)

        source_record = network.hub.bridge.get_transfer(record.transfer_id)
        assert source_record.status == TransferStatus.COMPLETED
        assert network.hub.bridge.get_pending_transfer(record.transfer_id) is None
        assert network.hub.bridge.pending_transfers() == []

    def test_second_acknowledge_rejected(self, network, hub_usdx_holder):
        record = network.hub.bridge.transfer_cross_chain(hub_usdx_holder, 300, SPOKE_CHAIN_ID, "bob")
        _relay(network, record)
        with pytest.raises(DuplicateCompletion):
            network.hub.bridge.acknowledge_completion("relayer", record.transfer_id)

    def test_unknown_transfer(self, network):
        with pytest.raises(ValidationError) as exc_info:
            network.hub.bridge.acknowledge_completion("relayer", "0x" + "22" * 32)
        assert exc_info.value.reason == "unknown_transfer"


class TestConservation:
    def test_round_trip_conserves_supply(self, network, hub_usdx_holder):
        total_before = network.total_usdx_supply()

        outbound = network.hub.bridge.transfer_cross_chain(hub_usdx_holder, 400, SPOKE_CHAIN_ID, "bob")
        assert network.total_usdx_supply() == total_before - 400
        _relay(network, outbound)
        assert network.total_usdx_supply() == total_before

        inbound = network.spokes[SPOKE_CHAIN_ID].bridge.transfer_cross_chain(
            "bob", 150, HUB_CHAIN_ID, hub_usdx_holder
        )
        _relay(network, inbound)

        assert network.total_usdx_supply() == total_before
        assert network.hub.usdx.balance_of(hub_usdx_holder) == THOUSAND - 400 + 150
        assert network.spokes[SPOKE_CHAIN_ID].usdx.balance_of("bob") == 250


class TestSupportedChains:
    def test_admin_only(self, network):
        with pytest.raises(Unauthorized):
            network.hub.bridge.set_supported_chain("mallory", 10, True)

    def test_toggle(self, network):
        bridge = network.hub.bridge
        assert bridge.is_supported_chain(SPOKE_CHAIN_ID)
        assert not bridge.set_supported_chain("admin", SPOKE_CHAIN_ID, True)
        assert bridge.set_supported_chain("admin", 10, True)
        assert bridge.supported_chains() == [10, SPOKE_CHAIN_ID]
        assert bridge.set_supported_chain("admin", 10, False)
        assert not bridge.is_supported_chain(10)
