"""Общие fixtures: локальная сеть hub + один spoke на управляемых часах."""

import pytest

from usdx_protocol.core.domain.units import to_base_units
from usdx_protocol.ledger import ManualClock, build_local_network

HUB_CHAIN_ID = 1
SPOKE_CHAIN_ID = 137


@pytest.fixture
def clock():
    return ManualClock(start=1_700_000_000)


@pytest.fixture
def network(clock):
    return build_local_network(
        hub_chain_id=HUB_CHAIN_ID,
        spoke_chain_ids=(SPOKE_CHAIN_ID,),
        admin="admin",
        relayer="relayer",
        clock=clock,
    )


@pytest.fixture
def funded_user(network):
    """alice с 10 000 USDC на hub."""
    network.faucet("alice", to_base_units("10000"))
    return "alice"
