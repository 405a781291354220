"""
Ledger components: chain host, token ledgers, hub vault, spoke minter, bridge.
"""

from usdx_protocol.ledger.chain import Chain, ChainConfig, Clock, ManualClock, SystemClock, Transaction
from usdx_protocol.ledger.store import KeyedStore
from usdx_protocol.ledger.access import RoleRegistry
from usdx_protocol.ledger.token import TokenLedger
from usdx_protocol.ledger.yield_venue import YieldVenue, YieldVenueConfig
from usdx_protocol.ledger.hub_vault import HubVaultLedger
from usdx_protocol.ledger.spoke_minter import SpokePositionMinter
from usdx_protocol.ledger.bridge import BridgeTransferManager
from usdx_protocol.ledger.network import HubDomain, LocalNetwork, SpokeDomain, build_local_network

__all__ = [
    "Chain",
    "ChainConfig",
    "Clock",
    "ManualClock",
    "SystemClock",
    "Transaction",
    "KeyedStore",
    "RoleRegistry",
    "TokenLedger",
    "YieldVenue",
    "YieldVenueConfig",
    "HubVaultLedger",
    "SpokePositionMinter",
    "BridgeTransferManager",
    "HubDomain",
    "SpokeDomain",
    "LocalNetwork",
    "build_local_network",
]
