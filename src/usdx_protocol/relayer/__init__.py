"""
Position relayer: event pump между доменами, durable checkpoint, heartbeat.
"""

from usdx_protocol.relayer.checkpoint import Checkpoint, SQLiteCheckpointStore
from usdx_protocol.relayer.clients import DomainClient, InProcessDomainClient, clients_for_network
from usdx_protocol.relayer.config import RelayerConfig, load_relayer_config
from usdx_protocol.relayer.retry import BackoffPolicy, call_with_retry
from usdx_protocol.relayer.service import PositionRelayer

__all__ = [
    "Checkpoint",
    "SQLiteCheckpointStore",
    "DomainClient",
    "InProcessDomainClient",
    "clients_for_network",
    "RelayerConfig",
    "load_relayer_config",
    "BackoffPolicy",
    "call_with_retry",
    "PositionRelayer",
]
