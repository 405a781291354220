"""
Domain Clients — RPC-доступ relayer к доменам

Relayer видит домен только через DomainClient: JSON payload записей event
log, snapshot позиции hub и мутирующие entrypoints spoke/bridge. Общей
памяти с ledger нет; все ответы — JSON-совместимые dict.

InProcessDomainClient обслуживает локальную сеть (build_local_network):
каждый вызов проходит через _rpc(), где можно смоделировать сбой
транспорта (inject_fault) → ExternalDependencyError.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from usdx_protocol.core.errors import ExternalDependencyError, ValidationError
from usdx_protocol.ledger.bridge import BridgeTransferManager
from usdx_protocol.ledger.chain import Chain
from usdx_protocol.ledger.hub_vault import HubVaultLedger
from usdx_protocol.ledger.network import LocalNetwork
from usdx_protocol.ledger.spoke_minter import SpokePositionMinter

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]


class DomainClient(Protocol):
    """RPC-интерфейс одного домена."""

    chain_id: int

    async def get_block_number(self) -> int: ...

    async def get_logs(self, after: Optional[Tuple[int, int]] = None) -> List[Payload]: ...

    async def get_user_position_snapshot(self, user: str) -> Payload: ...

    async def update_hub_position(self, caller: str, user: str, position: int, hub_block: int) -> bool: ...

    async def mint_from_hub_position(
        self, caller: str, user: str, amount: int, hub_position_snapshot: int, mint_id: str
    ) -> Payload: ...

    async def complete_transfer(
        self,
        caller: str,
        transfer_id: str,
        source_chain_id: int,
        original_sender: str,
        amount: int,
        recipient: str,
    ) -> Payload: ...

    async def acknowledge_completion(self, caller: str, transfer_id: str) -> Payload: ...


class InProcessDomainClient:
    """DomainClient поверх ledger-компонентов локальной сети."""

    def __init__(
        self,
        chain: Chain,
        vault: Optional[HubVaultLedger] = None,
        minter: Optional[SpokePositionMinter] = None,
        bridge: Optional[BridgeTransferManager] = None,
    ):
        self._chain = chain
        self._vault = vault
        self._minter = minter
        self._bridge = bridge
        self._faults: Dict[str, int] = {}

    @property
    def chain_id(self) -> int:
        return self._chain.chain_id

    def inject_fault(self, method: str, count: int = 1) -> None:
        """Следующие count вызовов method завершатся ExternalDependencyError."""
        self._faults[method] = self._faults.get(method, 0) + count

    async def _rpc(self, method: str) -> None:
        remaining = self._faults.get(method, 0)
        if remaining > 0:
            self._faults[method] = remaining - 1
            raise ExternalDependencyError(f"chain {self.chain_id}: {method} unavailable")

    def _require(self, component: Optional[Any], name: str) -> Any:
        if component is None:
            raise ValidationError(f"chain {self.chain_id} has no {name}", "unsupported_endpoint")
        return component

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_block_number(self) -> int:
        await self._rpc("get_block_number")
        return self._chain.block_number

    async def get_logs(self, after: Optional[Tuple[int, int]] = None) -> List[Payload]:
        await self._rpc("get_logs")
        return [entry.to_payload() for entry in self._chain.get_logs(after)]

    async def get_user_position_snapshot(self, user: str) -> Payload:
        await self._rpc("get_user_position_snapshot")
        vault: HubVaultLedger = self._require(self._vault, "vault")
        return {
            "hub_chain_id": self.chain_id,
            "user": user,
            "position": vault.get_user_position(user),
            "hub_block": self._chain.block_number,
        }

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def update_hub_position(self, caller: str, user: str, position: int, hub_block: int) -> bool:
        await self._rpc("update_hub_position")
        minter: SpokePositionMinter = self._require(self._minter, "minter")
        return minter.update_hub_position(caller, user, position, hub_block)

    async def mint_from_hub_position(
        self, caller: str, user: str, amount: int, hub_position_snapshot: int, mint_id: str
    ) -> Payload:
        await self._rpc("mint_from_hub_position")
        minter: SpokePositionMinter = self._require(self._minter, "minter")
        record = minter.mint_from_hub_position(caller, user, amount, hub_position_snapshot, mint_id)
        return record.model_dump(mode="json")

    async def complete_transfer(
        self,
        caller: str,
        transfer_id: str,
        source_chain_id: int,
        original_sender: str,
        amount: int,
        recipient: str,
    ) -> Payload:
        await self._rpc("complete_transfer")
        bridge: BridgeTransferManager = self._require(self._bridge, "bridge")
        record = bridge.complete_transfer(
            caller, transfer_id, source_chain_id, original_sender, amount, recipient
        )
        return record.model_dump(mode="json")

    async def acknowledge_completion(self, caller: str, transfer_id: str) -> Payload:
        await self._rpc("acknowledge_completion")
        bridge: BridgeTransferManager = self._require(self._bridge, "bridge")
        return bridge.acknowledge_completion(caller, transfer_id).model_dump(mode="json")


def clients_for_network(
    network: LocalNetwork,
) -> Tuple[InProcessDomainClient, Dict[int, InProcessDomainClient]]:
    """Клиенты hub и всех spoke локальной сети."""
    hub = InProcessDomainClient(network.hub.chain, vault=network.hub.vault, bridge=network.hub.bridge)
    spokes = {
        chain_id: InProcessDomainClient(spoke.chain, minter=spoke.minter, bridge=spoke.bridge)
        for chain_id, spoke in network.spokes.items()
    }
    return hub, spokes
