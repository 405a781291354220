"""
Network — Сборка локальной hub/spoke сети

Один hub (USDC, USDX, yield venue, vault, bridge) и N spoke (USDX, minter,
bridge). Роли выдаются так, как их выдаёт deploy-скрипт протокола:
- hub USDX: VAULT → vault, BRIDGE → bridge
- hub USDC: MINTER → venue (материализация доходности), MINTER → admin (faucet)
- spoke USDX: MINTER → minter, BRIDGE → bridge
- RELAYER на minter и bridge каждого домена
- supported chains в bridge: hub ↔ каждый spoke
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Sequence

from usdx_protocol.core.domain.roles import Role
from usdx_protocol.core.domain.units import USDC_DECIMALS, USDX_DECIMALS
from usdx_protocol.ledger.bridge import BridgeTransferManager
from usdx_protocol.ledger.chain import Chain, ChainConfig, Clock, ManualClock
from usdx_protocol.ledger.hub_vault import HubVaultLedger
from usdx_protocol.ledger.spoke_minter import SpokePositionMinter
from usdx_protocol.ledger.token import TokenLedger
from usdx_protocol.ledger.yield_venue import YieldVenue, YieldVenueConfig

logger = logging.getLogger(__name__)


@dataclass
class HubDomain:
    chain: Chain
    usdc: TokenLedger
    usdx: TokenLedger
    venue: YieldVenue
    vault: HubVaultLedger
    bridge: BridgeTransferManager


@dataclass
class SpokeDomain:
    chain: Chain
    usdx: TokenLedger
    minter: SpokePositionMinter
    bridge: BridgeTransferManager


@dataclass
class LocalNetwork:
    hub: HubDomain
    spokes: Dict[int, SpokeDomain] = field(default_factory=dict)
    admin: str = "admin"
    relayer: str = "relayer"
    network_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def chains(self) -> Iterator[Chain]:
        yield self.hub.chain
        for spoke in self.spokes.values():
            yield spoke.chain

    def bridge_for(self, chain_id: int) -> BridgeTransferManager:
        if chain_id == self.hub.chain.chain_id:
            return self.hub.bridge
        return self.spokes[chain_id].bridge

    def total_usdx_supply(self) -> int:
        """Суммарный supply USDX по всем доменам."""
        return self.hub.usdx.total_supply + sum(s.usdx.total_supply for s in self.spokes.values())

    def faucet(self, user: str, amount: int) -> None:
        """Выдача тестовых USDC на hub."""
        self.hub.usdc.mint(self.admin, user, amount)


def _build_hub(
    chain_id: int, admin: str, relayer: str, clock: Clock, venue_config: Optional[YieldVenueConfig]
) -> HubDomain:
    chain = Chain(ChainConfig(chain_id=chain_id, name="hub"), clock)
    usdc = TokenLedger(chain, "USDC", USDC_DECIMALS, admin, "usdc")
    usdx = TokenLedger(chain, "USDX", USDX_DECIMALS, admin, "usdx")
    venue = YieldVenue(chain, usdc, "yield-venue", venue_config)
    vault = HubVaultLedger(chain, usdc, usdx, venue)
    bridge = BridgeTransferManager(chain, usdx, admin)

    usdc.roles.grant_role(admin, Role.MINTER, venue.address)
    usdc.roles.grant_role(admin, Role.MINTER, admin)
    usdx.roles.grant_role(admin, Role.VAULT, vault.address)
    usdx.roles.grant_role(admin, Role.BRIDGE, bridge.address)
    bridge.roles.grant_role(admin, Role.RELAYER, relayer)
    return HubDomain(chain=chain, usdc=usdc, usdx=usdx, venue=venue, vault=vault, bridge=bridge)


def _build_spoke(chain_id: int, admin: str, relayer: str, clock: Clock) -> SpokeDomain:
    chain = Chain(ChainConfig(chain_id=chain_id, name=f"spoke-{chain_id}"), clock)
    usdx = TokenLedger(chain, "USDX", USDX_DECIMALS, admin, "usdx")
    minter = SpokePositionMinter(chain, usdx, admin)
    bridge = BridgeTransferManager(chain, usdx, admin)

    usdx.roles.grant_role(admin, Role.MINTER, minter.address)
    usdx.roles.grant_role(admin, Role.BRIDGE, bridge.address)
    minter.roles.grant_role(admin, Role.RELAYER, relayer)
    bridge.roles.grant_role(admin, Role.RELAYER, relayer)
    return SpokeDomain(chain=chain, usdx=usdx, minter=minter, bridge=bridge)


def build_local_network(
    hub_chain_id: int = 1,
    spoke_chain_ids: Sequence[int] = (137,),
    admin: str = "admin",
    relayer: str = "relayer",
    clock: Optional[Clock] = None,
    venue_config: Optional[YieldVenueConfig] = None,
) -> LocalNetwork:
    """
    Сборка сети со всеми ролями и маршрутами bridge.

    Args:
        hub_chain_id: Chain id hub
        spoke_chain_ids: Chain id spoke-доменов
        admin: Администратор всех компонентов
        relayer: Аккаунт relayer
        clock: Общие часы доменов (по умолчанию ManualClock)
        venue_config: Параметры yield venue

    Raises:
        ValueError: Повторяющиеся chain id
    """
    ids = [hub_chain_id, *spoke_chain_ids]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Chain ids must be unique: {ids}")

    clock = clock or ManualClock()
    hub = _build_hub(hub_chain_id, admin, relayer, clock, venue_config)
    spokes = {
        chain_id: _build_spoke(chain_id, admin, relayer, clock)
        for chain_id in spoke_chain_ids
    }

    for chain_id, spoke in spokes.items():
        hub.bridge.set_supported_chain(admin, chain_id, True)
        spoke.bridge.set_supported_chain(admin, hub_chain_id, True)

    logger.info("Local network: hub=%d spokes=%s", hub_chain_id, list(spokes))
    return LocalNetwork(hub=hub, spokes=spokes, admin=admin, relayer=relayer)
