"""
SpokePositionMinter — Mint USDX на spoke против attested hub position

Собственного collateral на spoke нет: верхняя граница mint — snapshot
позиции на hub, доставленный relayer. Каждый mint несёт mintId
(idempotency key); повторная доставка того же mintId отклоняется
DuplicateMint без эффекта.

Поток user-initiated mint:
1. relayer синхронизирует позицию (update_hub_position)
2. пользователь создаёт запрос (request_mint) → событие MintRequested
3. relayer исполняет mint_from_hub_position со свежим snapshot
   и mintId = derive_request_mint_id(chain_id, request_id)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. mintId применяется не более одного раза
2. minted_total[u] + amount <= snapshot для каждого успешного mint
3. Устаревший (hub_block <= сохранённого) update не откатывает кэш позиции
4. minted_total[u] не убывает: USDX, ушедшие через bridge или transfer,
   не освобождают лимит mint
"""

import logging
from typing import Dict, Optional

from usdx_protocol.core.domain.events import (
    HubPositionUpdated,
    MintFromPosition,
    MintRequested,
)
from usdx_protocol.core.domain.ids import derive_request_mint_id
from usdx_protocol.core.domain.records import AttestedHubPosition, MintRecord, MintRequest
from usdx_protocol.core.domain.roles import Operation
from usdx_protocol.core.domain.units import validate_address, validate_amount, validate_non_negative
from usdx_protocol.core.errors import DuplicateMint, InsufficientHubPosition, ValidationError
from usdx_protocol.ledger.access import RoleRegistry
from usdx_protocol.ledger.chain import Chain
from usdx_protocol.ledger.store import KeyedStore
from usdx_protocol.ledger.token import TokenLedger

logger = logging.getLogger(__name__)


class SpokePositionMinter:
    """Minter одного spoke-домена."""

    def __init__(
        self,
        chain: Chain,
        usdx: TokenLedger,
        admin: str,
        address: str = "spoke-minter",
    ):
        self._chain = chain
        self.usdx = usdx
        self.address = address
        self.roles = RoleRegistry(chain, address, admin)

        self._minted_total: Dict[str, int] = {}
        self._mints: KeyedStore[str, MintRecord] = KeyedStore("mints")
        self._hub_positions: KeyedStore[str, AttestedHubPosition] = KeyedStore("hub_positions")
        self._requests: KeyedStore[int, MintRequest] = KeyedStore("mint_requests")
        self._next_request_id = 1

    # =========================================================================
    # RELAYER ENTRYPOINTS
    # =========================================================================

    def mint_from_hub_position(
        self,
        caller: str,
        user: str,
        amount: int,
        hub_position_snapshot: int,
        mint_id: str,
    ) -> MintRecord:
        """
        Mint против snapshot позиции пользователя на hub.

        Args:
            caller: Relayer (роль RELAYER)
            user: Получатель USDX
            amount: Сумма mint
            hub_position_snapshot: Позиция пользователя на hub на момент вызова
            mint_id: Idempotency key

        Raises:
            Unauthorized: caller без роли RELAYER
            DuplicateMint: mint_id уже применён
            InsufficientHubPosition: minted_total + amount > snapshot
        """
        with self._chain.transaction() as tx:
            self.roles.require(caller, Operation.MINT_FROM_HUB_POSITION)
            validate_address(user)
            validate_amount(amount)
            validate_non_negative(hub_position_snapshot, "hub_position_snapshot")
            if not isinstance(mint_id, str) or not mint_id:
                raise ValidationError(f"Invalid mint_id: {mint_id!r}")
            if mint_id in self._mints:
                raise DuplicateMint(f"Spoke {tx.chain_id}: mint {mint_id} already processed")

            minted = self.get_minted_total(user)
            if minted + amount > hub_position_snapshot:
                raise InsufficientHubPosition(
                    f"{user}: minted {minted} + {amount} exceeds hub position {hub_position_snapshot}"
                )
            self.usdx.roles.require(self.address, Operation.MINT)

            record = MintRecord(
                mint_id=mint_id,
                user=user,
                amount=amount,
                hub_position_snapshot=hub_position_snapshot,
                timestamp=tx.timestamp,
            )
            self._mints.insert(mint_id, record)
            self._minted_total[user] = minted + amount
            self.usdx.mint_in(tx, self.address, user, amount)

            tx.emit(
                self.address,
                MintFromPosition(
                    user=user, amount=amount, hub_position=hub_position_snapshot, mint_id=mint_id
                ),
            )

        logger.info(
            "Spoke %s: minted %d to %s (total=%d, snapshot=%d, mint_id=%s)",
            tx.chain_id,
            amount,
            user,
            minted + amount,
            hub_position_snapshot,
            mint_id,
        )
        return record

    def update_hub_position(self, caller: str, user: str, position: int, hub_block: int) -> bool:
        """
        Сохранение attested позиции пользователя.

        Returns:
            True если кэш обновлён, False если update устарел
        """
        with self._chain.transaction() as tx:
            self.roles.require(caller, Operation.UPDATE_HUB_POSITION)
            validate_address(user)
            validate_non_negative(position, "position")
            validate_non_negative(hub_block, "hub_block")

            existing = self._hub_positions.get(user)
            if existing is not None and hub_block <= existing.hub_block:
                logger.debug(
                    "Spoke %s: stale position for %s at hub block %d (stored %d)",
                    tx.chain_id,
                    user,
                    hub_block,
                    existing.hub_block,
                )
                return False

            self._hub_positions.upsert(
                user,
                AttestedHubPosition(
                    user=user, position=position, hub_block=hub_block, updated_at=tx.timestamp
                ),
            )
            tx.emit(
                self.address,
                HubPositionUpdated(
                    user=user, new_position=position, hub_block=hub_block, updater=caller
                ),
            )

        logger.info(
            "Spoke %s: hub position of %s = %d (hub block %d)", tx.chain_id, user, position, hub_block
        )
        return True

    # =========================================================================
    # USER ENTRYPOINTS
    # =========================================================================

    def request_mint(self, user: str, amount: int) -> MintRequest:
        """
        Запрос mint против кэшированной позиции.

        Raises:
            InsufficientHubPosition: amount > доступного лимита
        """
        with self._chain.transaction() as tx:
            validate_address(user)
            validate_amount(amount)
            available = self.get_available_mint_amount(user)
            if amount > available:
                raise InsufficientHubPosition(
                    f"{user}: requested {amount} exceeds available {available}"
                )

            request = MintRequest(
                request_id=self._next_request_id, user=user, amount=amount, created_at=tx.timestamp
            )
            self._requests.insert(request.request_id, request)
            self._next_request_id += 1
            tx.emit(
                self.address,
                MintRequested(user=user, amount=amount, request_id=request.request_id),
            )

        logger.info("Spoke %s: %s requested mint %d (#%d)", tx.chain_id, user, amount, request.request_id)
        return request


    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_attested_position(self, user: str) -> Optional[AttestedHubPosition]:
        return self._hub_positions.get(user)

    def get_user_position(self, user: str) -> int:
        attested = self._hub_positions.get(user)
        return attested.position if attested is not None else 0

    def get_minted_total(self, user: str) -> int:
        return self._minted_total.get(user, 0)

    def get_available_mint_amount(self, user: str) -> int:
        return max(0, self.get_user_position(user) - self.get_minted_total(user))

    def get_mint(self, mint_id: str) -> Optional[MintRecord]:
        return self._mints.get(mint_id)

    def is_mint_processed(self, mint_id: str) -> bool:
        return mint_id in self._mints

    def get_request(self, request_id: int) -> Optional[MintRequest]:
        return self._requests.get(request_id)

    def is_request_fulfilled(self, request_id: int) -> bool:
        return derive_request_mint_id(self._chain.chain_id, request_id) in self._mints
