"""
HubVaultLedger — Collateral и yield-bearing позиции пользователей на hub

Источник истины для hub position:
- deposit: USDC → vault → yield venue, USDX mint 1:1
- withdraw: USDX burn 1:1, пропорциональные shares погашаются по текущей цене
- getUserPosition: стоимость shares пользователя (principal + доходность)

Порядок каждой мутации:
1. Все проверки (amount, балансы, роли, collateral)
2. Начисление доходности venue
3. Расчёт новой позиции (чистые функции CollateralPosition)
4. Фиксация позиции и totals
5. Внешние движения токенов (USDC, venue, USDX)
6. Событие

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Σ principal == total_minted == total_collateral
2. withdraw(u, amt) успешен только если amt <= principal(u)
3. Σ yield_share_units позиций == shares vault в venue
4. Стоимость shares, выпущенных за deposit(amount), сразу после него >= amount
"""

import logging
from typing import Iterator, Tuple

from usdx_protocol.core.domain.events import Deposited, Withdrawn
from usdx_protocol.core.domain.position import CollateralPosition
from usdx_protocol.core.domain.roles import Operation
from usdx_protocol.core.domain.units import WAD, validate_address, validate_amount
from usdx_protocol.core.errors import InsufficientCollateral
from usdx_protocol.core.math.fixed_point import mul_div_down
from usdx_protocol.ledger.chain import Chain
from usdx_protocol.ledger.store import KeyedStore
from usdx_protocol.ledger.token import TokenLedger
from usdx_protocol.ledger.yield_venue import YieldVenue

logger = logging.getLogger(__name__)


class HubVaultLedger:
    """Hub vault: collateral, mint/burn USDX, маршрутизация в yield venue."""

    def __init__(
        self,
        chain: Chain,
        usdc: TokenLedger,
        usdx: TokenLedger,
        venue: YieldVenue,
        address: str = "hub-vault",
    ):
        self._chain = chain
        self.usdc = usdc
        self.usdx = usdx
        self.venue = venue
        self.address = address

        self._positions: KeyedStore[str, CollateralPosition] = KeyedStore("positions")
        self._total_collateral = 0
        self._total_minted = 0

    # =========================================================================
    # МУТАЦИИ
    # =========================================================================

    def deposit(self, user: str, amount: int) -> CollateralPosition:
        """
        Депозит USDC с mint USDX 1:1.

        Args:
            user: Депозитор (он же получатель USDX)
            amount: Сумма USDC в base units

        Returns:
            Новая позиция пользователя

        Raises:
            ValidationError: amount <= 0
            InsufficientBalanceError: USDC баланс пользователя < amount
            Unauthorized: vault не имеет права mint на USDX
        """
        with self._chain.transaction() as tx:
            validate_address(user)
            validate_amount(amount)
            self.usdc.require_balance(user, amount)
            self.usdx.roles.require(self.address, Operation.MINT)

            self.venue.accrue_in(tx)
            shares = self.venue.pricing(tx.timestamp).convert_to_shares(amount)
            current = self._positions.get(user) or CollateralPosition.empty(user, tx.timestamp)
            updated = current.after_deposit(amount, shares, tx.timestamp)

            self._positions.upsert(user, updated)
            self._total_collateral += amount
            self._total_minted += amount

            self.usdc.transfer_in(tx, user, self.address, amount)
            self.venue.deposit_in(tx, self.address, amount)
            self.usdx.mint_in(tx, self.address, user, amount)

            tx.emit(self.address, Deposited(user=user, usdc_amount=amount, usdx_amount=amount))

        logger.info(
            "Hub %s: %s deposited %d (principal=%d, shares=%d)",
            tx.chain_id,
            user,
            amount,
            updated.principal,
            updated.yield_share_units,
        )
        return updated

    def withdraw(self, user: str, amount: int) -> int:
        """
        Вывод collateral с burn USDX 1:1.

        Returns:
            Выплата USDC (>= amount после начисления доходности)

        Raises:
            ValidationError: amount <= 0
            InsufficientCollateral: amount > principal пользователя
            InsufficientBalanceError: USDX баланс пользователя < amount
        """
        with self._chain.transaction() as tx:
            validate_address(user)
            validate_amount(amount)
            current = self._positions.get(user)
            collateral = current.principal if current is not None else 0
            if current is None or amount > collateral:
                raise InsufficientCollateral(
                    f"{user}: withdraw {amount} exceeds collateral {collateral}"
                )
            self.usdx.require_balance(user, amount)
            self.usdx.roles.require(self.address, Operation.BURN)

            shares = current.shares_for_withdrawal(amount)
            self.venue.accrue_in(tx)
            payout = self.venue.pricing(tx.timestamp).convert_to_assets(shares)
            updated = current.after_withdraw(amount, shares, tx.timestamp)

            self._positions.replace(user, updated)
            self._total_collateral -= amount
            self._total_minted -= amount

            self.usdx.burn_in(tx, self.address, user, amount)
            if shares > 0:
                payout = self.venue.redeem_in(tx, self.address, shares, user)

            tx.emit(self.address, Withdrawn(user=user, usdc_amount=payout, usdx_amount=amount))

        logger.info(
            "Hub %s: %s withdrew %d, paid out %d (principal=%d)",
            tx.chain_id,
            user,
            amount,
            payout,
            updated.principal,
        )
        return payout

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_position(self, user: str) -> CollateralPosition:
        return self._positions.get(user) or CollateralPosition.empty(user, 0)

    def positions(self) -> Iterator[Tuple[str, CollateralPosition]]:
        return self._positions.items()

    def get_user_collateral(self, user: str) -> int:
        return self.get_position(user).principal

    def get_user_yield_position(self, user: str) -> Tuple[int, int]:
        """(share units, их текущая стоимость в USDC)."""
        shares = self.get_position(user).yield_share_units
        return shares, self.venue.pricing().convert_to_assets(shares)

    def get_user_position(self, user: str) -> int:
        """
        Hub position пользователя: стоимость его shares по текущей цене.

        Authoritative snapshot для relayer.
        """
        return self.get_user_yield_position(user)[1]

    def get_total_collateral(self) -> int:
        return self._total_collateral

    def get_total_minted(self) -> int:
        return self._total_minted

    def get_total_value(self) -> int:
        return self.venue.pricing().convert_to_assets(self.venue.shares_of(self.address))

    def get_collateral_ratio(self) -> int:
        """
        total value / total minted в WAD.

        Без выпущенных USDX возвращает WAD.
        """
        if self._total_minted == 0:
            return WAD
        return mul_div_down(self.get_total_value(), WAD, self._total_minted)
