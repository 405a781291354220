"""
YieldVenue — Share vault, в который hub направляет collateral

ERC-4626-подобная модель:
- deposit(assets) → shares по текущей цене
- redeem(shares) → assets по текущей цене
- доходность начисляется по прошедшему времени (compound_interest) и
  материализуется mint'ом USDC на баланс venue

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. USDC баланс venue == pricing.total_assets после каждой транзакции
2. Начисление выполняется до любой конверсии assets ↔ shares
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from usdx_protocol.core.domain.position import YieldPricing
from usdx_protocol.core.domain.units import validate_amount
from usdx_protocol.core.errors import InsufficientBalanceError
from usdx_protocol.core.math.yield_accrual import (
    DEFAULT_APY_BPS,
    DEFAULT_COMPOUNDING_INTERVAL_SEC,
    compound_interest,
    validate_apy_bps,
)
from usdx_protocol.ledger.chain import Chain, Transaction
from usdx_protocol.ledger.token import TokenLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YieldVenueConfig:
    """Конфигурация yield venue."""

    apy_bps: int = DEFAULT_APY_BPS
    compounding_interval_sec: int = DEFAULT_COMPOUNDING_INTERVAL_SEC


class YieldVenue:
    """Mock yield venue с начислением по времени."""

    def __init__(
        self,
        chain: Chain,
        asset: TokenLedger,
        address: str,
        config: Optional[YieldVenueConfig] = None,
    ):
        self._chain = chain
        self.asset = asset
        self.address = address
        self.config = config or YieldVenueConfig()
        validate_apy_bps(self.config.apy_bps)

        self._pricing = YieldPricing()
        self._shares: Dict[str, int] = {}
        self._last_accrual_ts = chain.clock.now()

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def _pending_interest(self, now: int) -> int:
        return compound_interest(
            self._pricing.total_assets,
            self.config.apy_bps,
            now - self._last_accrual_ts,
            self.config.compounding_interval_sec,
        )

    def pricing(self, now: Optional[int] = None) -> YieldPricing:
        """Ценообразование с учётом ещё не материализованной доходности."""
        now = self._chain.clock.now() if now is None else now
        return self._pricing.after_accrual(self._pending_interest(now))

    @property
    def last_accrual_ts(self) -> int:
        return self._last_accrual_ts

    def shares_of(self, owner: str) -> int:
        return self._shares.get(owner, 0)

    def total_assets(self) -> int:
        return self.pricing().total_assets

    # -------------------------------------------------------------------------
    # Операции внутри открытой транзакции
    # -------------------------------------------------------------------------

    def accrue_in(self, tx: Transaction) -> int:
        """Материализация начисленной доходности на момент блока."""
        interest = self._pending_interest(tx.timestamp)
        if interest > 0:
            self.asset.mint_in(tx, self.address, self.address, interest)
            self._pricing = self._pricing.after_accrual(interest)
            logger.debug("Venue %s: accrued %d", self.address, interest)
        self._last_accrual_ts = max(self._last_accrual_ts, tx.timestamp)
        return interest

    def deposit_in(self, tx: Transaction, depositor: str, assets: int) -> int:
        """
        Депозит assets от depositor (начисление должно быть выполнено до вызова).

        Returns:
            Выпущенные shares
        """
        validate_amount(assets)
        self.asset.require_balance(depositor, assets)
        shares = self._pricing.convert_to_shares(assets)

        self._pricing = self._pricing.after_deposit(assets, shares)
        self._shares[depositor] = self.shares_of(depositor) + shares
        self.asset.transfer_in(tx, depositor, self.address, assets)
        return shares

    def redeem_in(self, tx: Transaction, owner: str, shares: int, receiver: str) -> int:
        """
        Погашение shares владельца owner с выплатой receiver.

        Returns:
            Выплаченные assets
        """
        validate_amount(shares)
        if shares > self.shares_of(owner):
            raise InsufficientBalanceError(
                f"Venue {self.address}: {owner} holds {self.shares_of(owner)} shares < {shares}"
            )
        assets = self._pricing.convert_to_assets(shares)

        self._pricing = self._pricing.after_redeem(assets, shares)
        self._shares[owner] -= shares
        if assets > 0:
            self.asset.transfer_in(tx, self.address, receiver, assets)
        return assets
