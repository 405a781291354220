"""
Position — Модель collateral позиции пользователя на hub

Immutable Pydantic модели:
- CollateralPosition: principal + доля в yield venue (share units)
- YieldPricing: totalAssets / totalShareUnits yield venue

Все изменения создают новый экземпляр (after_deposit / after_withdraw),
что позволяет вычислить полное новое состояние до фиксации.
"""

from pydantic import BaseModel, Field

from usdx_protocol.core.domain.units import SHARE_SCALE, WAD
from usdx_protocol.core.math.fixed_point import mul_div_down, mul_div_up


# =============================================================================
# COLLATERAL POSITION
# =============================================================================


class CollateralPosition(BaseModel):
    """
    Позиция пользователя в HubVaultLedger.

    Создаётся при первом депозите, никогда не удаляется (обнуляется).
    """

    user: str = Field(..., min_length=1, description="Владелец позиции")
    principal: int = Field(0, ge=0, description="Внесённый collateral (USDC base units)")
    yield_share_units: int = Field(0, ge=0, description="Доля в yield venue (share units)")
    last_updated: int = Field(0, ge=0, description="Время последнего изменения (unix sec)")

    model_config = {"frozen": True}

    @classmethod
    def empty(cls, user: str, timestamp: int) -> "CollateralPosition":
        return cls(user=user, principal=0, yield_share_units=0, last_updated=timestamp)

    @property
    def is_empty(self) -> bool:
        return self.principal == 0 and self.yield_share_units == 0

    def after_deposit(self, amount: int, shares: int, timestamp: int) -> "CollateralPosition":
        """Новая позиция после депозита amount с начислением shares."""
        return self.model_copy(
            update={
                "principal": self.principal + amount,
                "yield_share_units": self.yield_share_units + shares,
                "last_updated": timestamp,
            }
        )

    def shares_for_withdrawal(self, amount: int) -> int:
        """
        Share units, пропорциональные выводу amount из principal.

        Полный вывод забирает все shares (без остатка от округления).
        Частичный округляется вверх: выплата не ниже amount, пока стоимость
        shares не ниже principal.
        """
        if amount > self.principal:
            raise ValueError(f"amount {amount} exceeds principal {self.principal}")
        if amount == self.principal:
            return self.yield_share_units
        return mul_div_up(self.yield_share_units, amount, self.principal)

    def after_withdraw(self, amount: int, shares: int, timestamp: int) -> "CollateralPosition":
        """Новая позиция после вывода amount с погашением shares."""
        if amount > self.principal or shares > self.yield_share_units:
            raise ValueError(
                f"withdraw ({amount}, {shares}) exceeds position "
                f"({self.principal}, {self.yield_share_units})"
            )
        return self.model_copy(
            update={
                "principal": self.principal - amount,
                "yield_share_units": self.yield_share_units - shares,
                "last_updated": timestamp,
            }
        )


# =============================================================================
# YIELD PRICING
# =============================================================================


class YieldPricing(BaseModel):
    """
    Глобальное ценообразование yield venue.

    share price = total_assets / total_share_units, не убывает без выводов.
    Share units имеют SHARE_DECIMALS (18): пустой venue выпускает
    SHARE_SCALE share units на base unit.

    Округление:
    - assets → shares при выпуске вверх: стоимость выпущенных shares сразу
      после депозита не ниже внесённых assets; остальные держатели теряют
      меньше одного share unit (1e-12 base unit) на депозит
    - shares → assets вниз (выплаты)
    """

    total_assets: int = Field(0, ge=0, description="Активы venue (base units)")
    total_share_units: int = Field(0, ge=0, description="Выпущенные share units")

    model_config = {"frozen": True}

    def share_price_wad(self) -> int:
        """Цена SHARE_SCALE share units (эквивалент base unit) в WAD, 1e18 == 1:1."""
        if self.total_share_units == 0:
            return WAD
        return mul_div_down(self.total_assets * SHARE_SCALE, WAD, self.total_share_units)

    def convert_to_shares(self, assets: int) -> int:
        if self.total_share_units == 0 or self.total_assets == 0:
            return assets * SHARE_SCALE
        return mul_div_up(assets, self.total_share_units, self.total_assets)

    def convert_to_assets(self, shares: int) -> int:
        if self.total_share_units == 0:
            return shares // SHARE_SCALE
        return mul_div_down(shares, self.total_assets, self.total_share_units)

    def after_deposit(self, assets: int, shares: int) -> "YieldPricing":
        return self.model_copy(
            update={
                "total_assets": self.total_assets + assets,
                "total_share_units": self.total_share_units + shares,
            }
        )

    def after_redeem(self, assets: int, shares: int) -> "YieldPricing":
        return self.model_copy(
            update={
                "total_assets": self.total_assets - assets,
                "total_share_units": self.total_share_units - shares,
            }
        )

    def after_accrual(self, interest: int) -> "YieldPricing":
        return self.model_copy(update={"total_assets": self.total_assets + interest})
