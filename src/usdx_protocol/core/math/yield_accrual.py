"""
Yield Accrual — Начисление доходности yield venue

Модуль считает прирост totalAssets yield venue за прошедшее время:
- Дискретное компаундирование с шагом compounding_interval_sec
- Линейное начисление на неполный остаток шага
- Точная целочисленная арифметика (Python int без переполнения)

ФОРМУЛЫ:
    n, rem = divmod(elapsed, step)
    grown = assets × ((BPS×YEAR + apy_bps×step) / (BPS×YEAR))^n
    grown += grown × apy_bps × rem / (BPS×YEAR)
    interest = grown − assets

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. interest >= 0 (share price не убывает без выводов)
2. elapsed <= 0 → interest == 0
3. Детерминированность: одинаковые входы → одинаковый результат
"""

from typing import Final

from usdx_protocol.core.domain.units import SECONDS_PER_DAY, SECONDS_PER_YEAR
from usdx_protocol.core.math.fixed_point import mul_div_down

# =============================================================================
# ПАРАМЕТРЫ
# =============================================================================

BPS_DENOMINATOR: Final[int] = 10_000

# 5% годовых, ставка mock venue по умолчанию
DEFAULT_APY_BPS: Final[int] = 500

# Верхняя граница ставки (защита от ошибок конфигурации)
MAX_APY_BPS: Final[int] = 10_000

DEFAULT_COMPOUNDING_INTERVAL_SEC: Final[int] = SECONDS_PER_DAY


def validate_apy_bps(apy_bps: int) -> int:
    """
    Проверка ставки в basis points.

    Raises:
        ValueError: Если ставка вне [0, MAX_APY_BPS]
    """
    if isinstance(apy_bps, bool) or not isinstance(apy_bps, int):
        raise ValueError(f"apy_bps must be int, got {type(apy_bps).__name__}")
    if apy_bps < 0 or apy_bps > MAX_APY_BPS:
        raise ValueError(f"apy_bps {apy_bps} outside [0, {MAX_APY_BPS}]")
    return apy_bps


def linear_interest(assets: int, apy_bps: int, elapsed_seconds: int) -> int:
    """
    Простой процент за elapsed_seconds, округление вниз.

    Args:
        assets: База начисления (base units)
        apy_bps: Годовая ставка (bps)
        elapsed_seconds: Прошедшее время (сек)

    Returns:
        Начисленный процент (base units)
    """
    if elapsed_seconds <= 0 or assets == 0 or apy_bps == 0:
        return 0
    return mul_div_down(assets * apy_bps, elapsed_seconds, BPS_DENOMINATOR * SECONDS_PER_YEAR)


def compound_interest(
    assets: int,
    apy_bps: int,
    elapsed_seconds: int,
    step_seconds: int = DEFAULT_COMPOUNDING_INTERVAL_SEC,
) -> int:
    """
    Компаундированный процент за elapsed_seconds.

    Args:
        assets: База начисления (base units)
        apy_bps: Годовая ставка (bps)
        elapsed_seconds: Прошедшее время (сек)
        step_seconds: Шаг компаундирования (сек)

    Returns:
        Начисленный процент (base units), всегда >= 0

    Examples:
        >>> compound_interest(1_000_000_000, 500, 0)
        0
        >>> compound_interest(1_000_000_000, 500, 365 * 86400) > 50_000_000
        True
    """
    validate_apy_bps(apy_bps)
    if step_seconds <= 0:
        raise ValueError(f"step_seconds must be positive, got {step_seconds}")
    if elapsed_seconds <= 0 or assets == 0 or apy_bps == 0:
        return 0

    denom = BPS_DENOMINATOR * SECONDS_PER_YEAR
    steps, remainder = divmod(elapsed_seconds, step_seconds)

    grown = assets
    if steps:
        growth_num = denom + apy_bps * step_seconds
        grown = (assets * growth_num**steps) // (denom**steps)
    grown += linear_interest(grown, apy_bps, remainder)

    return grown - assets
