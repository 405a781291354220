"""
Units — Централизованный модуль единиц и валидации сумм

Все суммы в протоколе — неотрицательные целые в base units токена
(6 decimals для USDC и USDX). Float в учёте ЗАПРЕЩЁН: только int.

Единственный допустимый способ преобразований между:
- человекочитаемыми суммами ("1000.5")
- base units (1_000_500_000)
"""

from decimal import Decimal, InvalidOperation
from typing import Final, Union

from usdx_protocol.core.errors import ValidationError


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

USDC_DECIMALS: Final[int] = 6
USDX_DECIMALS: Final[int] = 6

# 18-decimal fixed point для share price и collateral ratio
WAD: Final[int] = 10**18

# Share units yield venue: 18 decimals против 6 у USDC
SHARE_DECIMALS: Final[int] = 18
SHARE_SCALE: Final[int] = 10 ** (SHARE_DECIMALS - USDC_DECIMALS)

SECONDS_PER_DAY: Final[int] = 24 * 60 * 60
SECONDS_PER_YEAR: Final[int] = 365 * SECONDS_PER_DAY


# =============================================================================
# КОНВЕРТЕРЫ
# =============================================================================


def to_base_units(amount: Union[str, int, Decimal], decimals: int = USDX_DECIMALS) -> int:
    """
    Конверсия человекочитаемой суммы в base units (аналог parseUnits).

    Args:
        amount: Сумма ("1000", "0.5", 12, Decimal("3.25"))
        decimals: Количество знаков токена

    Returns:
        Сумма в base units

    Raises:
        ValidationError: Если сумма не парсится или содержит больше знаков, чем decimals

    Examples:
        >>> to_base_units("1000")
        1000000000
        >>> to_base_units("0.000001")
        1
    """
    if isinstance(amount, float):
        raise ValidationError("float amounts are not accepted, use str or Decimal", "invalid_amount")
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Cannot parse amount: {amount!r}", "invalid_amount")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValidationError(
            f"Amount {amount} has more than {decimals} decimal places", "invalid_amount"
        )
    return int(scaled)


def format_units(value: int, decimals: int = USDX_DECIMALS) -> str:
    """
    Конверсия base units в строку (аналог formatUnits).

    Examples:
        >>> format_units(1500000)
        '1.5'
    """
    quantized = Decimal(value).scaleb(-decimals)
    text = format(quantized, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_amount(amount: int) -> int:
    """
    Проверка, что сумма — положительное целое.

    Raises:
        ValidationError: Если amount не int или amount <= 0
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"Amount must be an integer, got {type(amount).__name__}", "invalid_amount")
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got {amount}", "invalid_amount")
    return amount


def validate_non_negative(value: int, name: str) -> int:
    """Проверка неотрицательного целого (snapshot, block number)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}", "invalid_amount")
    if value < 0:
        raise ValidationError(f"{name} cannot be negative: {value}", "invalid_amount")
    return value


def validate_address(address: str) -> str:
    """
    Проверка идентификатора аккаунта.

    Raises:
        ValidationError: Если адрес пустой или не строка
    """
    if not isinstance(address, str) or not address.strip():
        raise ValidationError(f"Invalid address: {address!r}", "invalid_address")
    return address
