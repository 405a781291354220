"""
Fixed Point — Целочисленная арифметика с явным округлением

Модуль обеспечивает детерминированные integer-операции для учёта:
- mul_div с округлением вниз/вверх (без промежуточного переполнения, Python int)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит молча (ValueError)
2. Направление округления выбирает вызывающий: mul_div_down или mul_div_up
3. Float никогда не участвует в вычислениях
"""


def _require_int(value: int, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def mul_div_down(x: int, y: int, denominator: int) -> int:
    """
    floor(x * y / denominator).

    Examples:
        >>> mul_div_down(10, 3, 4)
        7
    """
    _require_int(x, "x")
    _require_int(y, "y")
    _require_int(denominator, "denominator")
    if denominator == 0:
        raise ValueError("mul_div_down: denominator is zero")
    return (x * y) // denominator


def mul_div_up(x: int, y: int, denominator: int) -> int:
    """
    ceil(x * y / denominator).

    Examples:
        >>> mul_div_up(10, 3, 4)
        8
    """
    _require_int(x, "x")
    _require_int(y, "y")
    _require_int(denominator, "denominator")
    if denominator == 0:
        raise ValueError("mul_div_up: denominator is zero")
    return -((-(x * y)) // denominator)
