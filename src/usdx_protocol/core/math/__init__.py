"""
Core math modules для usdx-protocol

Целочисленные примитивы и начисление доходности с гарантией детерминированности.
"""

from usdx_protocol.core.math.fixed_point import mul_div_down, mul_div_up

from usdx_protocol.core.math.yield_accrual import (
    BPS_DENOMINATOR,
    DEFAULT_APY_BPS,
    DEFAULT_COMPOUNDING_INTERVAL_SEC,
    MAX_APY_BPS,
    compound_interest,
    linear_interest,
    validate_apy_bps,
)

__all__ = [
    # Fixed point
    "mul_div_down",
    "mul_div_up",
    # Yield accrual
    "BPS_DENOMINATOR",
    "DEFAULT_APY_BPS",
    "DEFAULT_COMPOUNDING_INTERVAL_SEC",
    "MAX_APY_BPS",
    "compound_interest",
    "linear_interest",
    "validate_apy_bps",
]
