"""
Core math modules для Orbital AMM

Детерминированные fixed-point примитивы (18 decimals) без float.
"""

from orbital_amm.core.math.fixed_point import (
    # Scale constants
    BP_PRECISION,
    MAX_UINT256,
    WAD,
    # Iteration budgets / precision
    POW_FRACTION_BITS,
    POW_MAX_RELATIVE_ERROR_WAD,
    ROOT_MAX_ITERATIONS,
    ROOT_RELATIVE_TOLERANCE_WAD,
    SQRT_MAX_ITERATIONS,
    # Checked arithmetic
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    checked_sum,
    clamp,
    dot_product,
    ensure_uint,
    mul_div,
    # Roots and powers
    integer_sqrt,
    solve_power_root,
    sqrt_nearest,
    wad_div,
    wad_mul,
    wad_pow,
    wad_pow_int,
    wad_root,
    # Basis points
    apply_bp,
    approx_eq_bp,
    bp_change,
    within_tolerance,
)

__all__ = [
    # Scale constants
    "BP_PRECISION",
    "MAX_UINT256",
    "WAD",
    # Iteration budgets / precision
    "POW_FRACTION_BITS",
    "POW_MAX_RELATIVE_ERROR_WAD",
    "ROOT_MAX_ITERATIONS",
    "ROOT_RELATIVE_TOLERANCE_WAD",
    "SQRT_MAX_ITERATIONS",
    # Checked arithmetic
    "checked_add",
    "checked_div",
    "checked_mul",
    "checked_sub",
    "checked_sum",
    "clamp",
    "dot_product",
    "ensure_uint",
    "mul_div",
    # Roots and powers
    "integer_sqrt",
    "solve_power_root",
    "sqrt_nearest",
    "wad_div",
    "wad_mul",
    "wad_pow",
    "wad_pow_int",
    "wad_root",
    # Basis points
    "apply_bp",
    "approx_eq_bp",
    "bp_change",
    "within_tolerance",
]
