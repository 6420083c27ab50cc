"""
Superellipse Engine — Σ|c − r_i|^u = K

Обобщение сферической кривой на показатель u = u_parameter / 10_000.
Структура повторяет sphere.py: центр c = 2·(K/N)^(1/u), координаты дефицита
y_i = c − r_i, квадраты и квадратные корни заменены на u-ю степень и корень
из fixed_point (wad_pow / solve_power_root).

Все величины в WAD: резервы должны быть масштабированы на 10^18, иначе
u-я степень малых значений теряет точность (PrecisionLoss).

ФОРМУЛЫ:
    c            = 2 · (K / N)^(1/u)
    swap i → j:  (y_j + out)^u = K − Σ_{k≠i,j} y_k^u − (y_i − amount_in)^u
    price(i, j): (y_i / ŷ_j)^(u−1), ŷ_j = (K − Σ_{k≠i,j} y_k^u − y_i^u)^(1/u)

ОКРУГЛЕНИЕ:
    Корень ищется с относительным допуском 1e-9 по значению степени; выход
    уменьшается на SWAP_ROUNDING_MARGIN_WAD от y_j после свопа, так что
    погрешность приближения всегда в пользу пула.
"""

from fractions import Fraction
from typing import Final, Sequence

from orbital_amm.core.domain.curve import U_PRECISION
from orbital_amm.core.errors import (
    InsufficientLiquidity,
    InvalidParameter,
    NoSolution,
    SuperellipseConstraintViolation,
    ZeroReserve,
)
from orbital_amm.core.math.fixed_point import (
    WAD,
    checked_sum,
    solve_power_root,
    wad_div,
    wad_pow,
    within_tolerance,
)
from orbital_amm.invariants.sphere import validate_pair

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Запас округления выхода: 2e-9 от y_j (WAD), покрывает допуск solve_power_root
SWAP_ROUNDING_MARGIN_WAD: Final[int] = 2 * 10**9

# Эвристики выбора u по волатильности (u_parameter, масштаб 10_000)
HIGH_VOLATILITY_U_PARAMETER: Final[int] = 22_000
MEDIUM_VOLATILITY_U_PARAMETER: Final[int] = 25_000
LOW_VOLATILITY_U_PARAMETER: Final[int] = 28_000

# Максимальная концентрация относительно сферы (bp)
MAX_CONCENTRATION_BP: Final[int] = 30_000


def exponent_of(u_parameter: int) -> Fraction:
    """Показатель u как точная дробь."""
    if u_parameter <= U_PRECISION:
        raise InvalidParameter("u_parameter", f"must be > {U_PRECISION}, got {u_parameter}")
    return Fraction(u_parameter, U_PRECISION)


# =============================================================================
# ГЕОМЕТРИЯ
# =============================================================================


def power_sum(values: Sequence[int], u_parameter: int) -> int:
    """Σ values_i^u (WAD)."""
    u = exponent_of(u_parameter)
    return checked_sum(wad_pow(v, u) for v in values)


def center(k_constant: int, token_count: int, u_parameter: int) -> int:
    """Координата центра c = 2 · (K/N)^(1/u)."""
    if token_count <= 0:
        raise InvalidParameter("token_count", f"must be positive, got {token_count}")
    return 2 * solve_power_root(k_constant // token_count, exponent_of(u_parameter))


def radius(k_constant: int, u_parameter: int) -> int:
    """«Радиус» кривой K^(1/u) (в единицах резервов)."""
    return solve_power_root(k_constant, exponent_of(u_parameter))


def invariant_from_radius(curve_radius: int, u_parameter: int) -> int:
    """Инвариантный параметр K = radius^u."""
    return wad_pow(curve_radius, exponent_of(u_parameter))


def equal_price_point(k_constant: int, token_count: int, u_parameter: int) -> int:
    """Резерв каждого токена в точке равных цен: (K/N)^(1/u)."""
    return center(k_constant, token_count, u_parameter) // 2


def parity_invariant(reserve: int, token_count: int, u_parameter: int) -> int:
    """
    K для пула, все резервы которого равны reserve.

    Examples:
        >>> parity_invariant(WAD, 2, 25_000)
        2000000000000000000
    """
    return token_count * wad_pow(reserve, exponent_of(u_parameter))


def deficits(reserves: Sequence[int], k_constant: int, u_parameter: int) -> list[int]:
    """Координаты дефицита y_i = c − r_i."""
    c = center(k_constant, len(reserves), u_parameter)
    return [c - r for r in reserves]


def constraint_value(reserves: Sequence[int], k_constant: int, u_parameter: int) -> int:
    """Фактическое значение Σ|c − r_i|^u."""
    return power_sum([abs(y) for y in deficits(reserves, k_constant, u_parameter)], u_parameter)


# =============================================================================
# CONSTRAINT VERIFICATION
# =============================================================================


def verify_constraint(
    reserves: Sequence[int], k_constant: int, u_parameter: int, tolerance_bp: int
) -> None:
    """
    Проверка |Σ|c − r_i|^u − K| ≤ K · tolerance_bp / 10_000.

    Raises:
        SuperellipseConstraintViolation: Резервы не лежат на кривой
        PrecisionLoss: Степень не вычисляется с гарантированной точностью
    """
    ys = deficits(reserves, k_constant, u_parameter)
    actual = power_sum([abs(y) for y in ys], u_parameter)
    if any(y < 0 for y in ys) or not within_tolerance(actual, k_constant, tolerance_bp):
        raise SuperellipseConstraintViolation(
            u_parameter=u_parameter, actual=actual, expected=k_constant
        )


# =============================================================================
# SWAP OUTPUT
# =============================================================================


def compute_swap_output(
    reserves: Sequence[int],
    token_in: int,
    token_out: int,
    amount_in: int,
    k_constant: int,
    u_parameter: int,
) -> int:
    """
    Выход свопа token_in → token_out по суперэллипсу.

    Args:
        reserves: Резервы до свопа (WAD)
        token_in: Индекс входного токена i
        token_out: Индекс выходного токена j
        amount_in: Вход (WAD)
        k_constant: K активной кривой
        u_parameter: u · 10_000

    Returns:
        amount_out ∈ [0, reserves[j]]

    Raises:
        TokenIndexOutOfBounds: Невалидные индексы
        ZeroReserve: Нулевой резерв i или j
        InsufficientLiquidity: Нет неотрицательного корня в пределах резерва
        NoSolution: Резервы вне грани кривой
        PrecisionLoss: Корень не найден в пределах бюджета итераций
    """
    validate_pair(reserves, token_in, token_out)
    for index in (token_in, token_out):
        if reserves[index] == 0:
            raise ZeroReserve(index)
    if amount_in < 0:
        raise InvalidParameter("amount_in", f"must be non-negative, got {amount_in}")
    if amount_in == 0:
        return 0

    u = exponent_of(u_parameter)
    ys = deficits(reserves, k_constant, u_parameter)
    if ys[token_in] < 0 or ys[token_out] < 0:
        raise NoSolution("superellipse swap: reserves beyond the curve center")

    y_in_after = ys[token_in] - amount_in
    if y_in_after < 0:
        raise InsufficientLiquidity(needed=amount_in, available=ys[token_in])

    others = sum(wad_pow(abs(y), u) for k, y in enumerate(ys) if k not in (token_in, token_out))
    target = k_constant - others - wad_pow(y_in_after, u)
    if target < 0:
        raise InsufficientLiquidity(needed=amount_in, available=ys[token_in])

    y_out_after = solve_power_root(target, u)
    margin = y_out_after * SWAP_ROUNDING_MARGIN_WAD // WAD + 1
    if y_out_after + margin < ys[token_out]:
        raise NoSolution("superellipse swap: reserves lie outside the curve")
    amount_out = max(y_out_after - ys[token_out] - margin, 0)
    if amount_out > reserves[token_out]:
        raise InsufficientLiquidity(needed=amount_out, available=reserves[token_out])
    return amount_out


def balance_point_amount(
    reserves: Sequence[int],
    token_in: int,
    token_out: int,
    k_constant: int,
    u_parameter: int,
) -> int | None:
    """Вход, при котором y_i и y_j сравниваются (предельный курс равен 1)."""
    u = exponent_of(u_parameter)
    ys = deficits(reserves, k_constant, u_parameter)
    others = sum(wad_pow(abs(y), u) for k, y in enumerate(ys) if k not in (token_in, token_out))
    pair_total = k_constant - others
    if pair_total <= 0:
        return None
    amount = ys[token_in] - solve_power_root(pair_total // 2, u)
    return amount if amount > 0 else None


# =============================================================================
# PRICE
# =============================================================================


def calculate_price(
    reserves: Sequence[int],
    token_in: int,
    token_out: int,
    k_constant: int,
    u_parameter: int,
) -> int:
    """
    Предельный курс token_in в единицах token_out (WAD): (y_i / ŷ_j)^(u−1).

    Raises:
        TokenIndexOutOfBounds: Невалидные индексы
        ZeroReserve: Нулевой резерв или вырожденная неявная координата
        NoSolution: Резерв вне грани кривой
        PrecisionLoss: Степень не вычисляется с гарантированной точностью
    """
    validate_pair(reserves, token_in, token_out)
    for index in (token_in, token_out):
        if reserves[index] == 0:
            raise ZeroReserve(index)

    u = exponent_of(u_parameter)
    ys = deficits(reserves, k_constant, u_parameter)
    if ys[token_in] < 0:
        raise NoSolution("superellipse price: reserve beyond the curve center")

    others = sum(wad_pow(abs(y), u) for k, y in enumerate(ys) if k not in (token_in, token_out))
    implicit_power = k_constant - others - wad_pow(ys[token_in], u)
    if implicit_power <= 0:
        raise ZeroReserve(token_out)

    implicit = solve_power_root(implicit_power, u)
    if implicit == 0:
        raise ZeroReserve(token_out)
    return wad_pow(wad_div(ys[token_in], implicit), u - 1)


# =============================================================================
# PARAMETER HEURISTICS
# =============================================================================


def recommended_u_for_volatility(volatility_bp: int) -> int:
    """
    Рекомендуемый u_parameter по ожидаемой волатильности пары.

    Args:
        volatility_bp: Ожидаемая волатильность в basis points

    Returns:
        22_000 (> 100bp), 25_000 (50–100bp), 28_000 (≤ 50bp)
    """
    if volatility_bp > 100:
        return HIGH_VOLATILITY_U_PARAMETER
    if volatility_bp > 50:
        return MEDIUM_VOLATILITY_U_PARAMETER
    return LOW_VOLATILITY_U_PARAMETER


def concentration_ratio(u_parameter: int) -> int:
    """
    Эмпирическая концентрация ликвидности относительно сферы (bp).

    10_000 для u ≤ 2, далее 10_000 + (u_parameter − 20_000), не выше 30_000.
    """
    if u_parameter <= 20_000:
        return 10_000
    return min(10_000 + (u_parameter - 20_000), MAX_CONCENTRATION_BP)
