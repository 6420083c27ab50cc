"""
Sphere Invariant Engine — Σ(c − r_i)² = R²

Сферическая кривая N-мерного пула. Сфера радиуса R центрирована в точке
c·(1, …, 1), где c = 2·sqrt(R²/N); резервы лежат на грани сферы,
обращённой к началу координат (r_i ≤ c).

В координатах дефицита y_i = c − r_i:
    Σ y_i² = R²
Депозит токена i уменьшает y_i, выплата токена j увеличивает y_j, поэтому
поверхность выпукла по резервам: выход растёт медленнее входа
(diminishing returns) и круговой обмен не приносит прибыли.

В точке равных цен r_i = sqrt(R²/N) для всех i, поэтому там одновременно
выполняется Σ r_i² = R².

ФОРМУЛЫ:
    c            = sqrt(4·R² / N)
    swap i → j:  (y_j + out)² = R² − Σ_{k≠i,j} y_k² − (y_i − amount_in)²
    price(i, j): dr_j/dr_i = y_i / sqrt(R² − Σ_{k≠i,j} y_k² − y_i²)   (WAD)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Все вычисления целочисленные, детерминированные
2. Выход округляется к ближайшей единице, отклонение от поверхности
   не превышает одной единицы координаты
3. Никогда не выплачивается больше резерва выходного токена
"""

from dataclasses import dataclass
from typing import Sequence

from orbital_amm.core.errors import (
    InsufficientLiquidity,
    InvalidParameter,
    NoSolution,
    SphereConstraintViolation,
    TokenIndexOutOfBounds,
    ZeroReserve,
)
from orbital_amm.core.math.fixed_point import (
    WAD,
    bp_change,
    checked_sum,
    integer_sqrt,
    sqrt_nearest,
    within_tolerance,
)


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class PolarDecomposition:
    """Разложение вектора резервов на норму и направление."""

    norm: int  # sqrt(Σ r_i²)
    direction: tuple[int, ...]  # r_i / norm в WAD


# =============================================================================
# ГЕОМЕТРИЯ СФЕРЫ
# =============================================================================


def center(radius_squared: int, token_count: int) -> int:
    """
    Координата центра сферы c = 2·sqrt(R²/N).

    Examples:
        >>> center(2_000_000_000_000, 2)
        2000000
    """
    if token_count <= 0:
        raise InvalidParameter("token_count", f"must be positive, got {token_count}")
    return integer_sqrt(4 * radius_squared // token_count)


def radius(radius_squared: int) -> int:
    """Радиус R = floor(sqrt(R²))."""
    return integer_sqrt(radius_squared)


def invariant_from_radius(sphere_radius: int) -> int:
    """Инвариантный параметр R² по радиусу."""
    return sphere_radius * sphere_radius


def equal_price_point(radius_squared: int, token_count: int) -> int:
    """
    Резерв каждого токена в точке равных цен: sqrt(R²/N).

    Examples:
        >>> equal_price_point(5_000_000_000_000, 5)
        1000000
    """
    if token_count <= 0:
        raise InvalidParameter("token_count", f"must be positive, got {token_count}")
    return integer_sqrt(radius_squared // token_count)


def deficits(reserves: Sequence[int], radius_squared: int) -> list[int]:
    """Координаты дефицита y_i = c − r_i (могут быть отрицательными вне грани)."""
    c = center(radius_squared, len(reserves))
    return [c - r for r in reserves]


def constraint_value(reserves: Sequence[int], radius_squared: int) -> int:
    """Фактическое значение Σ(c − r_i)² для сравнения с R²."""
    return checked_sum(y * y for y in deficits(reserves, radius_squared))


def polar_decomposition(reserves: Sequence[int]) -> PolarDecomposition:
    """
    Полярное разложение резервов: норма и единичное направление (WAD).

    Raises:
        ZeroReserve: Все резервы нулевые
    """
    norm = integer_sqrt(checked_sum(r * r for r in reserves))
    if norm == 0:
        raise ZeroReserve(0)
    return PolarDecomposition(norm=norm, direction=tuple(r * WAD // norm for r in reserves))


# =============================================================================
# VALIDATION HELPERS
# =============================================================================


def validate_pair(reserves: Sequence[int], token_in: int, token_out: int) -> None:
    """
    Проверка пары индексов.

    Raises:
        TokenIndexOutOfBounds: Индекс вне диапазона или token_in == token_out
    """
    token_count = len(reserves)
    for index in (token_in, token_out):
        if not 0 <= index < token_count:
            raise TokenIndexOutOfBounds(index, token_count)
    if token_in == token_out:
        raise TokenIndexOutOfBounds(token_out, token_count)


def _ensure_nonzero(reserves: Sequence[int], *indices: int) -> None:
    for index in indices:
        if reserves[index] == 0:
            raise ZeroReserve(index)


# =============================================================================
# CONSTRAINT VERIFICATION
# =============================================================================


def verify_constraint(reserves: Sequence[int], radius_squared: int, tolerance_bp: int) -> None:
    """
    Проверка |Σ(c − r_i)² − R²| ≤ R² · tolerance_bp / 10_000.

    Резерв выше центра (r_i > c) лежит на противоположной грани сферы и
    считается нарушением.

    Args:
        reserves: Резервы (или виртуальные резервы локальной кривой)
        radius_squared: R²
        tolerance_bp: Допуск в basis points

    Raises:
        SphereConstraintViolation: Резервы не лежат на сфере
    """
    ys = deficits(reserves, radius_squared)
    actual = checked_sum(y * y for y in ys)
    if any(y < 0 for y in ys) or not within_tolerance(actual, radius_squared, tolerance_bp):
        raise SphereConstraintViolation(actual=actual, expected=radius_squared)


# =============================================================================
# SWAP OUTPUT
# =============================================================================


def compute_swap_output(
    reserves: Sequence[int],
    token_in: int,
    token_out: int,
    amount_in: int,
    radius_squared: int,
) -> int:
    """
    Выход свопа token_in → token_out при фиксированных остальных резервах.

    Решает (y_j + out)² = R² − Σ_{k≠i,j} y_k² − (y_i − amount_in)² и
    округляет корень к ближайшему целому.

    Args:
        reserves: Резервы до свопа
        token_in: Индекс входного токена i
        token_out: Индекс выходного токена j
        amount_in: Вход (в единицах резервов)
        radius_squared: R² активной кривой

    Returns:
        amount_out ∈ [0, reserves[j]]

    Raises:
        TokenIndexOutOfBounds: Невалидные индексы
        ZeroReserve: Нулевой резерв i или j
        InsufficientLiquidity: Правая часть отрицательна, депозит переводит
            r_i за центр сферы, либо выход превышает резерв
        NoSolution: Резервы вне грани сферы или корень меньше текущего y_j

    Examples:
        >>> compute_swap_output([1_000_000, 1_000_000], 0, 1, 10_000, 2_000_000_000_000)
        9901
    """
    validate_pair(reserves, token_in, token_out)
    _ensure_nonzero(reserves, token_in, token_out)
    if amount_in < 0:
        raise InvalidParameter("amount_in", f"must be non-negative, got {amount_in}")
    if amount_in == 0:
        return 0

    ys = deficits(reserves, radius_squared)
    if ys[token_in] < 0 or ys[token_out] < 0:
        raise NoSolution("sphere swap: reserves beyond the sphere center")

    y_in_after = ys[token_in] - amount_in
    if y_in_after < 0:
        raise InsufficientLiquidity(needed=amount_in, available=ys[token_in])

    others = sum(y * y for k, y in enumerate(ys) if k not in (token_in, token_out))
    rhs = radius_squared - others - y_in_after * y_in_after
    if rhs < 0:
        raise InsufficientLiquidity(needed=amount_in, available=ys[token_in])

    amount_out = sqrt_nearest(rhs) - ys[token_out]
    if amount_out < -1:
        raise NoSolution("sphere swap: reserves lie outside the sphere")
    # остаток округления предыдущих сделок: не более одной единицы
    amount_out = max(amount_out, 0)
    if amount_out > reserves[token_out]:
        raise InsufficientLiquidity(needed=amount_out, available=reserves[token_out])
    return amount_out


def balance_point_amount(
    reserves: Sequence[int], token_in: int, token_out: int, radius_squared: int
) -> int | None:
    """
    Вход, при котором координаты y_i и y_j сравниваются.

    В этой точке предельный курс i → j равен 1; до неё суммарные резервы
    убывают, после — растут. Торговый движок делит траекторию в этой точке
    на монотонные участки.

    Returns:
        Положительный вход или None, если точка не лежит впереди
    """
    ys = deficits(reserves, radius_squared)
    others = sum(y * y for k, y in enumerate(ys) if k not in (token_in, token_out))
    pair_total = radius_squared - others
    if pair_total <= 0:
        return None
    amount = ys[token_in] - integer_sqrt(pair_total // 2)
    return amount if amount > 0 else None


# =============================================================================
# PRICE
# =============================================================================


def calculate_price(
    reserves: Sequence[int], token_in: int, token_out: int, radius_squared: int
) -> int:
    """
    Предельный курс token_in в единицах token_out (WAD).

    Производная неявной функции r_j(r_i) на поверхности при фиксированных
    остальных резервах. Зависит от R², поэтому отклонение остальных
    координат от поверхности (остаток округления) влияет на курс любой пары.

    Raises:
        TokenIndexOutOfBounds: Невалидные индексы
        ZeroReserve: Нулевой резерв или вырожденная неявная координата
        NoSolution: Резервы вне грани сферы

    Examples:
        >>> calculate_price([1_000_000, 1_000_000], 0, 1, 2_000_000_000_000)
        1000000000000000000
    """
    validate_pair(reserves, token_in, token_out)
    _ensure_nonzero(reserves, token_in, token_out)

    ys = deficits(reserves, radius_squared)
    if ys[token_in] < 0:
        raise NoSolution("sphere price: reserve beyond the sphere center")

    others = sum(y * y for k, y in enumerate(ys) if k not in (token_in, token_out))
    implicit_square = radius_squared - others - ys[token_in] * ys[token_in]
    if implicit_square <= 0:
        raise ZeroReserve(token_out)

    # y_j в масштабе WAD для точности курса на малых резервах
    implicit_scaled = integer_sqrt(implicit_square * WAD * WAD)
    if implicit_scaled == 0:
        raise ZeroReserve(token_out)
    return ys[token_in] * WAD * WAD // implicit_scaled


def price_impact_bp(price_before: int, price_after: int) -> int:
    """Price impact в basis points: |after − before| · 10_000 / before."""
    return bp_change(price_before, price_after)
