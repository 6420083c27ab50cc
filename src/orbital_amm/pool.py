"""
Pool Operations — Построение пула, запросы, изменение набора тиков

Пул = внутренняя ликвидность (кривая с параметром R² / K) + тики.
Активная локальная кривая в текущей точке:
    ρ_A = ρ_interior + Σ L активных тиков
    P_A = P                          если активных тиков нет
    P_A = invariant_from_radius(ρ_A) иначе
Виртуальные резервы v = x + V лежат на локальной кривой. При смене
состава (пересечение границы тика, добавление/удаление тика) координаты
дефицита масштабируются:
    y = c_from − v,  y' = y · ρ_to // ρ_from,  v' = c_to − y',  V' = v' − x
Масштабирование сохраняет отношения y_i, поэтому курсы непрерывны, а
фактические резервы x не меняются.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. create_pool / add_tick / remove_tick: всё или ничего
2. Флаги is_active тиков совпадают с геометрической принадлежностью
   текущих резервов
3. После каждой мутации виртуальные резервы на локальной кривой
"""

import logging
from typing import Final, Iterable, Sequence

from orbital_amm.core.domain.curve import CurveType
from orbital_amm.core.domain.pool_state import MAX_TOKENS, MIN_TOKENS, PoolState
from orbital_amm.core.domain.tick import Tick
from orbital_amm.core.errors import (
    InvalidParameter,
    InvalidTokenCount,
    NegativeReserve,
    Overflow,
    ZeroReserve,
)
from orbital_amm.core.math.fixed_point import MAX_UINT256, ensure_uint
from orbital_amm.invariants.dispatch import CurveEngine, engine_for
from orbital_amm.invariants.sphere import validate_pair
from orbital_amm.ticks.geometry import (
    LiquidityComposition,
    active_liquidity,
    sort_ticks_by_boundary,
    validate_ticks,
)

logger = logging.getLogger(__name__)

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Допуск проверки кривой по умолчанию (0.1%)
DEFAULT_TOLERANCE_BP: Final[int] = 10


# =============================================================================
# COMPOSITION HELPERS
# =============================================================================


def local_invariant(engine: CurveEngine, invariant: int, composition: LiquidityComposition) -> int:
    """Параметр активной локальной кривой для состава ликвидности."""
    if not composition.has_active_ticks():
        return invariant
    return engine.invariant_from_radius(composition.total)


def rescale_offsets(
    engine: CurveEngine,
    reserves: Sequence[int],
    offsets: Sequence[int],
    from_invariant: int,
    to_invariant: int,
) -> tuple[int, ...]:
    """
    Смещения для перехода с кривой from_invariant на to_invariant.

    Args:
        engine: Движок кривой
        reserves: Фактические резервы (не меняются)
        offsets: Текущие смещения (лежат на from_invariant)
        from_invariant: Параметр текущей локальной кривой
        to_invariant: Параметр новой локальной кривой

    Returns:
        Новые смещения V' (виртуальные резервы на to_invariant)
    """
    if from_invariant == to_invariant:
        return tuple(offsets)

    token_count = len(reserves)
    center_from = engine.center(from_invariant, token_count)
    center_to = engine.center(to_invariant, token_count)
    radius_from = engine.radius(from_invariant)
    radius_to = engine.radius(to_invariant)
    if radius_from == 0:
        raise ZeroReserve(0)

    new_offsets = []
    for reserve, offset in zip(reserves, offsets):
        deficit = center_from - (reserve + offset)
        scaled = deficit * radius_to // radius_from
        new_offsets.append(center_to - scaled - reserve)
    return tuple(new_offsets)


def with_activity(ticks: Iterable[Tick], active_ids: Iterable[str]) -> tuple[Tick, ...]:
    """Тики с флагами is_active, выставленными по набору идентификаторов."""
    active = set(active_ids)
    return tuple(
        tick
        if tick.is_active == (tick.tick_id in active)
        else tick.model_copy(update={"is_active": tick.tick_id in active})
        for tick in ticks
    )


def interior_radius(pool: PoolState) -> int:
    """Радиус внутренней кривой (единицы резервов)."""
    return engine_for(pool.curve).radius(pool.invariant)


def committed_composition(pool: PoolState) -> LiquidityComposition:
    """Состав, которому соответствуют текущие смещения (по флагам is_active)."""
    active = [tick for tick in pool.ticks if tick.is_active]
    return LiquidityComposition(
        interior=interior_radius(pool),
        active_tick_ids=tuple(tick.tick_id for tick in active),
        tick_liquidity=sum(tick.liquidity for tick in active),
    )


def composition_at(pool: PoolState, reserves: Sequence[int]) -> LiquidityComposition:
    """Геометрический состав ликвидности в произвольной точке резервов."""
    return active_liquidity(pool.ticks, reserves, interior_radius(pool))


def active_invariant(pool: PoolState) -> int:
    """Параметр активной локальной кривой пула."""
    return local_invariant(engine_for(pool.curve), pool.invariant, committed_composition(pool))


def _recompose(
    pool: PoolState, ticks: tuple[Tick, ...], from_invariant: int
) -> tuple[tuple[Tick, ...], tuple[int, ...], LiquidityComposition]:
    """Тики с обновлёнными флагами и смещения под состав в текущих резервах."""
    engine = engine_for(pool.curve)
    composition = active_liquidity(ticks, pool.reserves, interior_radius(pool))
    to_invariant = local_invariant(engine, pool.invariant, composition)
    offsets = rescale_offsets(
        engine, pool.reserves, pool.virtual_offsets, from_invariant, to_invariant
    )
    return with_activity(ticks, composition.active_tick_ids), offsets, composition


# =============================================================================
# CONSTRUCTION
# =============================================================================


def _validate_reserves(reserves: Sequence[int]) -> tuple[int, ...]:
    token_count = len(reserves)
    if not MIN_TOKENS <= token_count <= MAX_TOKENS:
        raise InvalidTokenCount(token_count, MIN_TOKENS, MAX_TOKENS)

    for index, reserve in enumerate(reserves):
        if reserve < 0:
            raise NegativeReserve(index, reserve)
        if reserve > MAX_UINT256:
            raise Overflow("reserve")
        if reserve == 0:
            raise ZeroReserve(index)
    return tuple(int(r) for r in reserves)


def create_pool(
    reserves: Sequence[int],
    curve: CurveType,
    invariant: int,
    ticks: Sequence[Tick] = (),
    tolerance_bp: int = DEFAULT_TOLERANCE_BP,
) -> PoolState:
    """
    Построение пула с полной валидацией (всё или ничего).

    Args:
        reserves: Начальные резервы (N ∈ [2, 1000])
        curve: Тип кривой
        invariant: R² (sphere) или K (superellipse) внутренней ликвидности
        ticks: Тики концентрированной ликвидности
        tolerance_bp: Допуск проверки начальных резервов на кривой

    Returns:
        PoolState с упорядоченными тиками и смещениями активной кривой

    Raises:
        InvalidTokenCount: N вне [2, 1000]
        NegativeReserve / ZeroReserve / Overflow: Некорректный резерв
        InvalidParameter: invariant ≤ 0 или некорректные параметры кривой
        SphereConstraintViolation / SuperellipseConstraintViolation:
            Резервы не лежат на объявленной кривой
        InvalidTick / TickOverlap: Некорректные или пересекающиеся тики

    Examples:
        >>> pool = create_pool([1_000_000, 1_000_000], CurveType.sphere(), 2_000_000_000_000)
        >>> pool.token_count
        2
    """
    checked_reserves = _validate_reserves(reserves)
    if invariant <= 0:
        raise InvalidParameter("invariant", f"must be positive, got {invariant}")
    ensure_uint(invariant, "invariant")
    curve = CurveType.model_validate(curve)

    engine = engine_for(curve)
    engine.verify_constraint(checked_reserves, invariant, tolerance_bp)

    ordered = sort_ticks_by_boundary(ticks)
    validate_ticks(ordered, len(checked_reserves))

    base = PoolState(
        reserves=checked_reserves,
        curve=curve,
        invariant=invariant,
        ticks=with_activity(ordered, ()),
        virtual_offsets=tuple(0 for _ in checked_reserves),
    )
    new_ticks, offsets, composition = _recompose(base, base.ticks, invariant)
    pool = base.model_copy(update={"ticks": new_ticks, "virtual_offsets": offsets})
    verify_constraint(pool, tolerance_bp)

    logger.info(
        "pool created: tokens=%d curve=%s ticks=%d active=%s",
        pool.token_count,
        curve.kind.value,
        len(pool.ticks),
        list(composition.active_tick_ids),
    )
    return pool


# =============================================================================
# QUERIES
# =============================================================================


def token_count(pool: PoolState) -> int:
    return pool.token_count


def total_liquidity(pool: PoolState) -> int:
    """Радиус внутренней кривой + Σ ликвидности всех тиков."""
    return interior_radius(pool) + sum(tick.liquidity for tick in pool.ticks)


def calculate_price(pool: PoolState, token_in: int, token_out: int) -> int:
    """
    Предельный курс token_in в единицах token_out (WAD) на активной кривой.

    Raises:
        TokenIndexOutOfBounds: Невалидные индексы
        ZeroReserve: Нулевой резерв
    """
    validate_pair(pool.reserves, token_in, token_out)
    for index in (token_in, token_out):
        if pool.reserves[index] == 0:
            raise ZeroReserve(index)
    engine = engine_for(pool.curve)
    return engine.calculate_price(
        pool.virtual_reserves(), token_in, token_out, active_invariant(pool)
    )


def verify_constraint(pool: PoolState, tolerance_bp: int = DEFAULT_TOLERANCE_BP) -> None:
    """
    Проверка: виртуальные резервы лежат на активной локальной кривой.

    Raises:
        SphereConstraintViolation / SuperellipseConstraintViolation
    """
    engine_for(pool.curve).verify_constraint(
        pool.virtual_reserves(), active_invariant(pool), tolerance_bp
    )


# =============================================================================
# TICK MANAGEMENT
# =============================================================================


def add_tick(pool: PoolState, tick: Tick, tolerance_bp: int = DEFAULT_TOLERANCE_BP) -> None:
    """
    Добавление тика (атомарно, резервы не меняются).

    Raises:
        InvalidTick: Некорректный тик или повтор идентификатора
        TickOverlap: Область пересекается с существующим тиком
    """
    candidate = tick.model_copy(update={"is_active": False})
    ordered = sort_ticks_by_boundary((*pool.ticks, candidate))
    validate_ticks(ordered, pool.token_count)
    _apply_tick_set(pool, ordered, tolerance_bp)
    logger.info("tick added: %s liquidity=%d", tick.tick_id, tick.liquidity)


def remove_tick(pool: PoolState, tick_id: str, tolerance_bp: int = DEFAULT_TOLERANCE_BP) -> Tick:
    """
    Удаление тика по идентификатору (атомарно).

    Returns:
        Удалённый тик

    Raises:
        InvalidParameter: Тика с таким идентификатором нет
    """
    removed = pool.find_tick(tick_id)
    if removed is None:
        raise InvalidParameter("tick_id", f"no tick '{tick_id}' in pool")
    remaining = tuple(t for t in pool.ticks if t.tick_id != tick_id)
    _apply_tick_set(pool, remaining, tolerance_bp)
    logger.info("tick removed: %s liquidity=%d", tick_id, removed.liquidity)
    return removed.model_copy(update={"is_active": False})


def _apply_tick_set(pool: PoolState, ticks: tuple[Tick, ...], tolerance_bp: int) -> None:
    working = pool.snapshot()
    new_ticks, offsets, _ = _recompose(working, ticks, active_invariant(pool))
    working.ticks = new_ticks
    working.virtual_offsets = offsets
    verify_constraint(working, tolerance_bp)
    pool.apply_state(working)
