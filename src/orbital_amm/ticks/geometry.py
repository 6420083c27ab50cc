"""
Tick Geometry — Границы, непересечение, пересечение траекторией, активная ликвидность

Область тика — «коробка» в пространстве долей токенов, пересечённая с
симплексом Σ share_k = 1 (WAD):
    lower_k ≤ share_k ≤ upper_k  для всех k
Две области пересекаются, если их пересечение имеет непустую внутренность
на симплексе. Касание гранями пересечением не считается.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Области тиков пула попарно не пересекаются (проверка при построении
   пула и при добавлении тика, никогда во время сделки)
2. Активная ликвидность = внутренняя ликвидность + Σ ликвидности тиков,
   содержащих текущую точку резервов
3. Порядок тиков канонический: по удалённости области от точки равных цен

ФОРМУЛЫ:
    share_k             = r_k · 10^18 // Σ r
    overlap(A, B)       ⇔ ∀k: lo_k < hi_k  и  Σ lo_k < WAD < Σ hi_k,
                          lo_k = max(A.lower_k, B.lower_k), hi_k = min(A.upper_k, B.upper_k)
    capital_efficiency  = max_k upper_k / (upper_k − lower_k)   (bp, ≤ 500x)
"""

from dataclasses import dataclass
from typing import Final, Iterable, Sequence

from orbital_amm.core.domain.tick import ShareBound, Tick
from orbital_amm.core.errors import InvalidTick, TickOverlap, ZeroReserve
from orbital_amm.core.math.fixed_point import BP_PRECISION, WAD

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Базовая эффективность капитала (1x) в bp
BASE_EFFICIENCY_BP: Final[int] = BP_PRECISION

# Верхняя граница эффективности капитала (500x) в bp
MAX_EFFICIENCY_BP: Final[int] = 5_000_000

# Уровни depeg-лимита (bp от доли в точке равных цен) для recommend_tick
DEPEG_LIMIT_ULTRA_TIGHT_BP: Final[int] = 9_900
DEPEG_LIMIT_TIGHT_BP: Final[int] = 9_500
DEPEG_LIMIT_MODERATE_BP: Final[int] = 9_000
DEPEG_LIMIT_WIDE_BP: Final[int] = 8_500


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class LiquidityComposition:
    """Активный состав ликвидности в точке резервов."""

    interior: int  # внутренняя ликвидность (радиус внутренней кривой)
    active_tick_ids: tuple[str, ...]
    tick_liquidity: int  # Σ ликвидности активных тиков

    @property
    def total(self) -> int:
        return self.interior + self.tick_liquidity

    def has_active_ticks(self) -> bool:
        return bool(self.active_tick_ids)


@dataclass(frozen=True)
class TickRecommendation:
    """Рекомендованная конфигурация тика около точки равных цен."""

    tick: Tick
    depeg_limit_bp: int
    expected_efficiency_bp: int
    description: str


# =============================================================================
# ДОЛИ И ПРИНАДЛЕЖНОСТЬ
# =============================================================================


def token_shares(reserves: Sequence[int]) -> tuple[int, ...]:
    """
    Доли токенов в WAD.

    Raises:
        ZeroReserve: Все резервы нулевые

    Examples:
        >>> token_shares([1, 3])
        (250000000000000000, 750000000000000000)
    """
    total = sum(reserves)
    if total <= 0:
        raise ZeroReserve(0)
    return tuple(r * WAD // total for r in reserves)


def contains_shares(shares: Sequence[int], tick: Tick) -> bool:
    """Принадлежность точки (в долях) области тика."""
    return all(bound.contains(share) for bound, share in zip(tick.bounds, shares))


def contains(reserves: Sequence[int], tick: Tick) -> bool:
    """Лежит ли точка резервов внутри области тика (границы включительно)."""
    return contains_shares(token_shares(reserves), tick)


def is_crossed(reserves: Sequence[int], tick: Tick) -> bool:
    """
    Лежит ли точка резервов вне области тика.

    Используется для обнаружения выхода траектории сделки из ранее
    активного тика или входа в ранее неактивный.
    """
    return not contains(reserves, tick)


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_tick(tick: Tick, token_count: int) -> None:
    """
    Проверка корректности одного тика.

    Args:
        tick: Проверяемый тик
        token_count: Количество токенов пула

    Raises:
        InvalidTick: Пустой идентификатор, неверное число границ,
            неположительная ликвидность, lower ≥ upper, границы вне [0, WAD],
            область не пересекает симплекс долей
    """
    if not tick.tick_id:
        raise InvalidTick("tick_id must be non-empty")
    if len(tick.bounds) != token_count:
        raise InvalidTick(
            f"expected {token_count} share bounds, got {len(tick.bounds)}", tick.tick_id
        )
    if tick.liquidity <= 0:
        raise InvalidTick(f"liquidity must be positive, got {tick.liquidity}", tick.tick_id)

    for k, bound in enumerate(tick.bounds):
        if bound.lower < 0 or bound.upper > WAD:
            raise InvalidTick(
                f"token {k}: bounds [{bound.lower}, {bound.upper}] outside [0, {WAD}]",
                tick.tick_id,
            )
        if bound.lower >= bound.upper:
            raise InvalidTick(
                f"token {k}: lower {bound.lower} >= upper {bound.upper}", tick.tick_id
            )

    if sum(b.lower for b in tick.bounds) >= WAD or sum(b.upper for b in tick.bounds) <= WAD:
        raise InvalidTick("region does not intersect the share simplex", tick.tick_id)


def regions_overlap(tick_a: Tick, tick_b: Tick) -> bool:
    """
    Пересекаются ли области двух тиков с непустой внутренностью.

    Examples:
        >>> a = Tick.for_token("a", 2, 0, 0, WAD // 2, 1)
        >>> b = Tick.for_token("b", 2, 0, WAD // 2, WAD, 1)
        >>> regions_overlap(a, b)
        False
    """
    lows = [max(a.lower, b.lower) for a, b in zip(tick_a.bounds, tick_b.bounds)]
    highs = [min(a.upper, b.upper) for a, b in zip(tick_a.bounds, tick_b.bounds)]
    if any(lo >= hi for lo, hi in zip(lows, highs)):
        return False
    return sum(lows) < WAD < sum(highs)


def validate_ticks(ticks: Sequence[Tick], token_count: int) -> None:
    """
    Проверка набора тиков: каждый корректен, идентификаторы уникальны,
    области попарно не пересекаются.

    Raises:
        InvalidTick: Некорректный тик или повтор идентификатора
        TickOverlap: Первая найденная пара пересекающихся тиков
    """
    seen: set[str] = set()
    for tick in ticks:
        validate_tick(tick, token_count)
        if tick.tick_id in seen:
            raise InvalidTick("duplicate tick_id", tick.tick_id)
        seen.add(tick.tick_id)

    for index, tick_a in enumerate(ticks):
        for tick_b in ticks[index + 1 :]:
            if regions_overlap(tick_a, tick_b):
                raise TickOverlap(tick_a.tick_id, tick_b.tick_id)


# =============================================================================
# АКТИВНАЯ ЛИКВИДНОСТЬ
# =============================================================================


def active_liquidity(
    ticks: Iterable[Tick], reserves: Sequence[int], interior: int = 0
) -> LiquidityComposition:
    """
    Активный состав ликвидности в точке резервов.

    Args:
        ticks: Тики пула
        reserves: Точка резервов
        interior: Внутренняя ликвидность (всегда активна)

    Returns:
        LiquidityComposition: interior + тики, содержащие точку
    """
    shares = token_shares(reserves)
    active = [tick for tick in ticks if contains_shares(shares, tick)]
    return LiquidityComposition(
        interior=interior,
        active_tick_ids=tuple(tick.tick_id for tick in active),
        tick_liquidity=sum(tick.liquidity for tick in active),
    )


def parity_distance(tick: Tick) -> int:
    """L1-расстояние (в WAD) от точки равных цен до области тика."""
    parity_share = WAD // tick.token_count
    return sum(
        max(0, bound.lower - parity_share, parity_share - bound.upper) for bound in tick.bounds
    )


def sort_ticks_by_boundary(ticks: Iterable[Tick]) -> tuple[Tick, ...]:
    """Тики от ближайшего к точке равных цен до самого удалённого."""
    return tuple(sorted(ticks, key=lambda tick: (parity_distance(tick), tick.tick_id)))


# =============================================================================
# CAPITAL EFFICIENCY
# =============================================================================


def capital_efficiency_bp(tick: Tick) -> int:
    """
    Эффективность капитала тика относительно полного диапазона (bp).

    Для каждого ограниченного токена ликвидность нужна только на отрезке
    [lower, upper] вместо [0, upper]; берётся самое узкое ограничение.

    Returns:
        10_000 (1x) для неограниченного тика, не более 5_000_000 (500x)
    """
    efficiency = BASE_EFFICIENCY_BP
    for bound in tick.bounds:
        if bound.is_unbounded() or bound.upper <= bound.lower:
            continue
        efficiency = max(efficiency, bound.upper * BP_PRECISION // (bound.upper - bound.lower))
    return min(efficiency, MAX_EFFICIENCY_BP)


def recommend_tick(
    tick_id: str, token_count: int, liquidity: int, depeg_tolerance_bp: int
) -> TickRecommendation:
    """
    Тик около точки равных цен для заданной терпимости к depeg.

    Доля каждого токена ограничена снизу depeg_limit · (1/N):
    - ≤ 100bp  → 99% (ultra tight)
    - ≤ 500bp  → 95% (tight)
    - ≤ 1000bp → 90% (moderate)
    - иначе    → 85% (wide)

    Args:
        tick_id: Идентификатор нового тика
        token_count: Количество токенов пула
        liquidity: Ликвидность тика
        depeg_tolerance_bp: Допустимое отклонение цены в basis points

    Returns:
        TickRecommendation с готовым тиком и ожидаемой эффективностью
    """
    if depeg_tolerance_bp <= 100:
        depeg_limit, description = DEPEG_LIMIT_ULTRA_TIGHT_BP, "ultra tight: high efficiency, high risk"
    elif depeg_tolerance_bp <= 500:
        depeg_limit, description = DEPEG_LIMIT_TIGHT_BP, "tight: good efficiency, moderate risk"
    elif depeg_tolerance_bp <= 1000:
        depeg_limit, description = DEPEG_LIMIT_MODERATE_BP, "moderate: balanced efficiency and risk"
    else:
        depeg_limit, description = DEPEG_LIMIT_WIDE_BP, "wide: lower efficiency, lower risk"

    lower = (WAD // token_count) * depeg_limit // BP_PRECISION
    tick = Tick(
        tick_id=tick_id,
        bounds=tuple(ShareBound(lower=lower, upper=WAD) for _ in range(token_count)),
        liquidity=liquidity,
    )
    return TickRecommendation(
        tick=tick,
        depeg_limit_bp=depeg_limit,
        expected_efficiency_bp=capital_efficiency_bp(tick),
        description=description,
    )
