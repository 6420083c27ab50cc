"""
Toroidal Trading — Исполнение свопа с пересечением границ тиков

Сделка исполняется как последовательность сегментов. Внутри сегмента
активный состав ликвидности неизменен, и своп идёт по одной локальной
кривой. Сегмент заканчивается, когда либо поглощён весь остаток входа,
либо траектория впервые меняет принадлежность какому-либо тику.

АЛГОРИТМ СЕГМЕНТА:
1. Наибольший исполнимый вход hi ≤ остатка (бисекция, если весь остаток
   неисполним на локальной кривой)
2. Траектория [0, hi] делится в точке равных координат y_i = y_j на
   монотонные участки: на каждом участке доля каждого токена монотонна
3. Для каждой границы тика, чей предикат меняется между концами участка,
   бисекцией ищется наименьший вход, на котором он меняется
4. Первый кандидат (по возрастанию), где состав тиков отличается от
   текущего, завершает сегмент; смещения масштабируются под новый состав

Сделка вычисляется на рабочей копии и фиксируется через apply_state()
целиком; любая ошибка оставляет пул нетронутым.

ПОРЯДОК ПРОВЕРОК:
    валидация → сегменты → комиссия → проверка кривой (InvariantViolation)
    → price impact (ExcessivePriceImpact) → slippage (SlippageExceeded)
    → фиксация
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Sequence

from orbital_amm.core.domain.pool_state import PoolState
from orbital_amm.core.domain.tick import Tick
from orbital_amm.core.domain.trade import SwapRequest, TradeInfo
from orbital_amm.core.errors import (
    ExcessivePriceImpact,
    InsufficientLiquidity,
    InvalidParameter,
    InvariantError,
    InvariantViolation,
    NoSolution,
    OrbitalError,
    SlippageExceeded,
    UnexpectedTickCrossing,
    ZeroReserve,
)
from orbital_amm.core.math.fixed_point import BP_PRECISION, WAD, apply_bp, bp_change, ensure_uint
from orbital_amm.invariants.dispatch import CurveEngine, engine_for
from orbital_amm.invariants.sphere import validate_pair
from orbital_amm.pool import (
    DEFAULT_TOLERANCE_BP,
    calculate_price,
    committed_composition,
    local_invariant,
    rescale_offsets,
    with_activity,
)
from orbital_amm.ticks.geometry import LiquidityComposition, active_liquidity

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS & CONFIG
# =============================================================================


class SegmentOutcome(str, Enum):
    """Чем завершился сегмент."""

    FILLED = "FILLED"  # остаток входа поглощён
    TICK_CROSSED = "TICK_CROSSED"  # траектория сменила состав тиков


@dataclass(frozen=True)
class SwapConfig:
    """
    Параметры исполнения свопа.

    fee_bp удерживается пулом вне кривой: фактический резерв token_in
    растёт на комиссию, виртуальная координата не меняется.
    max_segments=None → бюджет 4·T·N + 8 (T тиков, N токенов).
    """

    tolerance_bp: int = DEFAULT_TOLERANCE_BP
    fee_bp: int = 0
    max_price_impact_bp: Optional[int] = None
    max_segments: Optional[int] = None

    def __post_init__(self) -> None:
        if self.tolerance_bp < 0:
            raise InvalidParameter("tolerance_bp", f"must be non-negative, got {self.tolerance_bp}")
        if not 0 <= self.fee_bp < BP_PRECISION:
            raise InvalidParameter("fee_bp", f"must be in [0, {BP_PRECISION}), got {self.fee_bp}")
        if self.max_price_impact_bp is not None and self.max_price_impact_bp < 0:
            raise InvalidParameter(
                "max_price_impact_bp", f"must be non-negative, got {self.max_price_impact_bp}"
            )
        if self.max_segments is not None and self.max_segments <= 0:
            raise InvalidParameter("max_segments", f"must be positive, got {self.max_segments}")

    def segment_budget(self, tick_count: int, token_count: int) -> int:
        if self.max_segments is not None:
            return self.max_segments
        return 4 * tick_count * token_count + 8


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class TradeSegment:
    """Снимок одного сегмента сделки."""

    index: int
    amount_in: int
    amount_out: int
    local_invariant: int  # параметр локальной кривой сегмента
    active_tick_ids: tuple[str, ...]  # состав, на котором исполнен сегмент
    outcome: SegmentOutcome
    crossed_tick_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class SwapPlan:
    """Вычисленная, но не зафиксированная сделка."""

    state: PoolState  # рабочая копия пула после сделки
    trade: TradeInfo
    segments: tuple[TradeSegment, ...]


@dataclass(frozen=True)
class _Cursor:
    """Промежуточное состояние между сегментами."""

    reserves: tuple[int, ...]
    offsets: tuple[int, ...]
    composition: LiquidityComposition
    invariant: int


# =============================================================================
# EXECUTOR
# =============================================================================


class ToroidalSwapExecutor:
    """
    Исполнитель свопов по сегментам.

    Не хранит состояния между сделками; один экземпляр можно использовать
    для любого числа пулов.
    """

    def __init__(self, config: Optional[SwapConfig] = None):
        self.config = config or SwapConfig()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def execute(
        self,
        pool: PoolState,
        token_in: int,
        token_out: int,
        amount_in: int,
        min_amount_out: int = 0,
    ) -> TradeInfo:
        """
        Исполнение свопа с атомарной фиксацией.

        Returns:
            TradeInfo зафиксированной сделки

        Raises:
            OrbitalError: Любой отказ; пул остаётся без изменений
        """
        try:
            plan = self.plan(pool, token_in, token_out, amount_in, min_amount_out)
        except OrbitalError as exc:
            logger.warning(
                "swap %d->%d amount_in=%d rejected: %s", token_in, token_out, amount_in, exc
            )
            raise

        pool.apply_state(plan.state)
        logger.info(
            "swap %d->%d committed: amount_in=%d amount_out=%d segments=%d impact=%dbp",
            token_in,
            token_out,
            amount_in,
            plan.trade.amount_out,
            plan.trade.segments,
            plan.trade.price_impact_bp,
        )
        return plan.trade

    def quote(
        self, pool: PoolState, token_in: int, token_out: int, amount_in: int
    ) -> TradeInfo:
        """Результат свопа без фиксации (пул не меняется)."""
        return self.plan(pool, token_in, token_out, amount_in, 0).trade

    def plan(
        self,
        pool: PoolState,
        token_in: int,
        token_out: int,
        amount_in: int,
        min_amount_out: int = 0,
    ) -> SwapPlan:
        """
        Вычисление сделки на рабочей копии пула.

        Raises:
            TokenIndexOutOfBounds: Невалидные индексы
            InvalidParameter: amount_in ≤ 0 или min_amount_out < 0
            ZeroReserve: Нулевой резерв token_in / token_out
            InsufficientLiquidity: Вход не поглощается ликвидностью пула
            UnexpectedTickCrossing: Несогласованный учёт тиков
            InvariantViolation: Итоговое состояние вне активной кривой
            ExcessivePriceImpact: Price impact выше max_price_impact_bp
            SlippageExceeded: Выход меньше min_amount_out
        """
        validate_pair(pool.reserves, token_in, token_out)
        if amount_in <= 0:
            raise InvalidParameter("amount_in", f"must be positive, got {amount_in}")
        ensure_uint(amount_in, "amount_in")
        if min_amount_out < 0:
            raise InvalidParameter("min_amount_out", f"must be non-negative, got {min_amount_out}")
        for index in (token_in, token_out):
            if pool.reserves[index] == 0:
                raise ZeroReserve(index)

        fee = apply_bp(amount_in, self.config.fee_bp)
        net_amount = amount_in - fee
        if net_amount <= 0:
            raise InvalidParameter("amount_in", f"absorbed entirely by fee ({fee})")

        engine = engine_for(pool.curve)
        price_before = calculate_price(pool, token_in, token_out)
        composition = committed_composition(pool)
        cursor = _Cursor(
            reserves=pool.reserves,
            offsets=pool.virtual_offsets,
            composition=composition,
            invariant=local_invariant(engine, pool.invariant, composition),
        )

        budget = self.config.segment_budget(len(pool.ticks), pool.token_count)
        segments: list[TradeSegment] = []
        crossed: list[str] = []
        remaining = net_amount
        amount_out = 0

        while remaining > 0:
            if len(segments) >= budget:
                raise UnexpectedTickCrossing(
                    crossed[-1] if crossed else "",
                    f"segment budget {budget} exhausted with {remaining} input left",
                )
            segment, cursor = self._run_segment(
                pool, engine, cursor, token_in, token_out, remaining, len(segments)
            )
            segments.append(segment)
            crossed.extend(segment.crossed_tick_ids)
            remaining -= segment.amount_in
            amount_out += segment.amount_out

        if fee:
            cursor, fee_crossed = self._retain_fee(pool, engine, cursor, token_in, fee)
            crossed.extend(fee_crossed)

        working = pool.snapshot()
        working.reserves = cursor.reserves
        working.virtual_offsets = cursor.offsets
        working.ticks = with_activity(pool.ticks, cursor.composition.active_tick_ids)

        try:
            engine.verify_constraint(
                working.virtual_reserves(), cursor.invariant, self.config.tolerance_bp
            )
        except InvariantError as exc:
            raise InvariantViolation(amount_in, str(exc)) from exc

        price_after = calculate_price(working, token_in, token_out)
        impact_bp = bp_change(price_before, price_after)
        max_impact = self.config.max_price_impact_bp
        if max_impact is not None and impact_bp > max_impact:
            raise ExcessivePriceImpact(impact_bp, max_impact)
        if amount_out < min_amount_out:
            raise SlippageExceeded(actual=amount_out, tolerance=min_amount_out)

        trade = TradeInfo(
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            amount_out=amount_out,
            fee=fee,
            price_before=price_before,
            price_after=price_after,
            price_impact_bp=impact_bp,
            ticks_crossed=tuple(dict.fromkeys(crossed)),
            segments=len(segments),
        )
        return SwapPlan(state=working, trade=trade, segments=tuple(segments))

    # -------------------------------------------------------------------------
    # Segments
    # -------------------------------------------------------------------------

    def _run_segment(
        self,
        pool: PoolState,
        engine: CurveEngine,
        cursor: _Cursor,
        token_in: int,
        token_out: int,
        remaining: int,
        index: int,
    ) -> tuple[TradeSegment, _Cursor]:
        virtual = tuple(r + o for r, o in zip(cursor.reserves, cursor.offsets))
        outputs: Dict[int, Optional[int]] = {0: 0}

        def output(amount: int) -> Optional[int]:
            if amount not in outputs:
                try:
                    out = engine.compute_swap_output(
                        virtual, token_in, token_out, amount, cursor.invariant
                    )
                except (InsufficientLiquidity, NoSolution):
                    out = None
                if out is not None and out >= cursor.reserves[token_out]:
                    out = None
                outputs[amount] = out
            return outputs[amount]

        def point(amount: int) -> tuple[int, ...]:
            out = output(amount)
            reserves = list(cursor.reserves)
            reserves[token_in] += amount
            reserves[token_out] -= out
            return tuple(reserves)

        feasible_max = remaining
        if output(remaining) is None:
            feasible_max = _last_true(0, remaining, lambda a: output(a) is not None)
            if feasible_max == 0:
                raise InsufficientLiquidity(needed=remaining, available=0)

        crossing = self._first_crossing(
            pool, engine, cursor, virtual, token_in, token_out, feasible_max, point
        )

        if crossing is None:
            if feasible_max < remaining:
                raise InsufficientLiquidity(needed=remaining, available=feasible_max)
            amount = remaining
            outcome = SegmentOutcome.FILLED
        else:
            amount, _ = crossing
            outcome = SegmentOutcome.TICK_CROSSED

        new_reserves = point(amount)
        amount_out = output(amount)
        next_cursor = _Cursor(
            reserves=new_reserves,
            offsets=cursor.offsets,
            composition=cursor.composition,
            invariant=cursor.invariant,
        )
        crossed_ids: tuple[str, ...] = ()
        if crossing is not None:
            composition = crossing[1]
            crossed_ids = _changed_ids(cursor.composition, composition)
            if not crossed_ids:
                raise UnexpectedTickCrossing("", "crossing detected but composition unchanged")
            next_cursor = self._recomposed(pool, engine, next_cursor, composition)

        segment = TradeSegment(
            index=index,
            amount_in=amount,
            amount_out=amount_out,
            local_invariant=cursor.invariant,
            active_tick_ids=cursor.composition.active_tick_ids,
            outcome=outcome,
            crossed_tick_ids=crossed_ids,
        )
        logger.debug(
            "segment %d: in=%d out=%d outcome=%s active=%s crossed=%s",
            index,
            amount,
            amount_out,
            outcome.value,
            list(segment.active_tick_ids),
            list(crossed_ids),
        )
        return segment, next_cursor

    def _first_crossing(
        self,
        pool: PoolState,
        engine: CurveEngine,
        cursor: _Cursor,
        virtual: tuple[int, ...],
        token_in: int,
        token_out: int,
        feasible_max: int,
        point: Callable[[int], tuple[int, ...]],
    ) -> Optional[tuple[int, LiquidityComposition]]:
        """Наименьший вход в (0, feasible_max], на котором меняется состав тиков."""
        if not pool.ticks:
            return None

        breaks = [0, feasible_max]
        balance = engine.balance_point_amount(virtual, token_in, token_out, cursor.invariant)
        if balance is not None and 0 < balance < feasible_max:
            breaks = [0, balance, feasible_max]

        shares_cache: Dict[int, tuple[int, ...]] = {}

        def shares(amount: int) -> tuple[int, ...]:
            if amount not in shares_cache:
                reserves = point(amount)
                total = sum(reserves)
                shares_cache[amount] = tuple(r * WAD // total for r in reserves)
            return shares_cache[amount]

        candidates: set[int] = set()
        for start, end in zip(breaks, breaks[1:]):
            for predicate in _bound_predicates(pool.ticks):
                if predicate(shares(start)) == predicate(shares(end)):
                    continue
                initial = predicate(shares(start))
                candidates.add(
                    _first_true(start, end, lambda a: predicate(shares(a)) != initial)
                )

        current = cursor.composition.active_tick_ids
        for amount in sorted(candidates):
            composition = active_liquidity(pool.ticks, point(amount), cursor.composition.interior)
            if composition.active_tick_ids != current:
                return amount, composition
        return None

    def _recomposed(
        self,
        pool: PoolState,
        engine: CurveEngine,
        cursor: _Cursor,
        composition: LiquidityComposition,
    ) -> _Cursor:
        invariant = local_invariant(engine, pool.invariant, composition)
        offsets = rescale_offsets(
            engine, cursor.reserves, cursor.offsets, cursor.invariant, invariant
        )
        return _Cursor(
            reserves=cursor.reserves,
            offsets=offsets,
            composition=composition,
            invariant=invariant,
        )

    def _retain_fee(
        self,
        pool: PoolState,
        engine: CurveEngine,
        cursor: _Cursor,
        token_in: int,
        fee: int,
    ) -> tuple[_Cursor, tuple[str, ...]]:
        """Комиссия в фактический резерв, виртуальная координата неизменна."""
        reserves = list(cursor.reserves)
        offsets = list(cursor.offsets)
        reserves[token_in] += fee
        offsets[token_in] -= fee
        moved = _Cursor(
            reserves=tuple(reserves),
            offsets=tuple(offsets),
            composition=cursor.composition,
            invariant=cursor.invariant,
        )
        composition = active_liquidity(pool.ticks, moved.reserves, cursor.composition.interior)
        crossed = _changed_ids(cursor.composition, composition)
        if not crossed:
            return moved, ()
        return self._recomposed(pool, engine, moved, composition), crossed


# =============================================================================
# HELPERS
# =============================================================================


def _bound_predicates(ticks: Sequence[Tick]) -> list[Callable[[Sequence[int]], bool]]:
    """Предикаты ограниченных граней всех тиков (share ≥ lower, share ≤ upper)."""
    predicates: list[Callable[[Sequence[int]], bool]] = []
    for tick in ticks:
        for k, bound in enumerate(tick.bounds):
            if bound.lower > 0:
                predicates.append(lambda s, k=k, lower=bound.lower: s[k] >= lower)
            if bound.upper < WAD:
                predicates.append(lambda s, k=k, upper=bound.upper: s[k] <= upper)
    return predicates


def _first_true(low: int, high: int, predicate: Callable[[int], bool]) -> int:
    """Наименьшее a ∈ (low, high] с predicate(a); predicate(high) истинно."""
    while high - low > 1:
        mid = (low + high) // 2
        if predicate(mid):
            high = mid
        else:
            low = mid
    return high


def _last_true(low: int, high: int, predicate: Callable[[int], bool]) -> int:
    """Наибольшее a ∈ [low, high) с predicate(a); predicate(low) истинно."""
    while high - low > 1:
        mid = (low + high) // 2
        if predicate(mid):
            low = mid
        else:
            high = mid
    return low


def _changed_ids(before: LiquidityComposition, after: LiquidityComposition) -> tuple[str, ...]:
    previous = set(before.active_tick_ids)
    current = set(after.active_tick_ids)
    left = [tick_id for tick_id in before.active_tick_ids if tick_id not in current]
    entered = [tick_id for tick_id in after.active_tick_ids if tick_id not in previous]
    return tuple(left + entered)


# =============================================================================
# MODULE API
# =============================================================================


def execute_swap(
    pool: PoolState,
    token_in: int,
    token_out: int,
    amount_in: int,
    min_amount_out: int = 0,
    config: Optional[SwapConfig] = None,
) -> TradeInfo:
    """
    Атомарный своп token_in → token_out.

    Examples:
        >>> from orbital_amm.core.domain.curve import CurveType
        >>> from orbital_amm.pool import create_pool
        >>> pool = create_pool([1_000_000, 1_000_000], CurveType.sphere(), 2_000_000_000_000)
        >>> execute_swap(pool, 0, 1, 10_000).amount_out
        9901
    """
    return ToroidalSwapExecutor(config).execute(pool, token_in, token_out, amount_in, min_amount_out)


def quote_swap(
    pool: PoolState,
    token_in: int,
    token_out: int,
    amount_in: int,
    config: Optional[SwapConfig] = None,
) -> TradeInfo:
    """Котировка свопа без изменения пула."""
    return ToroidalSwapExecutor(config).quote(pool, token_in, token_out, amount_in)


def execute_swap_request(
    pool: PoolState, request: SwapRequest, config: Optional[SwapConfig] = None
) -> TradeInfo:
    """Исполнение SwapRequest."""
    return execute_swap(
        pool,
        request.token_in,
        request.token_out,
        request.amount_in,
        request.min_amount_out,
        config,
    )


def execute_multi_hop_swap(
    pool: PoolState,
    path: Sequence[int],
    amount_in: int,
    min_amount_out: int = 0,
    config: Optional[SwapConfig] = None,
) -> list[TradeInfo]:
    """
    Последовательные свопы по пути токенов внутри одного пула.

    Выход каждого шага — вход следующего. Slippage проверяется по выходу
    последнего шага; фиксация всех шагов атомарна.

    Args:
        pool: Пул
        path: Индексы токенов [t0, t1, ..., tk], k ≥ 1
        amount_in: Вход первого шага
        min_amount_out: Минимальный выход последнего шага

    Returns:
        TradeInfo каждого шага

    Raises:
        InvalidParameter: Путь короче двух токенов
        SlippageExceeded: Итоговый выход меньше min_amount_out
    """
    if len(path) < 2:
        raise InvalidParameter("path", f"needs at least 2 tokens, got {len(path)}")

    executor = ToroidalSwapExecutor(config)
    working = pool.snapshot()
    trades: list[TradeInfo] = []
    amount = amount_in
    try:
        for token_in, token_out in zip(path, path[1:]):
            plan = executor.plan(working, token_in, token_out, amount)
            working.apply_state(plan.state)
            trades.append(plan.trade)
            amount = plan.trade.amount_out
        if amount < min_amount_out:
            raise SlippageExceeded(actual=amount, tolerance=min_amount_out)
    except OrbitalError as exc:
        logger.warning("multi-hop swap %s amount_in=%d rejected: %s", list(path), amount_in, exc)
        raise

    pool.apply_state(working)
    logger.info(
        "multi-hop swap %s committed: amount_in=%d amount_out=%d", list(path), amount_in, amount
    )
    return trades
