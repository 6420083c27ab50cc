"""
Тесты для Toroidal Trading (исполнение свопа по сегментам)

Проверяет:
1. Сценарий 2 токенов: выход в (9_900, 10_000], отказ при нулевом допуске
2. Связность пар в 5-мерном пуле
3. Атомарность: любая ошибка оставляет пул без изменений
4. Пересечение границы тика: выход из тика и повторный вход
5. Комиссия, ограничение price impact, котировка, multi-hop, SwapRequest
"""

import logging

import pytest

from orbital_amm.core.domain.curve import CurveType
from orbital_amm.core.domain.tick import Tick
from orbital_amm.core.domain.trade import SwapRequest
from orbital_amm.core.errors import (
    ExcessivePriceImpact,
    InsufficientLiquidity,
    InvalidParameter,
    SlippageExceeded,
    TokenIndexOutOfBounds,
    UnexpectedTickCrossing,
)
from orbital_amm.core.math.fixed_point import WAD, within_tolerance
from orbital_amm.invariants import superellipse
from orbital_amm.pool import calculate_price, create_pool, verify_constraint
from orbital_amm.trading import (
    SegmentOutcome,
    SwapConfig,
    ToroidalSwapExecutor,
    execute_multi_hop_swap,
    execute_swap,
    execute_swap_request,
    quote_swap,
)

R2 = 2_000_000_000_000
RESERVE = 10**12
R2_LARGE = 2 * RESERVE * RESERVE
INTERIOR_RADIUS = 1_414_213_562_373  # isqrt(R2_LARGE)
PCT = WAD // 100


@pytest.fixture
def pool():
    """2 токена по 1e6, R² = 2e12"""
    return create_pool([1_000_000, 1_000_000], CurveType.sphere(), R2)


@pytest.fixture
def tick_pool():
    """2 токена по 1e12 с тиком [45%, 55%], удваивающим радиус у паритета"""
    core = Tick.uniform("core", 2, 45 * PCT, 55 * PCT, INTERIOR_RADIUS)
    return create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE, ticks=[core])


# =============================================================================
# SCENARIOS
# =============================================================================


class TestSwapScenarios:
    """Базовые сценарии сферического пула"""

    def test_two_token_swap(self, pool) -> None:
        trade = execute_swap(pool, 0, 1, 10_000, 9_900)

        assert 9_900 < trade.amount_out <= 10_000
        assert trade.amount_out == 9_901
        assert 0 < trade.price_impact_bp < 300
        assert trade.segments == 1
        assert trade.ticks_crossed == ()
        assert pool.reserves == (1_010_000, 1_000_000 - trade.amount_out)
        assert within_tolerance(sum(r * r for r in pool.reserves), R2, 10)

    def test_zero_slippage_tolerance_fails(self, pool) -> None:
        with pytest.raises(SlippageExceeded) as exc_info:
            execute_swap(pool, 0, 1, 10_000, 10_000)
        assert exc_info.value.actual == 9_901
        assert exc_info.value.tolerance == 10_000
        assert pool.reserves == (1_000_000, 1_000_000)

    def test_cross_pair_coupling(self) -> None:
        """Своп 0 → 2 сдвигает курс несвязанной пары (1, 3)"""
        pool = create_pool([1_000_000] * 5, CurveType.sphere(), 5_000_000_000_000)
        assert calculate_price(pool, 1, 3) == WAD

        execute_swap(pool, 0, 2, 10_000)

        coupled = calculate_price(pool, 1, 3)
        assert coupled != WAD
        assert abs(coupled - WAD) < WAD // 10_000

    def test_exchange_rate(self, pool) -> None:
        trade = execute_swap(pool, 0, 1, 10_000)
        assert trade.exchange_rate() == 9_901 * WAD // 10_000

    def test_price_moves_against_trader(self, pool) -> None:
        trade = execute_swap(pool, 0, 1, 10_000)
        assert trade.price_after < trade.price_before


# =============================================================================
# VALIDATION & ATOMICITY
# =============================================================================


class TestSwapValidation:
    """Ошибки валидации и атомарность"""

    def test_zero_amount(self, pool) -> None:
        with pytest.raises(InvalidParameter, match="amount_in"):
            execute_swap(pool, 0, 1, 0)

    def test_same_token(self, pool) -> None:
        with pytest.raises(TokenIndexOutOfBounds):
            execute_swap(pool, 1, 1, 1_000)

    def test_index_out_of_range(self, pool) -> None:
        with pytest.raises(TokenIndexOutOfBounds):
            execute_swap(pool, 0, 7, 1_000)

    def test_insufficient_liquidity_is_atomic(self, pool) -> None:
        before = pool.to_contract()
        with pytest.raises(InsufficientLiquidity) as exc_info:
            execute_swap(pool, 0, 1, 2_000_000)
        assert exc_info.value.needed == 2_000_000
        assert exc_info.value.available == 1_000_000
        assert pool.to_contract() == before

    def test_excessive_price_impact(self, pool) -> None:
        with pytest.raises(ExcessivePriceImpact) as exc_info:
            execute_swap(pool, 0, 1, 10_000, config=SwapConfig(max_price_impact_bp=10))
        assert exc_info.value.max_bp == 10
        assert pool.reserves == (1_000_000, 1_000_000)

    @pytest.mark.parametrize(
        "kwargs",
        [{"fee_bp": 10_000}, {"fee_bp": -1}, {"tolerance_bp": -1}, {"max_segments": 0}],
    )
    def test_invalid_config(self, kwargs: dict) -> None:
        with pytest.raises(InvalidParameter):
            SwapConfig(**kwargs)

    def test_rejection_logged(self, pool, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="orbital_amm.trading.toroidal"):
            with pytest.raises(SlippageExceeded):
                execute_swap(pool, 0, 1, 10_000, 10_000)
        assert "rejected" in caplog.text


# =============================================================================
# PROPERTIES
# =============================================================================


class TestSwapProperties:
    """Монотонность, price impact, отсутствие арбитража"""

    def test_output_and_impact_monotone(self, pool) -> None:
        quotes = [quote_swap(pool, 0, 1, amount) for amount in (1_000, 10_000, 100_000)]
        outputs = [q.amount_out for q in quotes]
        impacts = [q.price_impact_bp for q in quotes]
        assert outputs == sorted(outputs)
        assert impacts == sorted(impacts)
        # убывающая отдача: средний курс падает
        rates = [q.exchange_rate() for q in quotes]
        assert rates == sorted(rates, reverse=True)

    def test_no_round_trip_profit(self, pool) -> None:
        forward = execute_swap(pool, 0, 1, 50_000)
        back = execute_swap(pool, 1, 0, forward.amount_out)
        assert back.amount_out <= 50_000
        verify_constraint(pool)

    def test_quote_does_not_mutate(self, pool) -> None:
        quote = quote_swap(pool, 0, 1, 10_000)
        assert pool.reserves == (1_000_000, 1_000_000)
        trade = execute_swap(pool, 0, 1, 10_000)
        assert quote == trade

    def test_invariant_preserved_over_many_trades(self, pool) -> None:
        for token_in, token_out, amount in [(0, 1, 20_000), (1, 0, 5_000), (0, 1, 70_000)]:
            execute_swap(pool, token_in, token_out, amount)
            verify_constraint(pool)

    def test_superellipse_swap(self) -> None:
        reserve = 1_000 * WAD
        k_constant = superellipse.parity_invariant(reserve, 2, 25_000)
        pool = create_pool([reserve, reserve], CurveType.superellipse(25_000), k_constant)

        trade = execute_swap(pool, 0, 1, 10 * WAD)

        assert 9 * WAD < trade.amount_out < 10 * WAD
        verify_constraint(pool)


# =============================================================================
# TICK CROSSING
# =============================================================================


class TestTickCrossing:
    """Сделки, пересекающие границу тика"""

    def test_exit_tick(self, tick_pool) -> None:
        executor = ToroidalSwapExecutor()
        plan = executor.plan(tick_pool, 0, 1, 2 * 10**11)

        assert plan.trade.segments == 2
        assert plan.trade.ticks_crossed == ("core",)
        assert plan.segments[0].outcome == SegmentOutcome.TICK_CROSSED
        assert plan.segments[0].active_tick_ids == ("core",)
        assert plan.segments[1].outcome == SegmentOutcome.FILLED
        assert plan.segments[1].active_tick_ids == ()
        assert sum(s.amount_in for s in plan.segments) == 2 * 10**11
        # план не фиксируется
        assert tick_pool.active_tick_ids() == ("core",)

    def test_exit_and_reenter(self, tick_pool) -> None:
        forward = execute_swap(tick_pool, 0, 1, 2 * 10**11)
        assert tick_pool.active_tick_ids() == ()
        verify_constraint(tick_pool)

        back = execute_swap(tick_pool, 1, 0, forward.amount_out)
        assert back.ticks_crossed == ("core",)
        assert tick_pool.active_tick_ids() == ("core",)
        # остатки округления при пересчёте смещений: единицы, не доли
        assert back.amount_out <= 2 * 10**11 + 100
        verify_constraint(tick_pool)

    def test_concentrated_liquidity_reduces_slippage(self, tick_pool) -> None:
        plain = create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE)
        with_tick = quote_swap(tick_pool, 0, 1, 2 * 10**11)
        without_tick = quote_swap(plain, 0, 1, 2 * 10**11)
        assert with_tick.amount_out > without_tick.amount_out

    def test_trade_inside_tick(self, tick_pool) -> None:
        trade = execute_swap(tick_pool, 0, 1, 10**10)
        assert trade.segments == 1
        assert trade.ticks_crossed == ()
        assert tick_pool.active_tick_ids() == ("core",)

    def test_segment_budget(self, tick_pool) -> None:
        before = tick_pool.to_contract()
        with pytest.raises(UnexpectedTickCrossing, match="budget"):
            execute_swap(tick_pool, 0, 1, 2 * 10**11, config=SwapConfig(max_segments=1))
        assert tick_pool.to_contract() == before


# =============================================================================
# FEES, MULTI-HOP, REQUESTS
# =============================================================================


class TestSwapExtensions:
    """Комиссия, multi-hop, SwapRequest"""

    def test_fee_retained_outside_curve(self, pool) -> None:
        trade = execute_swap(pool, 0, 1, 10_000, config=SwapConfig(fee_bp=30))
        net = quote_swap(
            create_pool([1_000_000, 1_000_000], CurveType.sphere(), R2), 0, 1, 9_970
        )

        assert trade.fee == 30
        assert trade.amount_out == net.amount_out
        assert pool.reserves[0] == 1_010_000
        assert pool.virtual_offsets[0] == -30
        verify_constraint(pool)

    def test_multi_hop(self) -> None:
        pool = create_pool([1_000_000] * 3, CurveType.sphere(), 3_000_000_000_000)
        trades = execute_multi_hop_swap(pool, [0, 1, 2], 10_000)

        assert len(trades) == 2
        assert trades[1].amount_in == trades[0].amount_out
        assert pool.reserves[0] == 1_010_000
        assert pool.reserves[1] == 1_000_000
        assert pool.reserves[2] == 1_000_000 - trades[1].amount_out

    def test_multi_hop_slippage_is_atomic(self) -> None:
        pool = create_pool([1_000_000] * 3, CurveType.sphere(), 3_000_000_000_000)
        with pytest.raises(SlippageExceeded):
            execute_multi_hop_swap(pool, [0, 1, 2], 10_000, min_amount_out=10_000)
        assert pool.reserves == (1_000_000, 1_000_000, 1_000_000)

    def test_multi_hop_short_path(self, pool) -> None:
        with pytest.raises(InvalidParameter, match="path"):
            execute_multi_hop_swap(pool, [0], 10_000)

    def test_swap_request(self, pool) -> None:
        request = SwapRequest.from_contract(
            {"token_in": 0, "token_out": 1, "amount_in": "10000", "min_amount_out": "9900"}
        )
        trade = execute_swap_request(pool, request)
        assert trade.amount_out == 9_901
