"""
Тесты для Pool Operations

Проверяет:
1. create_pool: все причины отказа, атомарность
2. Запросы: token_count, total_liquidity, calculate_price, verify_constraint
3. Начальный состав с активным тиком: смещения, непрерывность курса
4. add_tick / remove_tick: валидация, атомарность, пересчёт смещений
"""

import pytest

from orbital_amm.core.domain.curve import CurveType
from orbital_amm.core.domain.tick import Tick
from orbital_amm.core.errors import (
    InvalidParameter,
    InvalidTick,
    InvalidTokenCount,
    NegativeReserve,
    Overflow,
    SphereConstraintViolation,
    SuperellipseConstraintViolation,
    TickOverlap,
    TokenIndexOutOfBounds,
    ZeroReserve,
)
from orbital_amm.core.math.fixed_point import MAX_UINT256, WAD
from orbital_amm.invariants import superellipse
from orbital_amm.pool import (
    add_tick,
    calculate_price,
    create_pool,
    interior_radius,
    remove_tick,
    token_count,
    total_liquidity,
    verify_constraint,
)

R2 = 2_000_000_000_000
RESERVE = 10**12
R2_LARGE = 2 * RESERVE * RESERVE
PCT = WAD // 100


@pytest.fixture
def sphere_pool():
    """2 токена по 1e6, R² = 2e12, без тиков"""
    return create_pool([1_000_000, 1_000_000], CurveType.sphere(), R2)


@pytest.fixture
def core_tick() -> Tick:
    return Tick.uniform("core", 2, 45 * PCT, 55 * PCT, 1_414_213_562_373)


# =============================================================================
# CONSTRUCTION
# =============================================================================


class TestCreatePool:
    """Тесты для create_pool"""

    def test_valid_sphere_pool(self, sphere_pool) -> None:
        assert sphere_pool.reserves == (1_000_000, 1_000_000)
        assert sphere_pool.virtual_offsets == (0, 0)
        assert sphere_pool.ticks == ()

    @pytest.mark.parametrize("reserves", [[1_000_000], [1] * 1001])
    def test_invalid_token_count(self, reserves: list[int]) -> None:
        with pytest.raises(InvalidTokenCount) as exc_info:
            create_pool(reserves, CurveType.sphere(), R2)
        assert exc_info.value.min_tokens == 2
        assert exc_info.value.max_tokens == 1000

    def test_negative_reserve(self) -> None:
        with pytest.raises(NegativeReserve) as exc_info:
            create_pool([1_000_000, -1], CurveType.sphere(), R2)
        assert exc_info.value.token_index == 1

    def test_zero_reserve(self) -> None:
        with pytest.raises(ZeroReserve):
            create_pool([1_000_000, 0], CurveType.sphere(), R2)

    def test_reserve_overflow(self) -> None:
        with pytest.raises(Overflow):
            create_pool([MAX_UINT256 + 1, 1], CurveType.sphere(), R2)

    def test_non_positive_invariant(self) -> None:
        with pytest.raises(InvalidParameter, match="invariant"):
            create_pool([1_000_000, 1_000_000], CurveType.sphere(), 0)

    def test_off_sphere(self) -> None:
        with pytest.raises(SphereConstraintViolation):
            create_pool([1_200_000, 1_000_000], CurveType.sphere(), R2)

    def test_off_superellipse(self) -> None:
        k_constant = superellipse.parity_invariant(1_000 * WAD, 2, 25_000)
        with pytest.raises(SuperellipseConstraintViolation):
            create_pool([1_200 * WAD, 1_000 * WAD], CurveType.superellipse(25_000), k_constant)

    def test_superellipse_pool(self) -> None:
        k_constant = superellipse.parity_invariant(1_000 * WAD, 3, 25_000)
        pool = create_pool([1_000 * WAD] * 3, CurveType.superellipse(25_000), k_constant)
        assert pool.token_count == 3
        verify_constraint(pool)

    def test_overlapping_ticks_rejected(self, core_tick: Tick) -> None:
        wide = Tick.uniform("wide", 2, 40 * PCT, 60 * PCT, 1)
        with pytest.raises(TickOverlap):
            create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE, ticks=[core_tick, wide])

    def test_invalid_tick_rejected(self) -> None:
        bad = Tick.uniform("bad", 2, 45 * PCT, 55 * PCT, 0)
        with pytest.raises(InvalidTick):
            create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE, ticks=[bad])


# =============================================================================
# QUERIES
# =============================================================================


class TestPoolQueries:
    """Тесты для запросов к пулу"""

    def test_token_count(self, sphere_pool) -> None:
        assert token_count(sphere_pool) == 2

    def test_parity_price(self, sphere_pool) -> None:
        assert calculate_price(sphere_pool, 0, 1) == WAD

    def test_price_invalid_index(self, sphere_pool) -> None:
        with pytest.raises(TokenIndexOutOfBounds):
            calculate_price(sphere_pool, 0, 5)

    def test_verify_constraint(self, sphere_pool) -> None:
        verify_constraint(sphere_pool, 0)

    def test_total_liquidity_monotone_in_invariant(self) -> None:
        small = create_pool([1_000_000, 1_000_000], CurveType.sphere(), R2)
        large = create_pool([2_000_000, 2_000_000], CurveType.sphere(), 4 * R2)
        assert total_liquidity(large) > total_liquidity(small)

    def test_total_liquidity_includes_ticks(self, core_tick: Tick) -> None:
        pool = create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE, ticks=[core_tick])
        assert total_liquidity(pool) == interior_radius(pool) + core_tick.liquidity


# =============================================================================
# TICK COMPOSITION
# =============================================================================


class TestTickComposition:
    """Тесты для начального состава и add_tick / remove_tick"""

    def test_initial_active_tick(self, core_tick: Tick) -> None:
        pool = create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE, ticks=[core_tick])
        assert pool.active_tick_ids() == ("core",)
        # тик удваивает радиус: виртуальные резервы ≈ 2x фактических
        assert all(offset > 0 for offset in pool.virtual_offsets)
        assert abs(calculate_price(pool, 0, 1) - WAD) <= WAD // 10**9
        verify_constraint(pool)

    def test_inactive_tick_keeps_offsets(self) -> None:
        far = Tick.for_token("far", 2, 0, 80 * PCT, WAD, 1_000)
        pool = create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE, ticks=[far])
        assert pool.active_tick_ids() == ()
        assert pool.virtual_offsets == (0, 0)

    def test_add_tick_activates(self, core_tick: Tick) -> None:
        pool = create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE)
        add_tick(pool, core_tick)
        assert pool.active_tick_ids() == ("core",)
        assert pool.reserves == (RESERVE, RESERVE)
        verify_constraint(pool)

    def test_add_overlapping_tick_is_atomic(self, core_tick: Tick) -> None:
        pool = create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE, ticks=[core_tick])
        before = pool.to_contract()
        with pytest.raises(TickOverlap):
            add_tick(pool, Tick.uniform("wide", 2, 40 * PCT, 60 * PCT, 1))
        assert pool.to_contract() == before

    def test_remove_tick_restores_interior(self, core_tick: Tick) -> None:
        pool = create_pool([RESERVE, RESERVE], CurveType.sphere(), R2_LARGE, ticks=[core_tick])
        removed = remove_tick(pool, "core")
        assert removed.tick_id == "core"
        assert not removed.is_active
        assert pool.ticks == ()
        assert all(abs(offset) <= 1 for offset in pool.virtual_offsets)
        verify_constraint(pool)

    def test_remove_unknown_tick(self, sphere_pool) -> None:
        with pytest.raises(InvalidParameter, match="tick_id"):
            remove_tick(sphere_pool, "missing")
