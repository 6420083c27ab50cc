"""
Тесты для Tick Geometry

Проверяет:
1. Доли токенов и принадлежность точки тику (границы включительно)
2. validate_tick: все причины InvalidTick
3. regions_overlap / validate_ticks: касание гранями не пересечение
4. active_liquidity и канонический порядок тиков
5. capital_efficiency_bp и recommend_tick
"""

import pytest

from orbital_amm.core.domain.tick import ShareBound, Tick
from orbital_amm.core.errors import InvalidTick, TickOverlap, TokenIndexOutOfBounds, ZeroReserve
from orbital_amm.core.math.fixed_point import WAD
from orbital_amm.ticks import (
    active_liquidity,
    capital_efficiency_bp,
    contains,
    is_crossed,
    recommend_tick,
    regions_overlap,
    sort_ticks_by_boundary,
    token_shares,
    validate_tick,
    validate_ticks,
)

PCT = WAD // 100


@pytest.fixture
def core_tick() -> Tick:
    """Тик около паритета: доля каждого из 2 токенов в [45%, 55%]"""
    return Tick.uniform("core", 2, 45 * PCT, 55 * PCT, 1_000)


# =============================================================================
# SHARES & MEMBERSHIP
# =============================================================================


class TestMembership:
    """Тесты для token_shares / contains / is_crossed"""

    def test_token_shares(self) -> None:
        assert token_shares([1, 3]) == (WAD // 4, 3 * WAD // 4)

    def test_token_shares_zero_total(self) -> None:
        with pytest.raises(ZeroReserve):
            token_shares([0, 0])

    def test_contains_parity(self, core_tick: Tick) -> None:
        assert contains([1_000, 1_000], core_tick)
        assert not is_crossed([1_000, 1_000], core_tick)

    def test_boundary_inclusive(self, core_tick: Tick) -> None:
        """Доля ровно 55% лежит внутри"""
        assert contains([55, 45], core_tick)

    def test_outside(self, core_tick: Tick) -> None:
        assert not contains([60, 40], core_tick)
        assert is_crossed([60, 40], core_tick)


# =============================================================================
# VALIDATION
# =============================================================================


class TestValidateTick:
    """Тесты для validate_tick"""

    def test_valid(self, core_tick: Tick) -> None:
        validate_tick(core_tick, 2)

    def test_empty_id(self) -> None:
        tick = Tick.uniform("", 2, 45 * PCT, 55 * PCT, 1)
        with pytest.raises(InvalidTick, match="non-empty"):
            validate_tick(tick, 2)

    def test_wrong_bound_count(self, core_tick: Tick) -> None:
        with pytest.raises(InvalidTick, match="expected 3 share bounds"):
            validate_tick(core_tick, 3)

    def test_non_positive_liquidity(self) -> None:
        tick = Tick.uniform("t", 2, 45 * PCT, 55 * PCT, 0)
        with pytest.raises(InvalidTick, match="liquidity"):
            validate_tick(tick, 2)

    def test_lower_not_below_upper(self) -> None:
        tick = Tick.for_token("t", 2, 0, 50 * PCT, 50 * PCT, 1)
        with pytest.raises(InvalidTick, match="lower"):
            validate_tick(tick, 2)

    def test_upper_above_wad(self) -> None:
        tick = Tick.for_token("t", 2, 0, 0, WAD + 1, 1)
        with pytest.raises(InvalidTick, match="outside"):
            validate_tick(tick, 2)

    def test_region_misses_simplex(self) -> None:
        """Σ upper < 100%: ни одна точка симплекса не лежит в области"""
        tick = Tick.uniform("t", 2, 10 * PCT, 40 * PCT, 1)
        with pytest.raises(InvalidTick, match="simplex"):
            validate_tick(tick, 2)

    def test_token_index_out_of_bounds(self) -> None:
        with pytest.raises(TokenIndexOutOfBounds):
            Tick.for_token("t", 2, 2, 0, WAD // 2, 1)


class TestOverlap:
    """Тесты для regions_overlap / validate_ticks"""

    def test_touching_faces_do_not_overlap(self) -> None:
        low = Tick.for_token("low", 2, 0, 0, 50 * PCT, 1)
        high = Tick.for_token("high", 2, 0, 50 * PCT, WAD, 1)
        assert not regions_overlap(low, high)
        validate_ticks([low, high], 2)

    def test_nested_regions_overlap(self, core_tick: Tick) -> None:
        wide = Tick.uniform("wide", 2, 40 * PCT, 60 * PCT, 1)
        assert regions_overlap(core_tick, wide)
        with pytest.raises(TickOverlap) as exc_info:
            validate_ticks([core_tick, wide], 2)
        assert {exc_info.value.tick_a, exc_info.value.tick_b} == {"core", "wide"}

    def test_boxes_overlap_only_off_simplex(self) -> None:
        """Коробки пересекаются, но их пересечение не касается симплекса"""
        a = Tick(
            tick_id="a",
            bounds=(ShareBound(lower=0, upper=30 * PCT), ShareBound(lower=0, upper=WAD)),
            liquidity=1,
        )
        b = Tick(
            tick_id="b",
            bounds=(ShareBound(lower=0, upper=WAD), ShareBound(lower=0, upper=30 * PCT)),
            liquidity=1,
        )
        assert not regions_overlap(a, b)

    def test_duplicate_id(self, core_tick: Tick) -> None:
        other = Tick.for_token("core", 2, 0, 0, 10 * PCT, 1)
        with pytest.raises(InvalidTick, match="duplicate"):
            validate_ticks([core_tick, other], 2)

    def test_three_token_disjoint(self) -> None:
        ticks = [
            Tick.for_token(f"t{k}", 3, k, 60 * PCT, WAD, 1) for k in range(3)
        ]
        validate_ticks(ticks, 3)


# =============================================================================
# ACTIVE LIQUIDITY
# =============================================================================


class TestActiveLiquidity:
    """Тесты для active_liquidity / sort_ticks_by_boundary"""

    def test_interior_only_outside_ticks(self, core_tick: Tick) -> None:
        composition = active_liquidity([core_tick], [70, 30], interior=500)
        assert composition.active_tick_ids == ()
        assert composition.total == 500
        assert not composition.has_active_ticks()

    def test_tick_adds_liquidity(self, core_tick: Tick) -> None:
        composition = active_liquidity([core_tick], [50, 50], interior=500)
        assert composition.active_tick_ids == ("core",)
        assert composition.tick_liquidity == 1_000
        assert composition.total == 1_500

    def test_sorted_from_parity_outwards(self, core_tick: Tick) -> None:
        edge = Tick.for_token("edge", 2, 0, 90 * PCT, WAD, 1)
        middle = Tick.for_token("middle", 2, 0, 60 * PCT, 90 * PCT, 1)
        ordered = sort_ticks_by_boundary([edge, middle, core_tick])
        assert [t.tick_id for t in ordered] == ["core", "middle", "edge"]


# =============================================================================
# CAPITAL EFFICIENCY
# =============================================================================


class TestCapitalEfficiency:
    """Тесты для capital_efficiency_bp / recommend_tick"""

    def test_unbounded_is_one_x(self) -> None:
        tick = Tick.uniform("full", 2, 0, WAD, 1)
        assert capital_efficiency_bp(tick) == 10_000

    def test_narrow_tick(self, core_tick: Tick) -> None:
        # 55% / (55% − 45%) = 5.5x
        assert capital_efficiency_bp(core_tick) == 55_000

    def test_capped_at_500x(self) -> None:
        tick = Tick.for_token("t", 2, 0, 50 * PCT, 50 * PCT + 1, 1)
        assert capital_efficiency_bp(tick) == 5_000_000

    @pytest.mark.parametrize(
        "tolerance_bp, limit_bp",
        [(50, 9_900), (100, 9_900), (300, 9_500), (1_000, 9_000), (5_000, 8_500)],
    )
    def test_recommend_tiers(self, tolerance_bp: int, limit_bp: int) -> None:
        recommendation = recommend_tick("rec", 3, 1_000, tolerance_bp)
        assert recommendation.depeg_limit_bp == limit_bp
        assert recommendation.tick.liquidity == 1_000
        validate_tick(recommendation.tick, 3)

    def test_recommended_tick_contains_parity(self) -> None:
        recommendation = recommend_tick("rec", 4, 1, 100)
        assert contains([1_000] * 4, recommendation.tick)
        assert recommendation.expected_efficiency_bp > 10_000
