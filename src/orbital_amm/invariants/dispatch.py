"""
Curve Dispatch — Единый интерфейс сферы и суперэллипса

Закрытый вариант {Sphere, Superellipse(u)}: engine_for() сопоставляет
CurveType конкретному движку, торговый алгоритм работает только через
протокол CurveEngine и не зависит от типа кривой.
"""

from dataclasses import dataclass
from typing import Protocol, Sequence

from orbital_amm.core.domain.curve import CurveKind, CurveType
from orbital_amm.invariants import sphere, superellipse


class CurveEngine(Protocol):
    """Операции кривой, нужные пулу и торговому движку."""

    def verify_constraint(
        self, reserves: Sequence[int], invariant: int, tolerance_bp: int
    ) -> None: ...

    def compute_swap_output(
        self,
        reserves: Sequence[int],
        token_in: int,
        token_out: int,
        amount_in: int,
        invariant: int,
    ) -> int: ...

    def calculate_price(
        self, reserves: Sequence[int], token_in: int, token_out: int, invariant: int
    ) -> int: ...

    def balance_point_amount(
        self, reserves: Sequence[int], token_in: int, token_out: int, invariant: int
    ) -> int | None: ...

    def center(self, invariant: int, token_count: int) -> int: ...

    def radius(self, invariant: int) -> int: ...

    def invariant_from_radius(self, curve_radius: int) -> int: ...

    def constraint_value(self, reserves: Sequence[int], invariant: int) -> int: ...


@dataclass(frozen=True)
class SphereEngine:
    """Движок сферы Σ(c − r_i)² = R²."""

    def verify_constraint(
        self, reserves: Sequence[int], invariant: int, tolerance_bp: int
    ) -> None:
        sphere.verify_constraint(reserves, invariant, tolerance_bp)

    def compute_swap_output(
        self,
        reserves: Sequence[int],
        token_in: int,
        token_out: int,
        amount_in: int,
        invariant: int,
    ) -> int:
        return sphere.compute_swap_output(reserves, token_in, token_out, amount_in, invariant)

    def calculate_price(
        self, reserves: Sequence[int], token_in: int, token_out: int, invariant: int
    ) -> int:
        return sphere.calculate_price(reserves, token_in, token_out, invariant)

    def balance_point_amount(
        self, reserves: Sequence[int], token_in: int, token_out: int, invariant: int
    ) -> int | None:
        return sphere.balance_point_amount(reserves, token_in, token_out, invariant)

    def center(self, invariant: int, token_count: int) -> int:
        return sphere.center(invariant, token_count)

    def radius(self, invariant: int) -> int:
        return sphere.radius(invariant)

    def invariant_from_radius(self, curve_radius: int) -> int:
        return sphere.invariant_from_radius(curve_radius)

    def constraint_value(self, reserves: Sequence[int], invariant: int) -> int:
        return sphere.constraint_value(reserves, invariant)


@dataclass(frozen=True)
class SuperellipseEngine:
    """Движок суперэллипса Σ|c − r_i|^u = K."""

    u_parameter: int

    def verify_constraint(
        self, reserves: Sequence[int], invariant: int, tolerance_bp: int
    ) -> None:
        superellipse.verify_constraint(reserves, invariant, self.u_parameter, tolerance_bp)

    def compute_swap_output(
        self,
        reserves: Sequence[int],
        token_in: int,
        token_out: int,
        amount_in: int,
        invariant: int,
    ) -> int:
        return superellipse.compute_swap_output(
            reserves, token_in, token_out, amount_in, invariant, self.u_parameter
        )

    def calculate_price(
        self, reserves: Sequence[int], token_in: int, token_out: int, invariant: int
    ) -> int:
        return superellipse.calculate_price(
            reserves, token_in, token_out, invariant, self.u_parameter
        )

    def balance_point_amount(
        self, reserves: Sequence[int], token_in: int, token_out: int, invariant: int
    ) -> int | None:
        return superellipse.balance_point_amount(
            reserves, token_in, token_out, invariant, self.u_parameter
        )

    def center(self, invariant: int, token_count: int) -> int:
        return superellipse.center(invariant, token_count, self.u_parameter)

    def radius(self, invariant: int) -> int:
        return superellipse.radius(invariant, self.u_parameter)

    def invariant_from_radius(self, curve_radius: int) -> int:
        return superellipse.invariant_from_radius(curve_radius, self.u_parameter)

    def constraint_value(self, reserves: Sequence[int], invariant: int) -> int:
        return superellipse.constraint_value(reserves, invariant, self.u_parameter)


def engine_for(curve: CurveType) -> CurveEngine:
    """
    Движок для типа кривой.

    Examples:
        >>> engine_for(CurveType.sphere())
        SphereEngine()
    """
    if curve.kind == CurveKind.SPHERE:
        return SphereEngine()
    return SuperellipseEngine(u_parameter=curve.u_parameter)
