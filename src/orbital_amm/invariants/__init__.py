"""
Invariant engines: sphere and superellipse curve math.

The curve engines are reached either directly (module functions) or through
the closed dispatch in orbital_amm.invariants.dispatch.
"""

from orbital_amm.invariants.dispatch import (
    CurveEngine,
    SphereEngine,
    SuperellipseEngine,
    engine_for,
)

__all__ = [
    "CurveEngine",
    "SphereEngine",
    "SuperellipseEngine",
    "engine_for",
]
