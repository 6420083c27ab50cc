"""
CurveType — Закрытый вариант инвариантной поверхности пула

Sphere:            Σ(c − r_i)² = R²
Superellipse{u}:   Σ|c − r_i|^u = K

Показатель u хранится как целое u_parameter с масштабом 10_000
(u = 2.5 → 25_000), как параметр кривой в on-chain представлении.
"""

from enum import Enum
from fractions import Fraction
from typing import Final

from pydantic import BaseModel, Field, model_validator

from orbital_amm.core.errors import InvalidParameter


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Масштаб u_parameter
U_PRECISION: Final[int] = 10_000

# u_parameter сферы (u = 2)
SPHERE_U_PARAMETER: Final[int] = 20_000

# Допустимый диапазон u_parameter суперэллипса: 1 < u ≤ 20
MIN_U_PARAMETER_EXCLUSIVE: Final[int] = 10_000
MAX_U_PARAMETER: Final[int] = 200_000


# =============================================================================
# ENUMS
# =============================================================================


class CurveKind(str, Enum):
    """Тип инвариантной поверхности"""

    SPHERE = "sphere"
    SUPERELLIPSE = "superellipse"


# =============================================================================
# CURVE TYPE MODEL
# =============================================================================


class CurveType(BaseModel):
    """
    Параметры кривой пула.

    Immutable модель (frozen=True). Для суперэллипса u_parameter обязателен,
    для сферы — отсутствует.
    """

    kind: CurveKind = Field(..., description="Тип кривой (sphere/superellipse)")
    u_parameter: int | None = Field(
        None, description="Показатель u, масштабированный на 10_000 (только superellipse)"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_u_parameter(self) -> "CurveType":
        """Проверка u_parameter относительно типа кривой"""
        if self.kind == CurveKind.SPHERE:
            if self.u_parameter is not None:
                raise InvalidParameter("u_parameter", "sphere curve takes no u_parameter")
            return self

        if self.u_parameter is None:
            raise InvalidParameter("u_parameter", "superellipse curve requires u_parameter")
        if not MIN_U_PARAMETER_EXCLUSIVE < self.u_parameter <= MAX_U_PARAMETER:
            raise InvalidParameter(
                "u_parameter",
                f"must be in ({MIN_U_PARAMETER_EXCLUSIVE}, {MAX_U_PARAMETER}], "
                f"got {self.u_parameter}",
            )
        return self

    @classmethod
    def sphere(cls) -> "CurveType":
        """Сферическая кривая."""
        return cls(kind=CurveKind.SPHERE)

    @classmethod
    def superellipse(cls, u_parameter: int) -> "CurveType":
        """
        Суперэллипс с показателем u = u_parameter / 10_000.

        Raises:
            InvalidParameter: u_parameter вне (10_000, 200_000]
        """
        return cls(kind=CurveKind.SUPERELLIPSE, u_parameter=u_parameter)

    @property
    def exponent(self) -> Fraction:
        """Показатель u как точная дробь (2 для сферы)."""
        if self.kind == CurveKind.SPHERE:
            return Fraction(SPHERE_U_PARAMETER, U_PRECISION)
        return Fraction(self.u_parameter, U_PRECISION)

    def is_sphere(self) -> bool:
        return self.kind == CurveKind.SPHERE

    def to_contract(self) -> dict:
        """Кодирование для JSON-контрактов."""
        data: dict = {"kind": self.kind.value}
        if self.u_parameter is not None:
            data["u_parameter"] = self.u_parameter
        return data
