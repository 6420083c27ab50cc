"""
Tick — Ограниченная область концентрированной ликвидности

Каноническое представление границы: для каждого токена k задан интервал
доли [lower_k, upper_k] в WAD (10^18 = 100%), где доля токена
    share_k = reserves[k] · 10^18 // Σ reserves.
Точка резервов лежит внутри тика, если все доли лежат в своих интервалах
(границы включительно). Интервал [0, WAD] означает отсутствие ограничения.

Семантическая проверка (lower < upper, непересечение областей) выполняется
в orbital_amm.ticks.geometry при построении пула или добавлении тика.
"""

from pydantic import BaseModel, Field

from orbital_amm.core.errors import TokenIndexOutOfBounds
from orbital_amm.core.math.fixed_point import WAD


class ShareBound(BaseModel):
    """Интервал доли одного токена (WAD)."""

    lower: int = Field(0, description="Нижняя граница доли (WAD, включительно)")
    upper: int = Field(WAD, description="Верхняя граница доли (WAD, включительно)")

    model_config = {"frozen": True}

    def contains(self, share: int) -> bool:
        return self.lower <= share <= self.upper

    def is_unbounded(self) -> bool:
        return self.lower <= 0 and self.upper >= WAD


class Tick(BaseModel):
    """
    Тик концентрированной ликвидности.

    Immutable модель (frozen=True). Флаг is_active поддерживается пулом:
    тик активен, пока резервы лежат внутри его области.
    """

    tick_id: str = Field(..., description="Уникальный идентификатор тика в пуле")
    bounds: tuple[ShareBound, ...] = Field(..., description="Интервал доли для каждого токена")
    liquidity: int = Field(..., description="Вклад ликвидности (в единицах резервов)")
    is_active: bool = Field(False, description="Содержит ли область тика текущие резервы")

    model_config = {"frozen": True}

    @classmethod
    def for_token(
        cls,
        tick_id: str,
        token_count: int,
        token_index: int,
        lower: int,
        upper: int,
        liquidity: int,
    ) -> "Tick":
        """
        Тик, ограничивающий долю одного токена (остальные доли свободны).

        Args:
            tick_id: Идентификатор тика
            token_count: Количество токенов пула
            token_index: Индекс ограничиваемого токена
            lower: Нижняя граница доли (WAD)
            upper: Верхняя граница доли (WAD)
            liquidity: Вклад ликвидности

        Raises:
            TokenIndexOutOfBounds: token_index вне [0, token_count)
        """
        if not 0 <= token_index < token_count:
            raise TokenIndexOutOfBounds(token_index, token_count)
        bounds = tuple(
            ShareBound(lower=lower, upper=upper) if k == token_index else ShareBound()
            for k in range(token_count)
        )
        return cls(tick_id=tick_id, bounds=bounds, liquidity=liquidity)

    @classmethod
    def uniform(
        cls, tick_id: str, token_count: int, lower: int, upper: int, liquidity: int
    ) -> "Tick":
        """Тик с одинаковым интервалом доли для всех токенов."""
        bounds = tuple(ShareBound(lower=lower, upper=upper) for _ in range(token_count))
        return cls(tick_id=tick_id, bounds=bounds, liquidity=liquidity)

    @property
    def token_count(self) -> int:
        return len(self.bounds)

    def to_contract(self) -> dict:
        return {
            "tick_id": self.tick_id,
            "bounds": [{"lower": str(b.lower), "upper": str(b.upper)} for b in self.bounds],
            "liquidity": str(self.liquidity),
            "is_active": self.is_active,
        }
