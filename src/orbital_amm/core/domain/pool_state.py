"""
PoolState — Модель состояния пула

Пул владеет резервами, параметрами кривой, инвариантным параметром
внутренней ликвидности (R² для сферы, K для суперэллипса) и упорядоченным
набором тиков.

virtual_offsets отображают фактические резервы в координаты активной
локальной кривой:
    virtual_k = reserves_k + virtual_offsets_k
Без активных тиков смещения нулевые и резервы лежат на объявленной кривой.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. После каждой зафиксированной мутации виртуальные резервы удовлетворяют
   активной локальной кривой (interior + активные тики) в пределах допуска bp
2. Мутация только через apply_state(): сделка или изменение набора тиков
   либо фиксируются целиком, либо не фиксируются вовсе

Построение с полной валидацией: orbital_amm.pool.create_pool.
"""

from typing import Final

from pydantic import BaseModel, Field

from orbital_amm.core.domain.curve import CurveType
from orbital_amm.core.domain.tick import Tick


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

MIN_TOKENS: Final[int] = 2
MAX_TOKENS: Final[int] = 1000


# =============================================================================
# POOL STATE MODEL
# =============================================================================


class PoolState(BaseModel):
    """
    Состояние N-мерного пула.

    Поля доступны только для чтения снаружи движка (кортежи неизменяемы);
    единственная точка мутации — apply_state().
    """

    reserves: tuple[int, ...] = Field(..., description="Резервы токенов (18 decimals)")
    curve: CurveType = Field(..., description="Тип и параметры кривой")
    invariant: int = Field(..., description="Инвариантный параметр внутренней ликвидности (R² или K)")
    ticks: tuple[Tick, ...] = Field((), description="Тики концентрированной ликвидности")
    virtual_offsets: tuple[int, ...] = Field(
        ..., description="Смещения к координатам активной локальной кривой"
    )

    @property
    def token_count(self) -> int:
        return len(self.reserves)

    def virtual_reserves(self) -> tuple[int, ...]:
        """Резервы в координатах активной локальной кривой."""
        return tuple(r + o for r, o in zip(self.reserves, self.virtual_offsets))

    def active_tick_ids(self) -> tuple[str, ...]:
        return tuple(tick.tick_id for tick in self.ticks if tick.is_active)

    def find_tick(self, tick_id: str) -> Tick | None:
        for tick in self.ticks:
            if tick.tick_id == tick_id:
                return tick
        return None

    def snapshot(self) -> "PoolState":
        """Независимая рабочая копия для вычислений без мутации оригинала."""
        return self.model_copy(deep=True)

    def apply_state(self, other: "PoolState") -> None:
        """
        Фиксация состояния рабочей копии.

        Все значения вычислены и проверены заранее; присваивания не могут
        завершиться ошибкой, поэтому наблюдатель видит либо старое, либо
        новое состояние целиком.
        """
        self.reserves = other.reserves
        self.ticks = other.ticks
        self.virtual_offsets = other.virtual_offsets

    def to_contract(self) -> dict:
        """Кодирование для JSON-контракта pool_state (целые — десятичные строки)."""
        return {
            "reserves": [str(r) for r in self.reserves],
            "curve": self.curve.to_contract(),
            "invariant": str(self.invariant),
            "ticks": [tick.to_contract() for tick in self.ticks],
            "virtual_offsets": [str(o) for o in self.virtual_offsets],
        }
