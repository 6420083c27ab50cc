"""
Trade — Запрос свопа и квитанция исполненной сделки

SwapRequest — вход торгового движка (token_in, token_out, amount_in,
min_amount_out). TradeInfo — чистый выход одной сделки; не ссылается на
PoolState и не владеет им.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field

from orbital_amm.core.contracts import validate_swap_request
from orbital_amm.core.math.fixed_point import WAD


# =============================================================================
# SWAP REQUEST
# =============================================================================


class SwapRequest(BaseModel):
    """
    Запрос свопа.

    Immutable модель (frozen=True). Семантическая проверка (индексы, нулевой
    вход) выполняется торговым движком и даёт типизированные ошибки.
    """

    token_in: int = Field(..., description="Индекс входного токена")
    token_out: int = Field(..., description="Индекс выходного токена")
    amount_in: int = Field(..., description="Количество входного токена (18 decimals)")
    min_amount_out: int = Field(0, description="Минимально допустимый выход")

    model_config = {"frozen": True}

    @classmethod
    def from_contract(cls, data: Dict[str, Any]) -> "SwapRequest":
        """
        Построение из JSON-контракта swap_request.

        Raises:
            jsonschema.ValidationError: Данные не соответствуют схеме
        """
        validate_swap_request(data)
        return cls(
            token_in=data["token_in"],
            token_out=data["token_out"],
            amount_in=int(data["amount_in"]),
            min_amount_out=int(data.get("min_amount_out", "0")),
        )


# =============================================================================
# TRADE INFO
# =============================================================================


class TradeInfo(BaseModel):
    """
    Квитанция исполненной сделки.

    Цены — предельный курс token_in в единицах token_out (WAD) до и после
    сделки; price_impact_bp = |after − before| · 10_000 / before.
    """

    token_in: int = Field(..., description="Индекс входного токена")
    token_out: int = Field(..., description="Индекс выходного токена")
    amount_in: int = Field(..., description="Полный вход, включая комиссию")
    amount_out: int = Field(..., description="Выход сделки")
    fee: int = Field(0, description="Комиссия, удержанная пулом из входа")
    price_before: int = Field(..., description="Предельная цена до сделки (WAD)")
    price_after: int = Field(..., description="Предельная цена после сделки (WAD)")
    price_impact_bp: int = Field(..., description="Price impact в basis points")
    ticks_crossed: tuple[str, ...] = Field((), description="Тики, сменившие активность")
    segments: int = Field(1, description="Количество сегментов исполнения")

    model_config = {"frozen": True}

    def exchange_rate(self) -> int:
        """
        Средний курс сделки: amount_out / amount_in в WAD.

        Returns:
            amount_out · 10^18 // amount_in
        """
        return self.amount_out * WAD // self.amount_in

    def to_contract(self) -> dict:
        """Кодирование для JSON-контракта trade_info."""
        return {
            "token_in": self.token_in,
            "token_out": self.token_out,
            "amount_in": str(self.amount_in),
            "amount_out": str(self.amount_out),
            "fee": str(self.fee),
            "price_before": str(self.price_before),
            "price_after": str(self.price_after),
            "price_impact_bp": self.price_impact_bp,
            "exchange_rate": str(self.exchange_rate()),
            "ticks_crossed": list(self.ticks_crossed),
            "segments": self.segments,
        }
