"""
Errors — Типизированные ошибки движка Orbital AMM

Каждый отказ движка — отдельный класс исключения с атрибутами, описывающими
причину. Никакой отказ не приводит к частичной мутации PoolState: построение
пула и исполнение сделки работают по принципу all-or-nothing.

Иерархия:
    OrbitalError
    ├── ConfigurationError   (InvalidTokenCount, InvalidTick, TickOverlap, InvalidParameter)
    ├── InvariantError       (SphereConstraintViolation, SuperellipseConstraintViolation,
    │                         InvariantViolation)
    ├── ArithmeticFault      (Overflow, Underflow, DivisionByZero, NegativeSquareRoot,
    │                         PrecisionLoss)
    ├── MarketError          (InsufficientLiquidity, ExcessivePriceImpact, SlippageExceeded,
    │                         NoSolution, UnexpectedTickCrossing)
    └── IndexingError        (TokenIndexOutOfBounds, ZeroReserve, NegativeReserve)

Исключения НЕ наследуют ValueError: Pydantic пропускает их из валидаторов без
обёртки в ValidationError, поэтому вызывающая сторона всегда видит конкретный тип.
"""

from enum import Enum


# =============================================================================
# ERROR KIND
# =============================================================================


class ErrorKind(str, Enum):
    """Вид ошибки для кодирования на границе движка (API layer, solver)."""

    INVALID_TOKEN_COUNT = "invalid_token_count"
    INVALID_TICK = "invalid_tick"
    TICK_OVERLAP = "tick_overlap"
    INVALID_PARAMETER = "invalid_parameter"
    SPHERE_CONSTRAINT_VIOLATION = "sphere_constraint_violation"
    SUPERELLIPSE_CONSTRAINT_VIOLATION = "superellipse_constraint_violation"
    INVARIANT_VIOLATION = "invariant_violation"
    OVERFLOW = "overflow"
    UNDERFLOW = "underflow"
    DIVISION_BY_ZERO = "division_by_zero"
    NEGATIVE_SQUARE_ROOT = "negative_square_root"
    PRECISION_LOSS = "precision_loss"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    EXCESSIVE_PRICE_IMPACT = "excessive_price_impact"
    SLIPPAGE_EXCEEDED = "slippage_exceeded"
    NO_SOLUTION = "no_solution"
    UNEXPECTED_TICK_CROSSING = "unexpected_tick_crossing"
    TOKEN_INDEX_OUT_OF_BOUNDS = "token_index_out_of_bounds"
    ZERO_RESERVE = "zero_reserve"
    NEGATIVE_RESERVE = "negative_reserve"


# =============================================================================
# BASE CLASSES
# =============================================================================


class OrbitalError(Exception):
    """
    Базовый класс всех ошибок движка.

    Attributes:
        kind: ErrorKind для кодирования на границе движка
    """

    kind: ErrorKind

    def to_contract(self) -> dict:
        """Кодирование ошибки в dict (kind + сообщение) для внешних коллабораторов."""
        return {"kind": self.kind.value, "message": str(self)}


class ConfigurationError(OrbitalError):
    """Невалидная конфигурация пула, тика или запроса."""


class InvariantError(OrbitalError):
    """Нарушение инварианта кривой."""


class ArithmeticFault(OrbitalError):
    """Арифметический отказ fixed-point вычислений."""


class MarketError(OrbitalError):
    """Отказ по ликвидности / рыночным условиям."""


class IndexingError(OrbitalError):
    """Невалидный индекс токена или вырожденные резервы."""


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class InvalidTokenCount(ConfigurationError):
    """Количество токенов вне допустимого диапазона [min_tokens, max_tokens]."""

    kind = ErrorKind.INVALID_TOKEN_COUNT

    def __init__(self, count: int, min_tokens: int, max_tokens: int):
        self.count = count
        self.min_tokens = min_tokens
        self.max_tokens = max_tokens
        super().__init__(
            f"Invalid token count: {count} (must be in [{min_tokens}, {max_tokens}])"
        )


class InvalidTick(ConfigurationError):
    """Некорректная конфигурация одного тика (границы, ликвидность, идентификатор)."""

    kind = ErrorKind.INVALID_TICK

    def __init__(self, reason: str, tick_id: str | None = None):
        self.reason = reason
        self.tick_id = tick_id
        prefix = f"Invalid tick '{tick_id}'" if tick_id else "Invalid tick"
        super().__init__(f"{prefix}: {reason}")


class TickOverlap(ConfigurationError):
    """Области двух тиков пересекаются."""

    kind = ErrorKind.TICK_OVERLAP

    def __init__(self, tick_a: str, tick_b: str):
        self.tick_a = tick_a
        self.tick_b = tick_b
        super().__init__(f"Tick regions overlap: '{tick_a}' and '{tick_b}'")


class InvalidParameter(ConfigurationError):
    """Некорректный параметр операции."""

    kind = ErrorKind.INVALID_PARAMETER

    def __init__(self, param: str, reason: str):
        self.param = param
        self.reason = reason
        super().__init__(f"Invalid parameter '{param}': {reason}")


# =============================================================================
# INVARIANT ERRORS
# =============================================================================


class SphereConstraintViolation(InvariantError):
    """
    Резервы не лежат на сфере Σ(c − r_i)² = R² в пределах допуска.

    Attributes:
        actual: Фактическое значение Σ(c − r_i)²
        expected: Ожидаемое значение R²
    """

    kind = ErrorKind.SPHERE_CONSTRAINT_VIOLATION

    def __init__(self, actual: int, expected: int):
        self.actual = actual
        self.expected = expected
        super().__init__(f"Sphere constraint violated: actual={actual}, expected={expected}")


class SuperellipseConstraintViolation(InvariantError):
    """Резервы не лежат на суперэллипсе Σ|c − r_i|^u = K в пределах допуска."""

    kind = ErrorKind.SUPERELLIPSE_CONSTRAINT_VIOLATION

    def __init__(self, u_parameter: int, actual: int, expected: int):
        self.u_parameter = u_parameter
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Superellipse constraint violated (u={u_parameter / 10_000}): "
            f"actual={actual}, expected={expected}"
        )


class InvariantViolation(InvariantError):
    """
    Итоговое состояние сделки не удовлетворяет активной кривой.

    Фатальная ошибка исполнения: сделка отменяется, пул не изменяется.
    """

    kind = ErrorKind.INVARIANT_VIOLATION

    def __init__(self, amount: int, details: str = ""):
        self.amount = amount
        self.details = details
        message = f"Invariant violation after trade of {amount}"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)


# =============================================================================
# ARITHMETIC FAULTS
# =============================================================================


class Overflow(ArithmeticFault):
    """Результат превышает MAX_UINT256."""

    kind = ErrorKind.OVERFLOW

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Arithmetic overflow in {operation}")


class Underflow(ArithmeticFault):
    """Результат беззнаковой операции меньше нуля."""

    kind = ErrorKind.UNDERFLOW

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Arithmetic underflow in {operation}")


class DivisionByZero(ArithmeticFault):
    """Деление на ноль."""

    kind = ErrorKind.DIVISION_BY_ZERO

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Division by zero in {operation}")


class NegativeSquareRoot(ArithmeticFault):
    """Квадратный корень из отрицательного значения."""

    kind = ErrorKind.NEGATIVE_SQUARE_ROOT

    def __init__(self, value: int):
        self.value = value
        super().__init__(f"Square root of negative value: {value}")


class PrecisionLoss(ArithmeticFault):
    """
    Итеративное приближение не гарантирует опубликованную точность.

    Возникает вместо возврата заведомо неточного значения.
    """

    kind = ErrorKind.PRECISION_LOSS

    def __init__(self, operation: str, loss: str = ""):
        self.operation = operation
        self.loss = loss
        message = f"Precision loss in {operation}"
        if loss:
            message = f"{message}: {loss}"
        super().__init__(message)


# =============================================================================
# MARKET ERRORS
# =============================================================================


class InsufficientLiquidity(MarketError):
    """Ликвидности недостаточно, чтобы поглотить вход сделки."""

    kind = ErrorKind.INSUFFICIENT_LIQUIDITY

    def __init__(self, needed: int, available: int):
        self.needed = needed
        self.available = available
        super().__init__(f"Insufficient liquidity: needed={needed}, available={available}")


class ExcessivePriceImpact(MarketError):
    """Price impact сделки превышает допустимый максимум."""

    kind = ErrorKind.EXCESSIVE_PRICE_IMPACT

    def __init__(self, impact_bp: int, max_bp: int):
        self.impact_bp = impact_bp
        self.max_bp = max_bp
        super().__init__(f"Price impact {impact_bp}bp exceeds maximum {max_bp}bp")


class SlippageExceeded(MarketError):
    """
    Выход сделки меньше min_amount_out.

    Attributes:
        actual: Фактический выход сделки
        tolerance: Минимально допустимый выход (min_amount_out)
    """

    kind = ErrorKind.SLIPPAGE_EXCEEDED

    def __init__(self, actual: int, tolerance: int):
        self.actual = actual
        self.tolerance = tolerance
        super().__init__(f"Slippage exceeded: amount_out={actual} < min_amount_out={tolerance}")


class NoSolution(MarketError):
    """Уравнение кривой не имеет допустимого неотрицательного решения."""

    kind = ErrorKind.NO_SOLUTION

    def __init__(self, equation: str):
        self.equation = equation
        super().__init__(f"No solution for {equation}")


class UnexpectedTickCrossing(MarketError):
    """Несогласованный учёт пересечения границы тика во время исполнения."""

    kind = ErrorKind.UNEXPECTED_TICK_CROSSING

    def __init__(self, tick_id: str, details: str = ""):
        self.tick_id = tick_id
        self.details = details
        message = f"Unexpected tick crossing at '{tick_id}'"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)


# =============================================================================
# INDEXING ERRORS
# =============================================================================


class TokenIndexOutOfBounds(IndexingError):
    """Индекс токена вне диапазона либо token_in == token_out."""

    kind = ErrorKind.TOKEN_INDEX_OUT_OF_BOUNDS

    def __init__(self, index: int, token_count: int):
        self.index = index
        self.token_count = token_count
        super().__init__(f"Token index {index} out of bounds (token_count={token_count})")


class ZeroReserve(IndexingError):
    """Нулевой резерв токена."""

    kind = ErrorKind.ZERO_RESERVE

    def __init__(self, token_index: int):
        self.token_index = token_index
        super().__init__(f"Zero reserve for token {token_index}")


class NegativeReserve(IndexingError):
    """Отрицательный резерв токена."""

    kind = ErrorKind.NEGATIVE_RESERVE

    def __init__(self, token_index: int, value: int):
        self.token_index = token_index
        self.value = value
        super().__init__(f"Negative reserve for token {token_index}: {value}")
