"""
Fixed-Point Math — Checked Integer Primitives (18 decimals)

Все величины движка — беззнаковые целые, масштабированные на 10^18 (WAD),
как нативная on-chain точность активов. Модуль даёт детерминированные
примитивы без float:
- Checked add/sub/mul/div с явными ошибками вместо wrap-around
- Целочисленный квадратный корень (Newton, ограниченное число итераций)
- Дробная степень / корень в WAD для показателя суперэллипса u
- Basis-point утилиты (допуски, price impact)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Результат, пересекающий границу модуля, лежит в [0, MAX_UINT256]
   (иначе Overflow / Underflow). Промежуточные произведения внутри mul_div
   могут быть шире 256 бит, как в 512-битном mulDiv.
2. Деление на ноль → DivisionByZero, никогда не fallback
3. Все итеративные алгоритмы ограничены бюджетом итераций
4. Все операции детерминированы и воспроизводимы бит-в-бит

ОЦЕНКА ОШИБКИ wad_pow (часть публичного контракта):
    x^e = x^n · Π x^(1/2^k) для битов дробной части e
    Внутренний масштаб 10^36 (18 guard-цифр). Каждая floor-операция даёт
    относительную ошибку < 1/v, где v — операнд во внутреннем масштабе.
    Суммарная оценка:
        rel_err ≤ (n + 1) · ops / v_min + |ln(x)| · 2^-64
    Если оценка > POW_MAX_RELATIVE_ERROR_WAD / WAD (10^-12) → PrecisionLoss.
    Итог: |wad_pow(x, e) − x^e| ≤ 10^-12 · x^e + 1 wei (финальный floor).
"""

from fractions import Fraction
from typing import Final, Iterable, Sequence

from orbital_amm.core.errors import (
    DivisionByZero,
    InvalidParameter,
    NegativeSquareRoot,
    Overflow,
    PrecisionLoss,
    Underflow,
)

# =============================================================================
# КОНСТАНТЫ МАСШТАБА
# =============================================================================

# 18-decimal fixed point: 1.0 == WAD
WAD: Final[int] = 10**18

# Basis points: 10_000 bp == 100%
BP_PRECISION: Final[int] = 10_000

# Верхняя граница беззнаковых величин (совместимость с U256)
MAX_UINT256: Final[int] = 2**256 - 1


# =============================================================================
# ИТЕРАЦИОННЫЕ БЮДЖЕТЫ И ТОЧНОСТЬ
# =============================================================================

# Максимум итераций Newton для integer_sqrt (сходимость ~log2(bits) итераций)
SQRT_MAX_ITERATIONS: Final[int] = 256

# Guard-цифры для wad_pow: внутренний масштаб = WAD * POW_GUARD = 10^36
POW_GUARD: Final[int] = 10**18
POW_SCALE: Final[int] = WAD * POW_GUARD

# Максимум квадратных корней для дробной части показателя
POW_FRACTION_BITS: Final[int] = 64

# Опубликованная граница относительной ошибки wad_pow: 1e-12 (в WAD)
POW_MAX_RELATIVE_ERROR_WAD: Final[int] = 10**6

# Максимум итераций Newton в solve_power_root
ROOT_MAX_ITERATIONS: Final[int] = 64

# Относительный допуск сходимости solve_power_root: 1e-9 (в WAD)
ROOT_RELATIVE_TOLERANCE_WAD: Final[int] = 10**9


# =============================================================================
# CHECKED ARITHMETIC
# =============================================================================


def ensure_uint(value: int, operation: str) -> int:
    """
    Проверка, что значение помещается в беззнаковые 256 бит.

    Args:
        value: Проверяемое значение
        operation: Имя операции для сообщения об ошибке

    Returns:
        value без изменений

    Raises:
        Underflow: value < 0
        Overflow: value > MAX_UINT256
    """
    if value < 0:
        raise Underflow(operation)
    if value > MAX_UINT256:
        raise Overflow(operation)
    return value


def checked_add(a: int, b: int) -> int:
    """Сложение с проверкой переполнения."""
    return ensure_uint(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    """
    Вычитание без ухода в отрицательную область.

    Examples:
        >>> checked_sub(10, 3)
        7
        >>> checked_sub(3, 10)
        Traceback (most recent call last):
        ...
        orbital_amm.core.errors.Underflow: Arithmetic underflow in sub
    """
    return ensure_uint(a - b, "sub")


def checked_mul(a: int, b: int) -> int:
    """Умножение с проверкой переполнения."""
    return ensure_uint(a * b, "mul")


def checked_div(a: int, b: int) -> int:
    """
    Целочисленное деление (floor).

    Raises:
        DivisionByZero: b == 0
    """
    if b == 0:
        raise DivisionByZero("div")
    return ensure_uint(a // b, "div")


def mul_div(a: int, b: int, denominator: int, round_up: bool = False) -> int:
    """
    Вычисление a * b / denominator с широким промежуточным произведением.

    Args:
        a: Первый множитель
        b: Второй множитель
        denominator: Делитель
        round_up: Округление вверх вместо floor

    Returns:
        floor(a * b / denominator) (или ceil при round_up=True)

    Raises:
        DivisionByZero: denominator == 0
        Overflow / Underflow: результат вне [0, MAX_UINT256]

    Examples:
        >>> mul_div(3, WAD, 2)
        1500000000000000000
        >>> mul_div(1, 1, 3, round_up=True)
        1
    """
    if denominator == 0:
        raise DivisionByZero("mul_div")
    product = a * b
    result = product // denominator
    if round_up and product % denominator:
        result += 1
    return ensure_uint(result, "mul_div")


def checked_sum(values: Iterable[int]) -> int:
    """Сумма последовательности с проверкой каждой частичной суммы."""
    total = 0
    for value in values:
        total = checked_add(total, value)
    return total


def dot_product(a: Sequence[int], b: Sequence[int]) -> int:
    """
    Скалярное произведение двух векторов одинаковой длины.

    Raises:
        InvalidParameter: Длины векторов различаются
    """
    if len(a) != len(b):
        raise InvalidParameter("vectors", f"length mismatch: {len(a)} != {len(b)}")
    return checked_sum(x * y for x, y in zip(a, b))


def clamp(value: int, low: int, high: int) -> int:
    """Ограничение значения диапазоном [low, high]."""
    if low > high:
        raise InvalidParameter("clamp", f"low {low} > high {high}")
    return max(low, min(value, high))


# =============================================================================
# КВАДРАТНЫЙ КОРЕНЬ
# =============================================================================


def integer_sqrt(value: int) -> int:
    """
    Целочисленный квадратный корень (floor) методом Newton.

    Стартовое приближение 2^ceil(bits/2) ≥ sqrt(value), поэтому итерации
    монотонно убывают и останавливаются на floor(sqrt(value)).

    Args:
        value: Неотрицательное целое (ширина не ограничена 256 битами)

    Returns:
        floor(sqrt(value))

    Raises:
        NegativeSquareRoot: value < 0
        PrecisionLoss: Бюджет итераций исчерпан без сходимости

    Examples:
        >>> integer_sqrt(16)
        4
        >>> integer_sqrt(17)
        4
        >>> integer_sqrt(2_000_000_000_000)
        1414213
    """
    if value < 0:
        raise NegativeSquareRoot(value)
    if value < 2:
        return value

    x = 1 << ((value.bit_length() + 1) // 2)
    for _ in range(SQRT_MAX_ITERATIONS):
        y = (x + value // x) // 2
        if y >= x:
            return x
        x = y

    raise PrecisionLoss("integer_sqrt", f"no convergence in {SQRT_MAX_ITERATIONS} iterations")


def sqrt_nearest(value: int) -> int:
    """
    Квадратный корень с округлением к ближайшему целому (half-up).

    Examples:
        >>> sqrt_nearest(1_019_900_000_000)
        1009901
        >>> integer_sqrt(1_019_900_000_000)
        1009900
    """
    root = integer_sqrt(value)
    if value - root * root > root:
        return root + 1
    return root


# =============================================================================
# WAD ARITHMETIC
# =============================================================================


def wad_mul(a: int, b: int) -> int:
    """Произведение двух WAD-величин (floor)."""
    return mul_div(a, b, WAD)


def wad_div(a: int, b: int) -> int:
    """Частное двух WAD-величин (floor)."""
    return mul_div(a, WAD, b)


def wad_pow_int(x: int, n: int) -> int:
    """
    Целая степень WAD-величины через repeated squaring.

    Args:
        x: Основание (WAD)
        n: Неотрицательный целый показатель

    Returns:
        x^n в WAD (floor на каждом шаге)
    """
    if n < 0:
        raise InvalidParameter("n", f"must be non-negative, got {n}")
    result = WAD
    base = x
    while n:
        if n & 1:
            result = wad_mul(result, base)
        n >>= 1
        if n:
            base = wad_mul(base, base)
    return result


def wad_pow(x: int, exponent: Fraction | int) -> int:
    """
    Дробная степень WAD-величины с гарантированной оценкой ошибки.

    Алгоритм:
    1. Целая часть показателя — repeated squaring
    2. Дробная часть — двоичное разложение: для каждого бита k, равного 1,
       результат домножается на x^(1/2^k), полученный цепочкой integer_sqrt
    Все шаги выполняются в масштабе 10^36 и округляются к WAD в конце.

    Args:
        x: Основание (WAD, ≥ 0)
        exponent: Неотрицательный рациональный показатель

    Returns:
        x^exponent в WAD; |ошибка| ≤ 1e-12 · x^exponent + 1 wei

    Raises:
        InvalidParameter: exponent < 0
        Underflow: x < 0
        PrecisionLoss: Оценка относительной ошибки превышает 1e-12
        Overflow: Результат > MAX_UINT256

    Examples:
        >>> wad_pow(4 * WAD, Fraction(1, 2))
        2000000000000000000
        >>> wad_pow(2 * WAD, 3)
        8000000000000000000
    """
    exponent = Fraction(exponent)
    if exponent < 0:
        raise InvalidParameter("exponent", f"must be non-negative, got {exponent}")
    if x < 0:
        raise Underflow("wad_pow")
    if exponent == 0:
        return WAD
    if x == 0:
        return 0

    integer_part = exponent.numerator // exponent.denominator
    fraction = exponent - integer_part

    scaled = x * POW_GUARD
    result = POW_SCALE
    smallest = min(scaled, POW_SCALE)
    operations = 0

    # Целая часть: repeated squaring
    base = scaled
    n = integer_part
    while n:
        if n & 1:
            result = result * base // POW_SCALE
            operations += 1
            smallest = min(smallest, result)
        n >>= 1
        if n:
            base = base * base // POW_SCALE
            operations += 1
            smallest = min(smallest, base)

    # Дробная часть: цепочка квадратных корней
    root = scaled
    bits = 0
    while fraction and bits < POW_FRACTION_BITS:
        root = integer_sqrt(root * POW_SCALE)
        operations += 1
        bits += 1
        fraction *= 2
        if fraction >= 1:
            fraction -= 1
            result = result * root // POW_SCALE
            operations += 1
            smallest = min(smallest, root, result)

    if smallest == 0:
        raise PrecisionLoss("wad_pow", f"intermediate underflow for x={x}, exponent={exponent}")

    error_bound = (integer_part + 1) * operations * WAD // smallest
    if fraction:
        # Усечение двоичного разложения: |ln x| · 2^-64
        log_span = abs(x.bit_length() - WAD.bit_length()) + 1
        error_bound += (log_span * WAD) >> POW_FRACTION_BITS
    if error_bound > POW_MAX_RELATIVE_ERROR_WAD:
        raise PrecisionLoss(
            "wad_pow",
            f"relative error bound {error_bound}/{WAD} exceeds {POW_MAX_RELATIVE_ERROR_WAD}/{WAD}",
        )

    return ensure_uint(result // POW_GUARD, "wad_pow")


def wad_root(x: int, exponent: Fraction | int) -> int:
    """
    Корень степени exponent из WAD-величины: x^(1/exponent).

    Raises:
        DivisionByZero: exponent == 0
    """
    exponent = Fraction(exponent)
    if exponent == 0:
        raise DivisionByZero("wad_root")
    return wad_pow(x, 1 / exponent)


def solve_power_root(target: int, exponent: Fraction | int) -> int:
    """
    Решение y^exponent = target в WAD с ограниченным Newton-уточнением.

    Начальное приближение — wad_root(target, exponent); затем не более
    ROOT_MAX_ITERATIONS шагов Newton по f(y) = y^u − target до достижения
    относительного допуска ROOT_RELATIVE_TOLERANCE_WAD (1e-9).

    Args:
        target: Правая часть (WAD, ≥ 0)
        exponent: Показатель u ≥ 1

    Returns:
        y (WAD), такой что |y^u − target| ≤ 1e-9 · target + 1

    Raises:
        InvalidParameter: exponent < 1
        PrecisionLoss: Нет сходимости в пределах бюджета итераций
    """
    exponent = Fraction(exponent)
    if exponent < 1:
        raise InvalidParameter("exponent", f"must be >= 1, got {exponent}")
    if target < 0:
        raise Underflow("solve_power_root")
    if target == 0:
        return 0

    tolerance = target * ROOT_RELATIVE_TOLERANCE_WAD // WAD + 1
    y = wad_root(target, exponent)

    for _ in range(ROOT_MAX_ITERATIONS):
        diff = wad_pow(y, exponent) - target
        if abs(diff) <= tolerance:
            return y

        derivative = wad_pow(y, exponent - 1) * exponent.numerator // exponent.denominator
        if derivative == 0:
            raise PrecisionLoss("solve_power_root", f"zero derivative at y={y}")

        step = diff * WAD // derivative
        if step == 0:
            step = 1 if diff > 0 else -1
        y = max(y - step, 0)

    raise PrecisionLoss(
        "solve_power_root", f"no convergence in {ROOT_MAX_ITERATIONS} iterations (target={target})"
    )


# =============================================================================
# BASIS POINTS
# =============================================================================


def apply_bp(value: int, bp: int) -> int:
    """
    Доля value в basis points (floor).

    Examples:
        >>> apply_bp(1_000_000, 30)
        3000
    """
    if bp < 0:
        raise InvalidParameter("bp", f"must be non-negative, got {bp}")
    return mul_div(value, bp, BP_PRECISION)


def within_tolerance(actual: int, expected: int, tolerance_bp: int) -> bool:
    """
    Проверка |actual − expected| ≤ expected · tolerance_bp / 10_000.

    Args:
        actual: Фактическое значение
        expected: Ожидаемое значение (база допуска)
        tolerance_bp: Допуск в basis points

    Returns:
        True если отклонение в пределах допуска
    """
    if tolerance_bp < 0:
        raise InvalidParameter("tolerance_bp", f"must be non-negative, got {tolerance_bp}")
    return abs(actual - expected) * BP_PRECISION <= expected * tolerance_bp


def approx_eq_bp(a: int, b: int, tolerance_bp: int) -> bool:
    """Симметричное сравнение: отклонение относительно большего из значений."""
    return within_tolerance(min(a, b), max(a, b), tolerance_bp)


def bp_change(before: int, after: int) -> int:
    """
    Относительное изменение в basis points: |after − before| · 10_000 / before.

    Raises:
        DivisionByZero: before == 0

    Examples:
        >>> bp_change(WAD, WAD * 99 // 100)
        100
    """
    if before == 0:
        raise DivisionByZero("bp_change")
    return abs(after - before) * BP_PRECISION // before
