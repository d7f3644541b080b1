# bubble_arcade/games/bubbles/logic/evaluator.py
import math
import operator
from typing import Callable, Dict, Union

Number = Union[int, float]

EPSILON = 0.01          # selection tolerance
RESULT_DECIMALS = 2     # what the player is shown / compared against
DEDUP_DECIMALS = 3      # distinctness key

_BINARY: Dict[str, Callable[[Number, Number], Number]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
}

def evaluate(a: Number, b: Number, op: str) -> float:
    """
    Evaluate ``a op b``. +,-,*,/ are rounded to 2 decimals; '/' by zero is inf.
    Unknown operators give nan so callers reject them like any non-finite result.
    """
    if op in _BINARY:
        return round(_BINARY[op](a, b), RESULT_DECIMALS)
    if op == "/":
        return math.inf if b == 0 else round(a / b, RESULT_DECIMALS)
    if op == "^":
        try:
            return round(float(a) ** b, RESULT_DECIMALS)
        except OverflowError:
            return math.inf
    return math.nan

def result_key(value: float) -> float:
    return round(value, DEDUP_DECIMALS)

def is_close(a: float, b: float, eps: float = EPSILON) -> bool:
    return abs(a - b) < eps

def format_operand(x: Number) -> str:
    """7 -> '7', 7.0 -> '7', 2.5 -> '2.5'."""
    if isinstance(x, float) and x.is_integer():
        return str(int(x))
    return str(x)

def format_expression(a: Number, b: Number, op: str) -> str:
    return f"{format_operand(a)}{op}{format_operand(b)}"

def format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.{RESULT_DECIMALS}f}".rstrip("0").rstrip(".")
