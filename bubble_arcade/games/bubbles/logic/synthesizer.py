# bubble_arcade/games/bubbles/logic/synthesizer.py
"""
Expression synthesis for one round.

Operators are dealt round-robin so a round of three shows three different
operators. Each slot gets a bounded number of tries to land a result that is
finite, within the tier's magnitude bound and not already on the board (after
rounding to 3 decimals); a slot that runs out of tries hands its turn to the
next operator. A global guard caps the whole round, and if it trips the round
simply goes ahead with fewer expressions.
"""
from __future__ import annotations
import logging
import math
import random
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from .difficulty import Tier, DIV, POW, tier_for_round
from .evaluator import Number, evaluate, format_expression, result_key

logger = logging.getLogger(__name__)

ATTEMPTS_PER_SLOT = 500
GLOBAL_GUARD = 5000
FLOAT_PROBABILITY = 0.5
DIV_FLOAT_DENOM_CAP = 15
DIV_INT_DENOM_CAP = 12

@dataclass(frozen=True)
class Expression:
    text: str
    value: float
    operator: str
    left: Number
    right: Number

    def to_dict(self):
        return {"expr": self.text, "value": self.value, "operator": self.operator}


def random_operand(rng: random.Random, lo: Number, hi: Number, as_float: bool = False) -> Number:
    """Integer in [lo, hi], or (half the time, when allowed) a one-decimal float."""
    if as_float and rng.random() < FLOAT_PROBABILITY:
        return round(rng.uniform(lo, hi), 1)
    return rng.randint(int(math.ceil(lo)), int(math.floor(hi)))


def draw_operands(tier: Tier, op: str, rng: random.Random) -> Tuple[Number, Number]:
    lo, hi = tier.operand_min, tier.operand_max

    if op == DIV:
        if tier.float_enabled:
            b = random_operand(rng, max(0.5, lo), max(1, min(DIV_FLOAT_DENOM_CAP, hi)), True)
            if b == 0:
                b = 1
            a = round(b * rng.randint(2, max(3, int(math.floor(hi / b)))), 1)
        else:
            b = rng.randint(max(1, lo), max(2, min(DIV_INT_DENOM_CAP, hi)))
            a = b * rng.randint(2, max(3, hi // b))
        return a, b

    if op == POW:
        a = rng.randint(lo, max(lo, tier.pow_base_max))
        b = rng.randint(tier.pow_exp_min, tier.pow_exp_max)
        return a, b

    return (random_operand(rng, lo, hi, tier.float_enabled),
            random_operand(rng, lo, hi, tier.float_enabled))


def _acceptable(value: float, tier: Tier, seen: Set[float]) -> bool:
    if not math.isfinite(value):
        return False
    if abs(value) > tier.max_magnitude:
        return False
    return result_key(value) not in seen


def synthesize(tier: Tier, count: int, rng: Optional[random.Random] = None,
               attempts_per_slot: int = ATTEMPTS_PER_SLOT,
               global_guard: int = GLOBAL_GUARD) -> List[Expression]:
    """Up to ``count`` expressions with pairwise distinct results."""
    rng = rng or random.Random()
    ops = tier.operators
    seen: Set[float] = set()
    items: List[Expression] = []
    guard = 0
    rotation = 0  # bumped each time a slot gives up on its operator

    while len(items) < count and guard < global_guard:
        op = ops[(len(items) + rotation) % len(ops)]
        placed = False
        for _ in range(attempts_per_slot):
            if guard >= global_guard:
                break
            guard += 1
            a, b = draw_operands(tier, op, rng)
            value = float(evaluate(a, b, op))
            if not _acceptable(value, tier, seen):
                continue
            seen.add(result_key(value))
            items.append(Expression(format_expression(a, b, op), value, op, a, b))
            placed = True
            break
        if not placed:
            logger.debug("slot %d gave up on operator %r after %d tries", len(items), op, attempts_per_slot)
            rotation += 1

    if len(items) < count:
        logger.warning("synthesizer guard exhausted: %d/%d expressions for tier %s",
                       len(items), count, tier.name)
    return items


def expressions_for_round(round_no: int, count: int, policy: str = "extended",
                          rng: Optional[random.Random] = None) -> List[Expression]:
    return synthesize(tier_for_round(round_no, policy), count, rng=rng)
