# bubble_arcade/games/bubbles/logic/difficulty.py
"""
Round index -> difficulty tier.

Both policies are plain data tables read by the same lookup: a list of
bands (last round covered, operators, operand range, floats on/off) plus a
shared exponent table. ``extended`` is the default game; ``ramped`` is the
integer-only variant that unlocks one operator at a time.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ...core.coerce_utils import normalize_policy

ADD, SUB, MUL, DIV, POW = "+", "-", "*", "/", "^"
ALL_OPERATORS: Tuple[str, ...] = (ADD, SUB, MUL, DIV, POW)

@dataclass(frozen=True)
class Tier:
    policy: str
    operators: Tuple[str, ...]
    operand_min: int
    operand_max: int
    float_enabled: bool
    max_magnitude: float
    pow_base_max: int
    pow_exp_min: int
    pow_exp_max: int

    @property
    def name(self) -> str:
        kind = "float" if self.float_enabled else "int"
        return f"{self.policy}:{''.join(self.operators)}:{self.operand_min}-{self.operand_max}:{kind}"

@dataclass(frozen=True)
class Band:
    last_round: Optional[int]          # None = open-ended
    operators: Tuple[str, ...]
    operand_min: int
    operand_max: int
    float_enabled: bool = False

@dataclass(frozen=True)
class Policy:
    name: str
    bands: Tuple[Band, ...]
    max_magnitude: float

# (last round covered, base cap, exponent cap); exponents start at 2
EXPONENT_BANDS: Tuple[Tuple[Optional[int], int, int], ...] = (
    (9, 5, 3),
    (19, 9, 4),
    (None, 9, 6),
)
POW_EXP_MIN = 2

POLICIES: Dict[str, Policy] = {
    "extended": Policy(
        name="extended",
        bands=(
            Band(7, ALL_OPERATORS, 1, 12, False),
            Band(15, ALL_OPERATORS, 2, 30, True),
            Band(None, ALL_OPERATORS, 3, 60, True),
        ),
        max_magnitude=999999,
    ),
    "ramped": Policy(
        name="ramped",
        bands=(
            Band(3, (ADD,), 1, 10),
            Band(8, (ADD, SUB), 1, 20),
            Band(15, (ADD, SUB, MUL), 2, 20),
            Band(None, (ADD, SUB, MUL, DIV), 2, 30),
        ),
        max_magnitude=999,
    ),
}

def get_policy(name: Optional[str]) -> Policy:
    key = normalize_policy(name)
    try:
        return POLICIES[key]
    except KeyError:
        raise ValueError(f"Unknown difficulty policy {name!r}; expected one of {sorted(POLICIES)}") from None

def _pick(bands, round_no: int):
    for band in bands:
        last = band[0] if isinstance(band, tuple) else band.last_round
        if last is None or round_no <= last:
            return band
    return bands[-1]

def exponent_bounds(round_no: int) -> Tuple[int, int, int]:
    """(base cap, min exponent, max exponent) for a round."""
    _, base_cap, exp_cap = _pick(EXPONENT_BANDS, max(1, int(round_no)))
    return base_cap, POW_EXP_MIN, exp_cap

def tier_for_round(round_no: int, policy: Optional[str] = "extended") -> Tier:
    p = get_policy(policy)
    r = max(1, int(round_no))
    band = _pick(p.bands, r)
    base_cap, exp_min, exp_max = exponent_bounds(r)
    return Tier(
        policy=p.name,
        operators=band.operators,
        operand_min=band.operand_min,
        operand_max=band.operand_max,
        float_enabled=band.float_enabled,
        max_magnitude=p.max_magnitude,
        pow_base_max=min(band.operand_max, base_cap),
        pow_exp_min=exp_min,
        pow_exp_max=exp_max,
    )
