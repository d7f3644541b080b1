# bubble_arcade/games/bubbles/logic/validator.py
"""Ordered-selection checks against the round's ascending target order."""
from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Optional

from ...core.coerce_utils import coerce_float, coerce_int
from .evaluator import EPSILON, is_close
from .round_state import RoundState, Tile

logger = logging.getLogger(__name__)


class Verdict(str, Enum):
    IGNORED = "ignored"        # input disabled, no round, or tile already resolved
    CORRECT = "correct"
    COMPLETE = "complete"      # correct, and it was the last one
    INCORRECT = "incorrect"    # wrong value or malformed input -> penalty


def validate(round_state: Optional[RoundState], selected: Any, accepting_input: bool,
             eps: float = EPSILON) -> Verdict:
    """
    Check a raw selected value. ``accepting_input`` is checked before anything
    else so late events after a timeout are dropped without side effects.
    """
    if not accepting_input or round_state is None or round_state.complete:
        logger.debug("selection %r ignored (accepting_input=%s)", selected, accepting_input)
        return Verdict.IGNORED

    value = coerce_float(selected)
    if value is None:
        logger.debug("malformed selection %r counts as a miss", selected)
        return Verdict.INCORRECT

    expected = round_state.expected
    if not is_close(value, expected, eps):
        return Verdict.INCORRECT

    round_state.advance(round_state.matching_tile(expected, eps))
    return Verdict.COMPLETE if round_state.complete else Verdict.CORRECT


def validate_tile(round_state: Optional[RoundState], tile_id: Any, accepting_input: bool,
                  eps: float = EPSILON) -> Verdict:
    """Same check, addressed by tile id; resolved tiles no longer take input."""
    if not accepting_input or round_state is None or round_state.complete:
        return Verdict.IGNORED

    tid = coerce_int(tile_id)
    tile: Optional[Tile] = round_state.tile(tid) if tid is not None else None
    if tile is None:
        logger.debug("unknown tile id %r counts as a miss", tile_id)
        return Verdict.INCORRECT
    if tile.resolved:
        return Verdict.IGNORED

    # two open tiles can both sit within tolerance of the expected value;
    # only the closer one is the right tap
    if round_state.matching_tile(round_state.expected, eps) is not tile:
        return Verdict.INCORRECT

    round_state.advance(tile)
    return Verdict.COMPLETE if round_state.complete else Verdict.CORRECT
