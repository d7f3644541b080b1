# bubble_arcade/games/bubbles/logic/__init__.py
from .difficulty import Tier, POLICIES, get_policy, tier_for_round, exponent_bounds
from .evaluator import EPSILON, evaluate, is_close
from .synthesizer import Expression, synthesize, expressions_for_round
from .round_state import RoundState, Tile
from .validator import Verdict, validate, validate_tile
from .high_score import HighScoreStore, MemoryHighScoreStore, SqlHighScoreStore
from .session_machine import GameRules, Phase, SessionMachine

__all__ = [
    "Tier", "POLICIES", "get_policy", "tier_for_round", "exponent_bounds",
    "EPSILON", "evaluate", "is_close",
    "Expression", "synthesize", "expressions_for_round",
    "RoundState", "Tile",
    "Verdict", "validate", "validate_tile",
    "HighScoreStore", "MemoryHighScoreStore", "SqlHighScoreStore",
    "GameRules", "Phase", "SessionMachine",
]
