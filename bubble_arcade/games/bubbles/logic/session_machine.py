# bubble_arcade/games/bubbles/logic/session_machine.py
"""
Session state machine for the bubble order game.

    idle -> round_intro -> round_active -> round_resolved -> round_intro ...
    round_intro -> game_over  (once the round counter passes the total)

Everything that changes state goes through ``dispatch``: player input
(``Select``), the 1-second countdown (``Tick``), a restart (``Restart``) and
the two deferred transitions (``BeginRound`` after the intro pause,
``Advance`` after a round resolves). Deferred events carry the generation
they were scheduled in; the generation moves on every new round and every
restart, so a callback left over from an earlier round or game is a no-op.
"""
from __future__ import annotations
import logging
import random
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ...core.clock import Scheduler, TimerHandle
from ...core.game_core import (
    default_stats,
    stats_payload,
    bump_attempt,
    bump_penalty,
    bump_round_started,
    bump_round_outcome,
)
from ...core.playflow import Playflow
from .difficulty import get_policy, tier_for_round
from .high_score import HighScoreStore, read_high_score
from .round_state import RoundState
from .synthesizer import synthesize
from .validator import Verdict, validate, validate_tile

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    ROUND_INTRO = "round_intro"
    ROUND_ACTIVE = "round_active"
    ROUND_RESOLVED = "round_resolved"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class GameRules:
    total_rounds: int = 25
    time_per_round: int = 15          # seconds
    penalty_seconds: int = 2
    points_per_sequence: int = 10
    bubbles_per_round: int = 3
    policy: str = "extended"
    tick_seconds: float = 1.0
    intro_delay: float = 0.18
    complete_delay: float = 0.42
    penalty_timeout_delay: float = 0.25
    timeout_delay: float = 0.35

    def __post_init__(self):
        for name in ("total_rounds", "time_per_round", "points_per_sequence", "bubbles_per_round"):
            if int(getattr(self, name)) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)!r}")
        if self.penalty_seconds < 0:
            raise ValueError("penalty_seconds must be >= 0")
        if self.tick_seconds <= 0:
            raise ValueError("tick_seconds must be positive")
        # canonical policy name; raises on unknown names
        object.__setattr__(self, "policy", get_policy(self.policy).name)

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "GameRules":
        defaults = cls.__dataclass_fields__
        def pick(key: str, field_name: str):
            return cfg.get(key, defaults[field_name].default)
        return cls(
            total_rounds=int(pick("BUBBLES_TOTAL_ROUNDS", "total_rounds")),
            time_per_round=int(pick("BUBBLES_TIME_PER_ROUND", "time_per_round")),
            penalty_seconds=int(pick("BUBBLES_PENALTY_SECONDS", "penalty_seconds")),
            points_per_sequence=int(pick("BUBBLES_POINTS_PER_SEQUENCE", "points_per_sequence")),
            bubbles_per_round=int(pick("BUBBLES_PER_ROUND", "bubbles_per_round")),
            policy=str(pick("BUBBLES_POLICY", "policy")),
        )


# ---- events ----

@dataclass(frozen=True)
class Restart:
    pass

@dataclass(frozen=True)
class Select:
    value: Any = None
    tile_id: Any = None

@dataclass(frozen=True)
class Tick:
    token: int

@dataclass(frozen=True)
class BeginRound:
    token: int

@dataclass(frozen=True)
class Advance:
    token: int


class SessionMachine:
    def __init__(self, rules: Optional[GameRules] = None, scheduler: Optional[Scheduler] = None,
                 high_scores: Optional[HighScoreStore] = None, rng: Optional[random.Random] = None,
                 session_uuid: Optional[str] = None) -> None:
        self.rules = rules or GameRules()
        self.scheduler = scheduler or Scheduler()
        self.high_scores = high_scores
        self.rng = rng or random.Random()
        self.session_uuid = session_uuid or str(uuid.uuid4())

        # refreshed on every restart; written at most once per game over
        self.best_score = read_high_score(high_scores)
        # pump and dispatch hold this; callers may hold it across a compound step
        self.lock = threading.RLock()
        self.last_seen = self.scheduler.now()

        self.generation = 0
        self._countdown: Optional[TimerHandle] = None
        self._reset()

    def _reset(self) -> None:
        self.phase = Phase.IDLE
        self.current_round = 0
        self.score = 0
        self.remaining = self.rules.time_per_round
        self.accepting_input = False
        self.round: Optional[RoundState] = None
        self.final_score: Optional[int] = None
        self.new_high_score = False
        self.last_verdict: Optional[Verdict] = None
        self.stats: Dict[str, int] = default_stats()
        self.playflow = Playflow(session_uuid=self.session_uuid)

    # ------------------------------------------------------------
    # entry points
    # ------------------------------------------------------------
    def start_game(self) -> None:
        self.dispatch(Restart())

    def select(self, value: Any) -> Verdict:
        return self.dispatch(Select(value=value))

    def select_tile(self, tile_id: Any) -> Verdict:
        return self.dispatch(Select(tile_id=tile_id))

    def pump(self) -> int:
        """Apply every timer event that has fallen due."""
        with self.lock:
            return self.scheduler.run_due()

    def dispatch(self, event) -> Optional[Verdict]:
        with self.lock:
            return self._dispatch(event)

    def _dispatch(self, event) -> Optional[Verdict]:
        if isinstance(event, Select):
            return self._on_select(event)
        if isinstance(event, Tick):
            self._on_tick(event.token)
        elif isinstance(event, Advance):
            self._on_advance(event.token)
        elif isinstance(event, BeginRound):
            self._on_begin_round(event.token)
        elif isinstance(event, Restart):
            self._on_restart()
        else:
            raise TypeError(f"unknown event {event!r}")
        return None

    # ------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------
    def _now_ms(self) -> int:
        return int(self.scheduler.now() * 1000)

    def _stop_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

    def _on_restart(self) -> None:
        self._stop_countdown()
        self.generation += 1
        self._reset()
        self.best_score = read_high_score(self.high_scores)
        logger.info("bubbles session %s: new game (%d rounds, policy=%s)",
                    self.session_uuid, self.rules.total_rounds, self.rules.policy)
        self._next_round()

    def _next_round(self) -> None:
        self._stop_countdown()
        self.accepting_input = False
        self.current_round += 1
        if self.current_round > self.rules.total_rounds:
            self._end_game()
            return
        self.generation += 1
        token = self.generation
        self.phase = Phase.ROUND_INTRO
        self.round = None
        self.scheduler.call_later(self.rules.intro_delay, lambda: self.dispatch(BeginRound(token)))

    def _on_begin_round(self, token: int) -> None:
        if token != self.generation or self.phase is not Phase.ROUND_INTRO:
            logger.debug("stale BeginRound token=%d (generation=%d)", token, self.generation)
            return
        tier = tier_for_round(self.current_round, self.rules.policy)
        expressions = synthesize(tier, self.rules.bubbles_per_round, rng=self.rng)
        self.round = RoundState.build(self.current_round, expressions, rng=self.rng, tier_name=tier.name)
        self.remaining = self.rules.time_per_round
        self.playflow.start_round(self.current_round, tier.name, len(expressions), at_ms=self._now_ms())
        bump_round_started(self.stats)
        logger.debug("round %d/%d: %s", self.current_round, self.rules.total_rounds,
                     [e.text for e in expressions])

        if not expressions:
            # nothing to order; move on rather than sit out the clock
            self._resolve("timeout", self.rules.timeout_delay)
            return

        self.accepting_input = True
        self.phase = Phase.ROUND_ACTIVE
        self._countdown = self.scheduler.call_every(self.rules.tick_seconds,
                                                    lambda: self.dispatch(Tick(token)))

    def _on_tick(self, token: int) -> None:
        if token != self.generation or self.phase is not Phase.ROUND_ACTIVE:
            return
        self.remaining = max(0, self.remaining - 1)
        if self.remaining <= 0:
            logger.debug("round %d timed out", self.current_round)
            self._resolve("timeout", self.rules.timeout_delay)

    def _on_select(self, event: Select) -> Verdict:
        accepting = self.accepting_input and self.phase is Phase.ROUND_ACTIVE
        if event.tile_id is not None:
            verdict = validate_tile(self.round, event.tile_id, accepting)
        else:
            verdict = validate(self.round, event.value, accepting)
        self.last_verdict = verdict
        if verdict is Verdict.IGNORED:
            return verdict

        correct = verdict in (Verdict.CORRECT, Verdict.COMPLETE)
        bump_attempt(self.stats, correct=correct)
        self.playflow.selection(correct)

        if verdict is Verdict.COMPLETE:
            self.score += self.rules.points_per_sequence
            self._resolve("completed", self.rules.complete_delay, points=self.rules.points_per_sequence)
        elif verdict is Verdict.INCORRECT:
            self._apply_penalty()
        return verdict

    def _apply_penalty(self) -> None:
        self.remaining = max(0, self.remaining - self.rules.penalty_seconds)
        bump_penalty(self.stats, self.rules.penalty_seconds)
        if self.remaining <= 0:
            self._resolve("penalty_timeout", self.rules.penalty_timeout_delay)

    def _resolve(self, outcome: str, delay: float, points: int = 0) -> None:
        self._stop_countdown()
        self.accepting_input = False
        self.phase = Phase.ROUND_RESOLVED
        self.playflow.finish_round(outcome, points=points, at_ms=self._now_ms())
        bump_round_outcome(self.stats, outcome)
        token = self.generation
        self.scheduler.call_later(delay, lambda: self.dispatch(Advance(token)))

    def _on_advance(self, token: int) -> None:
        if token != self.generation or self.phase is not Phase.ROUND_RESOLVED:
            logger.debug("stale Advance token=%d (generation=%d)", token, self.generation)
            return
        self._next_round()

    def _end_game(self) -> None:
        self._stop_countdown()
        self.accepting_input = False
        self.phase = Phase.GAME_OVER
        self.round = None
        self.final_score = self.score
        if self.high_scores is not None:
            # other sessions share the store; the cached best may be stale
            self.new_high_score = self.high_scores.submit(self.score)
            self.best_score = read_high_score(self.high_scores)
        else:
            self.new_high_score = self.score > self.best_score
        if self.new_high_score:
            self.best_score = max(self.best_score, self.score)
        logger.info("bubbles session %s: game over, score=%d best=%d",
                    self.session_uuid, self.score, self.best_score)

    # ------------------------------------------------------------
    # readout
    # ------------------------------------------------------------
    @property
    def game_over(self) -> bool:
        return self.phase is Phase.GAME_OVER

    def snapshot(self, reveal: bool = False) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "round": min(self.current_round, self.rules.total_rounds),
            "total_rounds": self.rules.total_rounds,
            "score": self.score,
            "remaining": self.remaining,
            "accepting_input": self.accepting_input,
            "board": self.round.to_dict(reveal=reveal) if self.round else None,
            "high_score": self.best_score,
            "final_score": self.final_score,
            "new_high_score": self.new_high_score,
            "last_verdict": self.last_verdict.value if self.last_verdict else None,
            "stats": stats_payload(self.stats),
        }

    def summary(self) -> Dict[str, Any]:
        snap = self.playflow.summary()
        snap["score"] = self.score
        snap["final_score"] = self.final_score
        snap["high_score"] = self.best_score
        snap["stats"] = stats_payload(self.stats)
        return snap
