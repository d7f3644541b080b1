# bubble_arcade/games/bubbles/logic/simulate.py
"""Headless play-through on a fake clock with a scripted player."""
from __future__ import annotations
import random
from typing import Any, Dict, Optional

from ...core.clock import FakeClock, Scheduler
from .high_score import HighScoreStore, MemoryHighScoreStore
from .session_machine import GameRules, Phase, SessionMachine

MAX_STEPS = 200_000

def _pick(m: SessionMachine, wrong: bool):
    board = m.round
    expected = board.expected
    open_tiles = [t for t in board.tiles if not t.resolved]
    target = board.matching_tile(expected)
    if wrong:
        for t in open_tiles:
            if t is not target:
                return t.id, None
        return None, expected + 1
    if target is not None:
        return target.id, None
    return None, expected

def simulate_session(rules: Optional[GameRules] = None, seed: Optional[int] = None,
                     miss_every: int = 0, think_time: float = 0.5,
                     high_scores: Optional[HighScoreStore] = None) -> Dict[str, Any]:
    """
    Play one full game. Every ``miss_every``-th pick is deliberately wrong
    (0 = never). Returns the machine's summary plus the final snapshot.
    """
    clock = FakeClock()
    m = SessionMachine(
        rules=rules or GameRules(),
        scheduler=Scheduler(clock),
        high_scores=high_scores if high_scores is not None else MemoryHighScoreStore(),
        rng=random.Random(seed),
    )
    m.start_game()
    picks = 0
    for _ in range(MAX_STEPS):
        if m.game_over:
            break
        clock.advance(think_time)
        m.pump()
        if m.phase is not Phase.ROUND_ACTIVE:
            continue
        picks += 1
        tile_id, value = _pick(m, wrong=bool(miss_every) and picks % miss_every == 0)
        if tile_id is not None:
            m.select_tile(tile_id)
        else:
            m.select(value)
    else:
        raise RuntimeError("simulation did not reach game over")

    out = m.summary()
    out["state"] = m.snapshot()
    out["picks"] = picks
    out["elapsed_seconds"] = clock.time()
    return out
