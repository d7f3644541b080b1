# bubble_arcade/games/core/game_core.py
from __future__ import annotations
from typing import Dict, Any, Optional
import uuid
import logging

logger = logging.getLogger(__name__)

# ============================================================
# Session & identity helpers
# ============================================================

SESSION_COOKIE = "session_id"

def get_or_create_session_id(req) -> str:
    """
    Stable per-user (and optionally per-tab) session key:
      cookie 'session_id' (if present) else a new uuid4,
      optionally suffixed with ':<client_id>' (arg/body/header) to isolate tabs.
    """
    base = req.cookies.get(SESSION_COOKIE) or str(uuid.uuid4())

    client = req.args.get("client_id")
    if not client and req.is_json:
        j = req.get_json(silent=True) or {}
        client = j.get("client_id")
    if not client:
        client = req.headers.get("X-Client-Session")

    if client:
        return f"{base}:{str(client)[:64]}"
    return base

def base_session_id(sid: str) -> str:
    """Cookie part of a session key (drops the ':<client_id>' suffix)."""
    return sid.split(":", 1)[0]


# ============================================================
# Stats (shared counters for timed round games)
# ============================================================

def default_stats() -> Dict[str, int]:
    return {
        # round-level
        "rounds_played": 0,
        "rounds_completed": 0,
        "rounds_timed_out": 0,

        # action-level
        "answer_attempts": 0,
        "answer_correct": 0,
        "answer_wrong": 0,
        "penalty_seconds": 0,
    }

def stats_payload(stats: Dict[str, Any]) -> Dict[str, int]:
    return {k: int(stats.get(k, 0)) for k in default_stats()}

def bump_attempt(stats: Dict[str, Any], correct: bool) -> None:
    stats["answer_attempts"] = int(stats.get("answer_attempts", 0)) + 1
    if correct:
        stats["answer_correct"] = int(stats.get("answer_correct", 0)) + 1
    else:
        stats["answer_wrong"] = int(stats.get("answer_wrong", 0)) + 1

def bump_penalty(stats: Dict[str, Any], seconds: int) -> None:
    stats["penalty_seconds"] = int(stats.get("penalty_seconds", 0)) + int(seconds)

def bump_round_started(stats: Dict[str, Any]) -> None:
    stats["rounds_played"] = int(stats.get("rounds_played", 0)) + 1

def bump_round_outcome(stats: Dict[str, Any], outcome: Optional[str]) -> None:
    if outcome == "completed":
        stats["rounds_completed"] = int(stats.get("rounds_completed", 0)) + 1
    elif outcome in ("timeout", "penalty_timeout"):
        stats["rounds_timed_out"] = int(stats.get("rounds_timed_out", 0)) + 1


__all__ = [
    "SESSION_COOKIE", "get_or_create_session_id", "base_session_id",
    "default_stats", "stats_payload",
    "bump_attempt", "bump_penalty", "bump_round_started", "bump_round_outcome",
]
