# bubble_arcade/games/bubbles/routes.py
from __future__ import annotations

import logging
import random
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from flask import current_app, g, jsonify, request

from bubble_arcade import limiter
from bubble_arcade.db import db
from bubble_arcade.games.core.clock import RealClock, Scheduler
from bubble_arcade.games.core.game_core import (
    SESSION_COOKIE,
    base_session_id,
    get_or_create_session_id,
)
from bubble_arcade.games.core.store_registry import get_store

from . import bp
from .logic.high_score import DEFAULT_KEY, SqlHighScoreStore, read_high_score
from .logic.session_machine import GameRules, SessionMachine

logger = logging.getLogger(__name__)

CLOCK_KEY = "bubbles.clock"
SESSIONS_KEY = "bubbles.sessions"
HIGH_SCORES_KEY = "bubbles.high_scores"

# guards the session registry; each machine carries its own lock
_registry_lock = threading.Lock()

# -----------------------------------------------------------------------------
# Per-app singletons
# -----------------------------------------------------------------------------
def game_clock():
    return get_store(CLOCK_KEY, RealClock)

def high_score_store():
    key = current_app.config.get("BUBBLES_HIGH_SCORE_KEY") or DEFAULT_KEY
    return get_store(HIGH_SCORES_KEY, lambda: SqlHighScoreStore(db, key))

def sessions() -> Dict[str, SessionMachine]:
    return get_store(SESSIONS_KEY, dict)

def new_machine(session_uuid: Optional[str] = None) -> SessionMachine:
    seed = current_app.config.get("BUBBLES_SEED")
    rng = random.Random(seed) if seed is not None else random.Random()
    return SessionMachine(
        rules=GameRules.from_config(current_app.config),
        scheduler=Scheduler(game_clock()),
        high_scores=high_score_store(),
        rng=rng,
        session_uuid=session_uuid,
    )

# -----------------------------------------------------------------------------
# Small per-request helpers
# -----------------------------------------------------------------------------
def _sid() -> str:
    if "bubbles_sid" not in g:
        g.bubbles_sid = get_or_create_session_id(request)
    return g.bubbles_sid

def _evict(reg: Dict[str, SessionMachine], now: float) -> None:
    """Drop sessions idle past the TTL, then the least recently seen ones over the cap."""
    ttl = float(current_app.config.get("BUBBLES_SESSION_TTL") or 0)
    cap = int(current_app.config.get("BUBBLES_MAX_SESSIONS") or 0)
    stale = [sid for sid, m in reg.items() if ttl and now - m.last_seen > ttl]
    if cap:
        by_age = sorted((sid for sid in reg if sid not in stale), key=lambda s: reg[s].last_seen)
        stale.extend(by_age[:max(0, len(by_age) - cap + 1)])
    for sid in stale:
        m = reg.pop(sid)
        with m.lock:
            m.scheduler.cancel_all()
        logger.info("evicted bubbles session sid=%s phase=%s", sid, m.phase.value)

def _machine() -> SessionMachine:
    """Caller's machine, created on first use."""
    sid = _sid()
    now = game_clock().time()
    with _registry_lock:
        reg = sessions()
        m = reg.get(sid)
        if m is None:
            _evict(reg, now)
            m = reg[sid] = new_machine()
            logger.info("new bubbles session sid=%s uuid=%s", sid, m.session_uuid)
        m.last_seen = now
    return m

@contextmanager
def _session() -> Iterator[SessionMachine]:
    """Hold the caller's machine for the whole request, with due timer events applied."""
    m = _machine()
    with m.lock:
        m.pump()
        yield m

@bp.after_request
def _keep_cookie(resp):
    sid = g.get("bubbles_sid")
    if sid and not request.cookies.get(SESSION_COOKIE):
        resp.set_cookie(SESSION_COOKIE, base_session_id(sid), httponly=True, samesite="Lax")
    return resp

# -----------------------------------------------------------------------------
# API
# -----------------------------------------------------------------------------
@bp.post("/api/start")
def api_start():
    with _session() as m:
        m.start_game()
        state = m.snapshot()
    logger.info("api_start sid=%s", _sid())
    return jsonify({"ok": True, "state": state}), 200

@bp.get("/api/state")
def api_state():
    with _session() as m:
        state = m.snapshot()
    return jsonify({"ok": True, "state": state}), 200

@bp.post("/api/select")
@limiter.limit("20 per second")
def api_select():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or ("tile_id" not in data and "value" not in data):
        return jsonify({"ok": False, "reason": "Expected 'tile_id' or 'value'"}), 400

    with _session() as m:
        if data.get("tile_id") is not None:
            verdict = m.select_tile(data["tile_id"])
        else:
            verdict = m.select(data.get("value"))
        state = m.snapshot()
    logger.debug("api_select sid=%s data=%r verdict=%s", _sid(), data, verdict.value)
    return jsonify({"ok": True, "verdict": verdict.value, "state": state}), 200

@bp.get("/api/high_score")
def api_high_score():
    return jsonify({"ok": True, "high_score": read_high_score(high_score_store())}), 200

@bp.get("/api/summary")
def api_summary():
    with _session() as m:
        summary, state = m.summary(), m.snapshot()
    return jsonify({"ok": True, "summary": summary, "state": state}), 200

@bp.post("/api/exit")
def api_exit():
    with _registry_lock:
        m = sessions().pop(_sid(), None)
    if m is None:
        return jsonify({"ok": True, "summary": None}), 200
    with m.lock:
        m.pump()
        m.playflow.abandon_open(int(m.scheduler.now() * 1000))
        m.scheduler.cancel_all()
        summary = m.summary()
    logger.info("api_exit sid=%s score=%d", _sid(), m.score)
    return jsonify({"ok": True, "summary": summary}), 200
