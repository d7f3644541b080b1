import threading

import pytest

from bubble_arcade.games.bubbles.logic import session_machine as machine_module
from bubble_arcade.games.bubbles.logic.high_score import MemoryHighScoreStore
from bubble_arcade.games.bubbles.logic.session_machine import (
    Advance,
    GameRules,
    Phase,
    Tick,
)
from bubble_arcade.games.bubbles.logic.synthesizer import Expression
from bubble_arcade.games.bubbles.logic.validator import Verdict


def _begin(m, clock):
    clock.advance(0.2)
    m.pump()
    assert m.phase is Phase.ROUND_ACTIVE


def _complete_round(m):
    verdicts = [m.select(v) for v in list(m.round.target_order)]
    assert verdicts[-1] is Verdict.COMPLETE
    return verdicts


def test_start_shows_intro_then_opens_round(make_machine):
    m, clock = make_machine()
    assert m.phase is Phase.IDLE
    m.start_game()
    assert m.phase is Phase.ROUND_INTRO
    assert m.current_round == 1
    assert not m.accepting_input

    clock.advance(0.1)
    m.pump()
    assert m.phase is Phase.ROUND_INTRO

    clock.advance(0.1)
    m.pump()
    assert m.phase is Phase.ROUND_ACTIVE
    assert m.accepting_input
    assert m.remaining == 15
    assert len(m.round.tiles) == 3


def test_completed_round_scores_and_moves_on(make_machine):
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)

    verdicts = _complete_round(m)
    assert verdicts == [Verdict.CORRECT, Verdict.CORRECT, Verdict.COMPLETE]
    assert m.score == 10
    assert m.phase is Phase.ROUND_RESOLVED
    assert not m.accepting_input

    clock.advance(0.5)
    m.pump()
    assert m.phase is Phase.ROUND_INTRO
    assert m.current_round == 2
    assert m.score == 10


def test_wrong_pick_costs_two_seconds(make_machine):
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)

    assert m.select(m.round.target_order[-1]) is Verdict.INCORRECT
    assert m.remaining == 13
    assert m.round.next_index == 0
    assert m.score == 0

    assert m.select("not a number") is Verdict.INCORRECT
    assert m.remaining == 11
    assert m.stats["answer_wrong"] == 2
    assert m.stats["penalty_seconds"] == 4


def test_penalty_at_one_second_times_the_round_out(make_machine):
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)
    m.remaining = 1

    assert m.select(-123456.0) is Verdict.INCORRECT
    assert m.remaining == 0
    assert m.phase is Phase.ROUND_RESOLVED
    assert m.score == 0
    # late input after the timeout is dropped
    assert m.select(m.round.target_order[0]) is Verdict.IGNORED
    assert m.stats["answer_attempts"] == 1

    clock.advance(0.3)
    m.pump()
    assert m.phase is Phase.ROUND_INTRO
    assert m.current_round == 2
    assert m.playflow.rounds[0].final_outcome == "penalty_timeout"


def test_countdown_runs_out(make_machine):
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)

    clock.advance(14.0)
    m.pump()
    assert m.remaining == 1
    assert m.phase is Phase.ROUND_ACTIVE

    clock.advance(1.0)
    m.pump()
    assert m.remaining == 0
    assert m.phase is Phase.ROUND_RESOLVED
    assert m.score == 0

    clock.advance(0.4)
    m.pump()
    assert m.phase is Phase.ROUND_INTRO
    assert m.current_round == 2
    assert m.stats["rounds_timed_out"] == 1
    assert m.playflow.rounds[0].final_outcome == "timeout"


def test_remaining_never_goes_up_within_a_round(make_machine):
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)
    seen = [m.remaining]
    for _ in range(4):
        m.select("x")
        seen.append(m.remaining)
        clock.advance(1.0)
        m.pump()
        seen.append(m.remaining)
    assert seen == sorted(seen, reverse=True)
    assert min(seen) >= 0


def test_game_ends_after_last_round_and_saves_best(make_machine):
    store = MemoryHighScoreStore()
    m, clock = make_machine(rules=GameRules(total_rounds=2), store=store)
    m.start_game()
    for _ in range(2):
        _begin(m, clock)
        _complete_round(m)
        clock.advance(0.5)
        m.pump()

    assert m.phase is Phase.GAME_OVER
    assert m.game_over
    assert m.final_score == 20
    assert m.new_high_score
    assert store.value == 20
    assert store.writes == 1
    assert m.snapshot()["round"] == 2


def test_game_ends_even_if_last_round_times_out(make_machine):
    store = MemoryHighScoreStore()
    m, clock = make_machine(rules=GameRules(total_rounds=1), store=store)
    m.start_game()
    _begin(m, clock)
    clock.advance(16.0)
    m.pump()
    assert m.phase is Phase.GAME_OVER
    assert m.final_score == 0
    assert store.writes == 0


def test_high_score_only_written_when_beaten(make_machine):
    store = MemoryHighScoreStore(initial=50)
    m, clock = make_machine(rules=GameRules(total_rounds=1), store=store)
    assert m.best_score == 50
    m.start_game()
    _begin(m, clock)
    _complete_round(m)
    clock.advance(0.5)
    m.pump()
    assert m.final_score == 10
    assert not m.new_high_score
    assert store.writes == 0
    assert m.snapshot()["high_score"] == 50


def test_equal_score_is_not_a_new_high_score(make_machine):
    store = MemoryHighScoreStore(initial=10)
    m, clock = make_machine(rules=GameRules(total_rounds=1), store=store)
    m.start_game()
    _begin(m, clock)
    _complete_round(m)
    clock.advance(0.5)
    m.pump()
    assert store.writes == 0


def test_restart_makes_pending_advance_stale(make_machine):
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)
    _complete_round(m)      # Advance now pending
    m.start_game()          # restart before it fires
    assert m.score == 0
    assert m.current_round == 1

    clock.advance(0.5)      # BeginRound for the new game, then the old Advance
    m.pump()
    assert m.phase is Phase.ROUND_ACTIVE
    assert m.current_round == 1


def test_stale_events_are_noops(make_machine):
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)
    old = m.generation - 1
    remaining = m.remaining
    m.dispatch(Tick(old))
    m.dispatch(Advance(old))
    assert m.remaining == remaining
    assert m.phase is Phase.ROUND_ACTIVE


def test_select_during_intro_is_ignored(make_machine):
    m, _ = make_machine()
    m.start_game()
    assert m.select(1) is Verdict.IGNORED
    assert m.stats["answer_attempts"] == 0


def test_unknown_event_type(make_machine):
    m, _ = make_machine()
    with pytest.raises(TypeError):
        m.dispatch("tick")


def test_snapshot_shape(make_machine):
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)
    snap = m.snapshot()
    assert snap["phase"] == "round_active"
    assert snap["total_rounds"] == 25
    assert snap["board"]["total"] == 3
    assert "target_order" not in snap["board"]
    assert "target_order" in m.snapshot(reveal=True)["board"]


def test_summary_tracks_rounds(make_machine):
    m, clock = make_machine(rules=GameRules(total_rounds=2))
    m.start_game()
    _begin(m, clock)
    m.select("x")
    _complete_round(m)
    clock.advance(0.5)
    m.pump()
    _begin(m, clock)
    clock.advance(16.0)
    m.pump()

    out = m.summary()
    assert out["final_score"] == 10
    assert out["buckets"]["struggled_rounds"] == [1]
    assert out["buckets"]["timed_out_rounds"] == [2]
    assert out["totals"]["points"] == 10


@pytest.mark.parametrize("kwargs", [
    {"total_rounds": 0},
    {"time_per_round": 0},
    {"penalty_seconds": -1},
    {"policy": "impossible"},
])
def test_rules_reject_bad_values(kwargs):
    with pytest.raises(ValueError):
        GameRules(**kwargs)


def test_rules_from_config():
    rules = GameRules.from_config({"BUBBLES_TOTAL_ROUNDS": "5", "BUBBLES_POLICY": "classic"})
    assert rules.total_rounds == 5
    assert rules.policy == "ramped"
    assert rules.time_per_round == 15


def test_only_restart_leaves_game_over(make_machine):
    m, clock = make_machine(rules=GameRules(total_rounds=1))
    m.start_game()
    _begin(m, clock)
    clock.advance(20.0)
    m.pump()
    assert m.game_over

    clock.advance(60.0)
    m.pump()
    assert m.select(1) is Verdict.IGNORED
    assert m.game_over

    m.start_game()
    assert m.phase is Phase.ROUND_INTRO
    assert m.final_score is None


def test_shared_store_is_never_lowered_by_a_stale_session(make_machine):
    store = MemoryHighScoreStore()
    slow, slow_clock = make_machine(rules=GameRules(total_rounds=1), store=store)
    fast, fast_clock = make_machine(rules=GameRules(total_rounds=2), store=store, seed=2)

    slow.start_game()
    _begin(slow, slow_clock)
    assert slow.best_score == 0

    fast.start_game()
    for _ in range(2):
        _begin(fast, fast_clock)
        _complete_round(fast)
        fast_clock.advance(0.5)
        fast.pump()
    assert store.value == 20

    _complete_round(slow)
    slow_clock.advance(0.5)
    slow.pump()
    assert slow.final_score == 10
    assert not slow.new_high_score
    assert slow.best_score == 20
    assert store.value == 20
    assert store.writes == 1


def test_restart_rereads_the_best_score(make_machine):
    store = MemoryHighScoreStore()
    m, _ = make_machine(store=store)
    store.set(99)
    m.start_game()
    assert m.snapshot()["high_score"] == 99


def test_dispatch_waits_for_the_session_lock(make_machine):
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)
    done = threading.Event()
    verdicts = []

    def worker():
        verdicts.append(m.select("x"))
        done.set()

    with m.lock:
        t = threading.Thread(target=worker)
        t.start()
        assert not done.wait(0.1)
        assert m.remaining == 15
    t.join(timeout=2)
    assert verdicts == [Verdict.INCORRECT]
    assert m.remaining == 13


def test_short_round_still_plays_and_scores(make_machine, monkeypatch):
    monkeypatch.setattr(machine_module, "synthesize",
                        lambda tier, count, rng=None: [Expression("3+4", 7.0, "+", 3, 4)])
    m, clock = make_machine()
    m.start_game()
    _begin(m, clock)
    assert len(m.round.tiles) == 1
    assert m.select(7) is Verdict.COMPLETE
    assert m.score == 10
    assert m.phase is Phase.ROUND_RESOLVED


def test_empty_round_times_out_without_points(make_machine, monkeypatch):
    monkeypatch.setattr(machine_module, "synthesize", lambda tier, count, rng=None: [])
    m, clock = make_machine()
    m.start_game()

    clock.advance(0.2)
    m.pump()
    assert m.phase is Phase.ROUND_RESOLVED
    assert not m.accepting_input
    assert m.score == 0
    assert m.select(1) is Verdict.IGNORED
    assert m.playflow.rounds[0].final_outcome == "timeout"

    clock.advance(0.4)
    m.pump()
    assert m.phase is Phase.ROUND_INTRO
    assert m.current_round == 2
    assert m.stats["rounds_timed_out"] == 1
