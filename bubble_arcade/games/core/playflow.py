# bubble_arcade/games/core/playflow.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional, List
from time import time

Outcome = str  # 'completed'|'timeout'|'penalty_timeout'|'abandoned'

OUTCOMES = ("completed", "timeout", "penalty_timeout", "abandoned")

def _wall_ms() -> int:
    return int(time() * 1000)

@dataclass
class RoundPlay:
    round_no: int
    tier: str
    expression_count: int
    started_at_ms: int = field(default_factory=_wall_ms)
    ended_at_ms: Optional[int] = None
    correct_selections: int = 0
    wrong_selections: int = 0
    points: int = 0
    final_outcome: Optional[Outcome] = None

    def mark_end(self, outcome: Outcome, at_ms: Optional[int] = None):
        if self.ended_at_ms is None:
            self.ended_at_ms = _wall_ms() if at_ms is None else at_ms
        self.final_outcome = outcome

    @property
    def elapsed_ms(self) -> Optional[int]:
        if self.ended_at_ms is None:
            return None
        return max(0, self.ended_at_ms - self.started_at_ms)

@dataclass
class Playflow:
    """Round-by-round play record for one game session."""
    session_uuid: str
    started_at_ms: int = field(default_factory=_wall_ms)
    current: Optional[RoundPlay] = None
    rounds: List[RoundPlay] = field(default_factory=list)

    # ---- lifecycle ----
    def start_round(self, round_no: int, tier: str, expression_count: int, at_ms: Optional[int] = None):
        # a round still open at this point was never resolved
        self.abandon_open(at_ms)
        rp = RoundPlay(round_no=round_no, tier=tier, expression_count=expression_count)
        if at_ms is not None:
            rp.started_at_ms = at_ms
        self.rounds.append(rp)
        self.current = rp

    def selection(self, correct: bool):
        if not self.current or self.current.final_outcome:
            return
        if correct:
            self.current.correct_selections += 1
        else:
            self.current.wrong_selections += 1

    def finish_round(self, outcome: Outcome, points: int = 0, at_ms: Optional[int] = None):
        if outcome not in OUTCOMES:
            raise ValueError(f"unknown outcome {outcome!r}")
        if not self.current or self.current.final_outcome:
            return
        self.current.points = points
        self.current.mark_end(outcome, at_ms)
        self.current = None

    def abandon_open(self, at_ms: Optional[int] = None) -> bool:
        if not self.current or self.current.final_outcome:
            return False
        self.current.mark_end("abandoned", at_ms)
        self.current = None
        return True

    # ---- readout ----
    def summary(self) -> Dict:
        totals = dict(completed=0, timeout=0, penalty_timeout=0, abandoned=0,
                      points=0, correct=0, wrong=0)
        buckets: Dict[str, List[int]] = dict(
            completed_rounds=[],
            timed_out_rounds=[],
            flawless_rounds=[],
            struggled_rounds=[],
        )
        per_round: List[Dict] = []

        for rp in self.rounds:
            if rp.final_outcome:
                totals[rp.final_outcome] += 1
            totals["points"] += rp.points
            totals["correct"] += rp.correct_selections
            totals["wrong"] += rp.wrong_selections

            if rp.final_outcome == "completed":
                buckets["completed_rounds"].append(rp.round_no)
                if rp.wrong_selections == 0:
                    buckets["flawless_rounds"].append(rp.round_no)
                else:
                    buckets["struggled_rounds"].append(rp.round_no)
            elif rp.final_outcome in ("timeout", "penalty_timeout"):
                buckets["timed_out_rounds"].append(rp.round_no)

            per_round.append(dict(
                round_no=rp.round_no,
                tier=rp.tier,
                expression_count=rp.expression_count,
                final_outcome=rp.final_outcome,
                correct_selections=rp.correct_selections,
                wrong_selections=rp.wrong_selections,
                points=rp.points,
                started_at_ms=rp.started_at_ms,
                ended_at_ms=rp.ended_at_ms,
                elapsed_ms=rp.elapsed_ms,
            ))

        def f(ids: List[int]) -> str:
            return ", ".join(str(x) for x in ids) if ids else "—"

        # plain text block, good for logs and the CLI
        report_lines = [
            "Totals",
            f"  Points:    {totals['points']}",
            f"  Completed: {totals['completed']}",
            f"  Timed out: {totals['timeout'] + totals['penalty_timeout']}"
            f" (penalty: {totals['penalty_timeout']})",
            f"  Abandoned: {totals['abandoned']}",
            f"  Selections: {totals['correct']} correct, {totals['wrong']} wrong",
            "",
            "Rounds",
            f"  Completed [{len(buckets['completed_rounds'])}]: {f(buckets['completed_rounds'])}",
            f"  Flawless [{len(buckets['flawless_rounds'])}]: {f(buckets['flawless_rounds'])}",
            f"  Struggled but completed [{len(buckets['struggled_rounds'])}]: {f(buckets['struggled_rounds'])}",
            f"  Timed out [{len(buckets['timed_out_rounds'])}]: {f(buckets['timed_out_rounds'])}",
        ]

        return dict(
            session_uuid=self.session_uuid,
            started_at_ms=self.started_at_ms,
            totals=totals,
            per_round=per_round,
            buckets=buckets,
            report_text="\n".join(report_lines),
        )
