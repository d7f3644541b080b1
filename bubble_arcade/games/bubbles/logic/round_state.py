# bubble_arcade/games/bubbles/logic/round_state.py
from __future__ import annotations
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from .evaluator import EPSILON, is_close
from .synthesizer import Expression

@dataclass
class Tile:
    id: int
    expression: Expression
    resolved: bool = False

    @property
    def value(self) -> float:
        return self.expression.value

    def to_dict(self) -> Dict:
        return {"id": self.id, "expr": self.expression.text, "resolved": self.resolved}

@dataclass
class RoundState:
    """
    One round's board. ``tiles`` is in display order; ``target_order`` is the
    ascending order the player must follow; ``next_index`` points into it.
    """
    round_no: int
    tiles: List[Tile]
    target_order: List[float]
    next_index: int = 0
    tier_name: str = ""

    @classmethod
    def build(cls, round_no: int, expressions: List[Expression],
              rng: Optional[random.Random] = None, tier_name: str = "") -> "RoundState":
        shuffled = list(expressions)
        (rng or random.Random()).shuffle(shuffled)
        tiles = [Tile(id=i, expression=e) for i, e in enumerate(shuffled)]
        target = sorted(e.value for e in expressions)
        return cls(round_no=round_no, tiles=tiles, target_order=target, tier_name=tier_name)

    @property
    def complete(self) -> bool:
        return self.next_index >= len(self.target_order)

    @property
    def expected(self) -> Optional[float]:
        if self.complete:
            return None
        return self.target_order[self.next_index]

    def tile(self, tile_id: int) -> Optional[Tile]:
        for t in self.tiles:
            if t.id == tile_id:
                return t
        return None

    def matching_tile(self, value: float, eps: float = EPSILON) -> Optional[Tile]:
        """Closest unresolved tile within tolerance of ``value``."""
        candidates = [t for t in self.tiles if not t.resolved and is_close(t.value, value, eps)]
        if not candidates:
            return None
        return min(candidates, key=lambda t: abs(t.value - value))

    def advance(self, tile: Optional[Tile] = None) -> None:
        if self.complete:
            return
        if tile is not None:
            tile.resolved = True
        self.next_index += 1

    def to_dict(self, reveal: bool = False) -> Dict:
        out = {
            "round": self.round_no,
            "tier": self.tier_name,
            "tiles": [t.to_dict() for t in self.tiles],
            "next_index": self.next_index,
            "total": len(self.target_order),
            "complete": self.complete,
        }
        if reveal:
            out["target_order"] = list(self.target_order)
            out["values"] = {t.id: t.value for t in self.tiles}
        return out
