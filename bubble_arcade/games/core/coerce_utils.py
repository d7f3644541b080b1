# bubble_arcade/games/core/coerce_utils.py
import math
from typing import Any, Optional

def coerce_float(val: Any) -> Optional[float]:
    """Coerce client input to a finite float; None when it can't be."""
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
    try:
        out = float(val)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None

def coerce_int(val: Any, default: Optional[int] = None) -> Optional[int]:
    """Coerce to int (accepts '7', 7.0, ' 7 '); default on failure."""
    if val is None or isinstance(val, bool):
        return default
    try:
        f = float(str(val).strip())
    except (TypeError, ValueError):
        return default
    if not math.isfinite(f) or not f.is_integer():
        return default
    return int(f)

def normalize_policy(name: Optional[str]) -> str:
    """Normalize difficulty policy names."""
    if name is None: return "extended"
    ALIASES = {'extended':'extended','advanced':'extended','full':'extended','default':'extended',
               'ramped':'ramped','classic':'ramped','simple':'ramped','integer':'ramped'}
    return ALIASES.get(str(name).strip().lower(), str(name).strip().lower())
