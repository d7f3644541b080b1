# bubble_arcade/games/bubbles/logic/high_score.py
"""
Best-score persistence. Stores never raise: an unreadable store reads as
"no score yet" and a failed write is logged and dropped.
"""
from __future__ import annotations
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ....models import KeyValue
from ...core.coerce_utils import coerce_int

logger = logging.getLogger(__name__)

DEFAULT_KEY = "bubble_selection_high_score_v1"


def _clean(raw) -> Optional[int]:
    val = coerce_int(raw)
    if val is None or val < 0:
        return None
    return val


class HighScoreStore:
    def get(self) -> Optional[int]:
        raise NotImplementedError

    def set(self, value: int) -> None:
        raise NotImplementedError

    def submit(self, value: int) -> bool:
        """Store ``value`` only if it beats what is stored now. True when written."""
        if int(value) <= (self.get() or 0):
            return False
        self.set(value)
        return True


class MemoryHighScoreStore(HighScoreStore):
    def __init__(self, initial: Optional[int] = None) -> None:
        self.value = _clean(initial)
        self.writes = 0

    def get(self) -> Optional[int]:
        return self.value

    def set(self, value: int) -> None:
        self.value = max(0, int(value))
        self.writes += 1


class SqlHighScoreStore(HighScoreStore):
    """One row of the kv_store table, value kept as text like a browser key/value slot."""

    def __init__(self, db, key: str = DEFAULT_KEY) -> None:
        self.db = db
        self.key = key

    def get(self) -> Optional[int]:
        try:
            row = self.db.session.get(KeyValue, self.key)
        except SQLAlchemyError:
            logger.warning("high score store unavailable on read (key=%s)", self.key, exc_info=True)
            self.db.session.rollback()
            return None
        if row is None:
            return None
        val = _clean(row.value)
        if val is None:
            logger.warning("ignoring unparseable high score %r under %s", row.value, self.key)
        return val

    def set(self, value: int) -> None:
        value = max(0, int(value))
        try:
            row = self.db.session.get(KeyValue, self.key)
            if row is None:
                row = KeyValue(key=self.key, value=str(value))
                self.db.session.add(row)
            else:
                row.value = str(value)
            self.db.session.commit()
        except SQLAlchemyError:
            logger.warning("high score write dropped (key=%s, value=%s)", self.key, value, exc_info=True)
            self.db.session.rollback()
            return
        logger.info("high score %s -> %d", self.key, value)

    def submit(self, value: int) -> bool:
        # read, compare and write in one transaction so a lower score never
        # lands on top of a higher one written by another session
        value = max(0, int(value))
        try:
            row = self.db.session.get(KeyValue, self.key, with_for_update=True,
                                       populate_existing=True)
            current = _clean(row.value) if row is not None else None
            if value <= (current or 0):
                self.db.session.rollback()
                return False
            if row is None:
                self.db.session.add(KeyValue(key=self.key, value=str(value)))
            else:
                row.value = str(value)
            self.db.session.commit()
        except SQLAlchemyError:
            logger.warning("high score submit dropped (key=%s, value=%s)", self.key, value, exc_info=True)
            self.db.session.rollback()
            return False
        logger.info("new high score %s -> %d", self.key, value)
        return True


def read_high_score(store: Optional[HighScoreStore]) -> int:
    if store is None:
        return 0
    val = store.get()
    return val if val is not None else 0
