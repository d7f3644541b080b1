from sqlalchemy.exc import OperationalError

from bubble_arcade.db import db
from bubble_arcade.models import KeyValue
from bubble_arcade.games.bubbles.logic.high_score import (
    DEFAULT_KEY,
    MemoryHighScoreStore,
    SqlHighScoreStore,
    read_high_score,
)


def test_memory_store():
    store = MemoryHighScoreStore()
    assert store.get() is None
    assert read_high_score(store) == 0
    store.set(30)
    assert store.get() == 30
    assert store.writes == 1


def test_memory_store_drops_bad_initial_value():
    assert MemoryHighScoreStore(initial="garbage").get() is None
    assert MemoryHighScoreStore(initial=-4).get() is None


def test_sql_store_round_trip(app_ctx):
    store = SqlHighScoreStore(db)
    assert store.get() is None
    store.set(40)
    assert store.get() == 40
    store.set(70)
    row = db.session.get(KeyValue, DEFAULT_KEY)
    assert row.value == "70"


def test_sql_store_ignores_unparseable_value(app_ctx):
    db.session.add(KeyValue(key="scores", value="lots"))
    db.session.commit()
    assert SqlHighScoreStore(db, "scores").get() is None
    assert read_high_score(SqlHighScoreStore(db, "scores")) == 0


class _BrokenSession:
    def __init__(self):
        self.rollbacks = 0

    def get(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    def rollback(self):
        self.rollbacks += 1


class _BrokenDB:
    def __init__(self):
        self.session = _BrokenSession()


def test_unavailable_storage_reads_zero_and_drops_writes():
    broken = _BrokenDB()
    store = SqlHighScoreStore(broken, "k")
    assert read_high_score(store) == 0
    store.set(99)  # must not raise
    assert broken.session.rollbacks == 2


def test_read_without_store():
    assert read_high_score(None) == 0


def test_memory_submit_only_raises_the_score():
    store = MemoryHighScoreStore(initial=30)
    assert not store.submit(30)
    assert not store.submit(12)
    assert store.submit(31)
    assert store.get() == 31
    assert store.writes == 1


def test_submit_of_zero_to_an_empty_store_is_not_a_record():
    store = MemoryHighScoreStore()
    assert not store.submit(0)
    assert store.writes == 0


def test_sql_submit_compares_against_the_stored_row(app_ctx):
    store = SqlHighScoreStore(db)
    assert store.submit(30)
    # another session's store object, same row
    other = SqlHighScoreStore(db)
    assert not other.submit(10)
    assert other.submit(45)
    assert not store.submit(40)
    assert store.get() == 45


def test_unavailable_storage_drops_submit():
    broken = _BrokenDB()
    assert not SqlHighScoreStore(broken, "k").submit(10)
    assert broken.session.rollbacks == 1
