import random

import pytest

from bubble_arcade import create_app
from bubble_arcade.config import TestingConfig
from bubble_arcade.db import db
from bubble_arcade.games.core.clock import FakeClock, Scheduler
from bubble_arcade.games.core.store_registry import set_store
from bubble_arcade.games.bubbles.logic.high_score import MemoryHighScoreStore
from bubble_arcade.games.bubbles.logic.session_machine import GameRules, SessionMachine
from bubble_arcade.games.bubbles.routes import CLOCK_KEY


@pytest.fixture
def app():
    app = create_app(TestingConfig, {"BUBBLES_SEED": 7})
    with app.app_context():
        db.create_all()
        set_store(CLOCK_KEY, FakeClock())
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock(app):
    return app.extensions[CLOCK_KEY]


@pytest.fixture
def make_machine():
    """Build a machine on a fake clock: make_machine(rules=..., store=...) -> (machine, clock)."""
    def _make(rules=None, store=None, seed=1):
        clock = FakeClock()
        m = SessionMachine(
            rules=rules or GameRules(),
            scheduler=Scheduler(clock),
            high_scores=store if store is not None else MemoryHighScoreStore(),
            rng=random.Random(seed),
        )
        return m, clock
    return _make
