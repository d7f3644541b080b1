# bubble_arcade/games/core/store_registry.py
"""Per-app singletons (high score store, clock, session registry) kept in app.extensions."""
from __future__ import annotations
from typing import Callable, TypeVar
from flask import current_app

T = TypeVar("T")

def _extensions() -> dict:
    ext = getattr(current_app, "extensions", None)
    if ext is None:
        current_app.extensions = {}
        ext = current_app.extensions
    return ext

def get_store(key: str, factory: Callable[[], T]) -> T:
    ext = _extensions()
    store: T | None = ext.get(key)
    if store is None:
        store = factory()
        ext[key] = store
    return store

def set_store(key: str, store: T) -> T:
    """Install (or replace) a singleton, e.g. a FakeClock in tests."""
    _extensions()[key] = store
    return store
