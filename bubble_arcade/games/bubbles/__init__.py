# bubble_arcade/games/bubbles/__init__.py
from flask import Blueprint

bp = Blueprint(
    "bubbles",
    __name__,
    url_prefix="/games/bubbles",
)

from . import routes  # noqa: E402,F401  (registers the views on bp)
