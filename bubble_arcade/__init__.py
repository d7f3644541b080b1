# bubble_arcade/__init__.py
from __future__ import annotations
import os, secrets
import logging
from logging.handlers import RotatingFileHandler
from typing import Any, Mapping, Optional

import click
from flask import Flask

from .config import Config
from .db import db
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# --- extensions ---
migrate = Migrate()
# dev-friendly in-memory limiter; swap for redis in prod
limiter = Limiter(get_remote_address, storage_uri="memory://")


def create_app(config_object: Any = Config, overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)

    # ---------------------------
    # Config
    # ---------------------------
    app.config.from_object(config_object)
    app.config.from_pyfile("config.py", silent=True)  # instance/config.py (optional)
    if overrides:
        app.config.update(overrides)

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise RuntimeError(
            "Missing SQLALCHEMY_DATABASE_URI (or DATABASE_URL). "
            "Set it via env or instance/config.py."
        )

    # fail fast on bad game rules rather than on the first request
    from .games.bubbles.logic.session_machine import GameRules
    GameRules.from_config(app.config)

    # ---------------------------
    # Logging
    # ---------------------------
    level = logging.DEBUG if app.debug else logging.INFO
    app.logger.setLevel(level)
    for name in ("bubble_arcade", "bubble_arcade.games", "bubble_arcade.games.core",
                 "bubble_arcade.games.bubbles"):
        logging.getLogger(name).setLevel(level)

    if not app.debug and not app.testing:
        log_dir = app.config.get("LOG_DIR") or "logs"
        os.makedirs(log_dir, exist_ok=True)
        # File handler - rotates logs when they get too big
        file_handler = RotatingFileHandler(os.path.join(log_dir, "bubbles.log"),
                                           maxBytes=10240, backupCount=10)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        logging.getLogger("bubble_arcade").addHandler(file_handler)
        app.logger.info("Bubble arcade startup")

    # ---------------------------
    # Extensions init
    # ---------------------------
    # Ensure SECRET_KEY is truthy (override falsy values from any loaded config)
    if not app.config.get("SECRET_KEY"):
        app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY") or secrets.token_hex(32)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    from . import models  # noqa: F401  (register tables on db.metadata)

    # ---------------------------
    # Blueprints
    # ---------------------------
    try:
        from .games.bubbles import bp as bubbles_bp
        # url_prefix="/games/bubbles" is set on the blueprint
        app.register_blueprint(bubbles_bp)
    except Exception:
        app.logger.exception("Failed to register bubbles blueprint")

    # ---------------------------
    # CLI commands
    # ---------------------------
    @app.cli.command("bubbles-init-db")
    def bubbles_init_db():
        """Create the bubble arcade tables."""
        with app.app_context():
            db.create_all()
        click.echo("✅ Tables created.")

    @app.cli.command("bubbles-sample-round")
    @click.option("--round", "round_no", default=1, show_default=True, type=int)
    @click.option("--policy", default=None, help="extended | ramped (default: BUBBLES_POLICY)")
    @click.option("--count", default=None, type=int, help="default: BUBBLES_PER_ROUND")
    @click.option("--seed", default=None, type=int)
    def bubbles_sample_round(round_no, policy, count, seed):
        """Print one generated round and its target order."""
        import random
        from .games.bubbles.logic.difficulty import tier_for_round
        from .games.bubbles.logic.evaluator import format_value
        from .games.bubbles.logic.round_state import RoundState
        from .games.bubbles.logic.synthesizer import synthesize

        rng = random.Random(seed)
        tier = tier_for_round(round_no, policy or app.config["BUBBLES_POLICY"])
        exprs = synthesize(tier, count or app.config["BUBBLES_PER_ROUND"], rng=rng)
        board = RoundState.build(round_no, exprs, rng=rng, tier_name=tier.name)
        click.echo(f"Round {round_no} [{tier.name}]")
        for t in board.tiles:
            click.echo(f"  #{t.id}  {t.expression.text:>12}  = {format_value(t.value)}")
        click.echo("Order: " + " < ".join(format_value(v) for v in board.target_order))

    @app.cli.command("bubbles-high-score")
    @click.option("--reset", is_flag=True, help="Set the stored high score back to 0.")
    def bubbles_high_score(reset):
        """Print (or reset) the stored high score."""
        from .games.bubbles.logic.high_score import SqlHighScoreStore, read_high_score
        with app.app_context():
            store = SqlHighScoreStore(db, app.config["BUBBLES_HIGH_SCORE_KEY"])
            if reset:
                store.set(0)
            click.echo(f"High score: {read_high_score(store)}")

    @app.cli.command("bubbles-simulate")
    @click.option("--seed", default=None, type=int)
    @click.option("--miss-every", default=0, show_default=True, type=int,
                  help="Make every Nth pick wrong (0 = never).")
    def bubbles_simulate(seed, miss_every):
        """Play a headless game on a fake clock and print the summary."""
        from .games.bubbles.logic.session_machine import GameRules
        from .games.bubbles.logic.simulate import simulate_session
        out = simulate_session(GameRules.from_config(app.config), seed=seed, miss_every=miss_every)
        click.echo(out["report_text"])
        click.echo(f"Final score: {out['final_score']} in {out['elapsed_seconds']:.1f}s of game time")

    @app.after_request
    def set_security_headers(resp):
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        resp.headers["Content-Security-Policy"] = "default-src 'self'"
        return resp

    return app
