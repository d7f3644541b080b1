import os

class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///bubbles.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    RATELIMIT_DEFAULT = "200 per hour; 50 per minute"
    RATELIMIT_ENABLED = True

    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Bubble order game rules
    BUBBLES_TOTAL_ROUNDS = int(os.environ.get("BUBBLES_TOTAL_ROUNDS", "25"))
    BUBBLES_TIME_PER_ROUND = int(os.environ.get("BUBBLES_TIME_PER_ROUND", "15"))  # seconds
    BUBBLES_PENALTY_SECONDS = int(os.environ.get("BUBBLES_PENALTY_SECONDS", "2"))
    BUBBLES_POINTS_PER_SEQUENCE = int(os.environ.get("BUBBLES_POINTS_PER_SEQUENCE", "10"))
    BUBBLES_PER_ROUND = int(os.environ.get("BUBBLES_PER_ROUND", "3"))
    BUBBLES_POLICY = os.environ.get("BUBBLES_POLICY", "extended")  # extended | ramped
    BUBBLES_SEED = os.environ.get("BUBBLES_SEED")  # unset -> fresh randomness per session
    BUBBLES_HIGH_SCORE_KEY = "bubble_selection_high_score_v1"
    # idle sessions are dropped from the in-memory registry after this many seconds
    BUBBLES_SESSION_TTL = int(os.environ.get("BUBBLES_SESSION_TTL", "1800"))
    BUBBLES_MAX_SESSIONS = int(os.environ.get("BUBBLES_MAX_SESSIONS", "1000"))


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    RATELIMIT_ENABLED = False
