# bubble_arcade/models.py
from datetime import datetime, timezone
from .db import db


def _utcnow():
    return datetime.now(timezone.utc)


class KeyValue(db.Model):
    """
    Tiny namespaced key/value table. The bubble game keeps its best score
    here under a single key (e.g. 'bubble_selection_high_score_v1').
    """
    __tablename__ = "kv_store"

    key        = db.Column(db.String(120), primary_key=True)
    value      = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<KeyValue key={self.key!r} value={self.value!r}>"
