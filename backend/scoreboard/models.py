from scoreboard import db
from datetime import datetime, timezone
import uuid

ACTION_TYPES = ('increment', 'decrement', 'reset', 'reset_all', 'undo')


def utcnow() -> datetime:
    """Naive UTC timestamp; every ledger column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _isoformat(value):
    return value.isoformat() + 'Z' if value else None


class Score(db.Model):
    __tablename__ = 'scores'
    __table_args__ = (
        db.CheckConstraint('score >= 0', name='ck_scores_score_non_negative'),
    )
    team = db.Column(db.String(32), primary_key=True)
    score = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'team': self.team,
            'score': self.score,
            'updated_at': _isoformat(self.updated_at),
        }


class ScoreAction(db.Model):
    __tablename__ = 'score_actions'
    __table_args__ = (
        db.CheckConstraint(
            "action_type IN ('increment', 'decrement', 'reset', 'reset_all', 'undo')",
            name='ck_score_actions_action_type',
        ),
        db.Index('idx_score_actions_client_created', 'client_id', 'created_at'),
    )
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    team = db.Column(db.String(32), db.ForeignKey('scores.team'), nullable=False)
    delta = db.Column(db.Integer, nullable=False)
    prev_score = db.Column(db.Integer, nullable=False)
    new_score = db.Column(db.Integer, nullable=False)
    client_id = db.Column(db.String(128), nullable=False)
    action_type = db.Column(db.String(16), nullable=False)
    # Only set on undo records
    reverts_action_id = db.Column(db.String(36), db.ForeignKey('score_actions.id'), nullable=True)
    undone = db.Column(db.Boolean, nullable=False, default=False)
    undone_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'team': self.team,
            'delta': self.delta,
            'prev_score': self.prev_score,
            'new_score': self.new_score,
            'client_id': self.client_id,
            'action_type': self.action_type,
            'reverts_action_id': self.reverts_action_id,
            'undone': self.undone,
            'undone_at': _isoformat(self.undone_at),
            'created_at': _isoformat(self.created_at),
        }
