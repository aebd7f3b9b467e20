import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from scoreboard import db
from scoreboard.models import ScoreAction, utcnow


def append_action(
    team: str,
    delta: int,
    prev_score: int,
    new_score: int,
    client_id: str,
    action_type: str,
    reverts_action_id: Optional[str] = None,
) -> ScoreAction:
    """Stage one audit record. ``delta`` is the change actually applied."""
    action = ScoreAction(
        id=str(uuid.uuid4()),
        team=team,
        delta=delta,
        prev_score=prev_score,
        new_score=new_score,
        client_id=client_id,
        action_type=action_type,
        reverts_action_id=reverts_action_id,
        undone=False,
        created_at=utcnow(),
    )
    db.session.add(action)
    return action


def count_recent(client_id: str, window_sec: int, now: Optional[datetime] = None) -> int:
    since = (now or utcnow()) - timedelta(seconds=window_sec)
    return ScoreAction.query.filter(
        ScoreAction.client_id == client_id,
        ScoreAction.created_at > since,
    ).count()


def find_undoable(client_id: str, window_sec: int, lock: bool = False) -> Optional[ScoreAction]:
    """Most recent non-undo, not yet undone action by ``client_id`` inside the window."""
    since = utcnow() - timedelta(seconds=window_sec)
    query = (
        ScoreAction.query.filter(
            ScoreAction.client_id == client_id,
            ScoreAction.undone.is_(False),
            ScoreAction.action_type != 'undo',
            ScoreAction.created_at > since,
        )
        .order_by(ScoreAction.created_at.desc(), ScoreAction.id.desc())
        .limit(1)
    )
    if lock:
        query = query.populate_existing().with_for_update()
    return query.first()


def mark_undone(action: ScoreAction) -> None:
    action.undone = True
    action.undone_at = utcnow()
    db.session.add(action)


def recent_actions(limit: int) -> List[ScoreAction]:
    return (
        ScoreAction.query.order_by(ScoreAction.created_at.desc(), ScoreAction.id.desc())
        .limit(limit)
        .all()
    )


def actions_for_team(team: str) -> List[ScoreAction]:
    return ScoreAction.query.filter_by(team=team).order_by(ScoreAction.created_at).all()
