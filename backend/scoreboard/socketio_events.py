from flask_socketio import join_room, leave_room, emit
from flask import current_app
from sqlalchemy import event
from sqlalchemy.orm import Session
from scoreboard import socketio
from scoreboard.models import Score, ScoreAction
from scoreboard.services.scores import list_scores, recent_actions

NAMESPACE = '/ws'
SCORES_ROOM = 'scores'

_PENDING_KEY = 'ledger_changes'


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_subscribe_scores(data=None):
    join_room(SCORES_ROOM)
    limit = int(current_app.config.get('HISTORY_LIMIT', 20))
    emit('snapshot', {
        'scores': [s.to_dict() for s in list_scores()],
        'actions': [a.to_dict() for a in recent_actions(limit)],
    })


def handle_unsubscribe_scores(data=None):
    leave_room(SCORES_ROOM)
    emit('unsubscribed', {'room': SCORES_ROOM})


def handle_ping(data):
    emit('pong', data or {})


# ---- Change feed: full post-commit row images, never partial state ----

def _capture_flushed_rows(session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, {})
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, Score):
            pending[('score', obj.team)] = obj.to_dict()
        elif isinstance(obj, ScoreAction):
            pending[('action', obj.id)] = obj.to_dict()


def _publish_committed_rows(session):
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending:
        return
    for (kind, _), row in pending.items():
        name = 'score_changed' if kind == 'score' else 'action_logged'
        socketio.emit(name, row, to=SCORES_ROOM, namespace=NAMESPACE)


def _discard_rolled_back_rows(session, previous_transaction=None):
    session.info.pop(_PENDING_KEY, None)


def register_change_feed() -> None:
    """Publish ledger rows to the scores room after each successful commit.

    The mutation engine does not call this; it only observes commits.
    """
    if event.contains(Session, 'after_flush', _capture_flushed_rows):
        return
    event.listen(Session, 'after_flush', _capture_flushed_rows)
    event.listen(Session, 'after_commit', _publish_committed_rows)
    event.listen(Session, 'after_soft_rollback', _discard_rolled_back_rows)


def register_socketio_handlers() -> None:
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('subscribe_scores', handle_subscribe_scores, namespace=NAMESPACE)
    socketio.on_event('unsubscribe_scores', handle_unsubscribe_scores, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
