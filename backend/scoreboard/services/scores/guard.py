"""Storage boundary for the ledger tables.

Writes to ``scores`` and ``score_actions`` are only accepted from inside
``ledger_write_scope``. Even there, rows are never deleted and an action
record may only make the one-way ``undone`` transition.
"""

from contextlib import contextmanager

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from scoreboard.errors import LedgerWriteError
from scoreboard.models import Score, ScoreAction

_SCOPE_KEY = 'ledger_write_scope'
_UNDO_FIELDS = {'undone', 'undone_at'}


@contextmanager
def ledger_write_scope(session):
    depth = session.info.get(_SCOPE_KEY, 0)
    session.info[_SCOPE_KEY] = depth + 1
    try:
        yield session
    finally:
        session.info[_SCOPE_KEY] = depth


def _in_scope(session) -> bool:
    return session.info.get(_SCOPE_KEY, 0) > 0


def _check_action_update(obj: ScoreAction) -> None:
    state = inspect(obj)
    changed = {attr.key for attr in state.attrs if attr.history.has_changes()}
    if not changed:
        return
    if not changed <= _UNDO_FIELDS:
        raise LedgerWriteError(f"action {obj.id}: fields {sorted(changed - _UNDO_FIELDS)} are immutable")
    undone_history = state.attrs.undone.history
    if not undone_history.added or undone_history.added[0] is not True or True in (undone_history.deleted or ()):
        raise LedgerWriteError(f"action {obj.id}: undone may only go from false to true")


@event.listens_for(Session, 'before_flush')
def _guard_ledger_flush(session, flush_context, instances):
    in_scope = _in_scope(session)
    for obj in session.new:
        if isinstance(obj, (Score, ScoreAction)) and not in_scope:
            raise LedgerWriteError(f"direct insert into {obj.__tablename__} is not allowed")
    for obj in session.deleted:
        if isinstance(obj, (Score, ScoreAction)):
            raise LedgerWriteError(f"rows in {obj.__tablename__} are never deleted")
    for obj in session.dirty:
        if not isinstance(obj, (Score, ScoreAction)) or not session.is_modified(obj):
            continue
        if not in_scope:
            raise LedgerWriteError(f"direct update of {obj.__tablename__} is not allowed")
        if isinstance(obj, ScoreAction):
            _check_action_update(obj)


@event.listens_for(Session, 'do_orm_execute')
def _guard_ledger_bulk_statements(orm_execute_state):
    """Bulk insert/update/delete statements never reach before_flush; check them here."""
    state = orm_execute_state
    if not (state.is_insert or state.is_update or state.is_delete):
        return
    mapper = state.bind_mapper
    target = mapper.class_ if mapper is not None else None
    if target not in (Score, ScoreAction):
        return
    table = target.__tablename__
    if state.is_delete:
        raise LedgerWriteError(f"rows in {table} are never deleted")
    if not _in_scope(state.session):
        raise LedgerWriteError(f"direct bulk write to {table} is not allowed")
    if state.is_update and target is ScoreAction:
        # A bulk UPDATE cannot be checked for the one-way undone transition
        raise LedgerWriteError(f"bulk update of {table} is not allowed")
