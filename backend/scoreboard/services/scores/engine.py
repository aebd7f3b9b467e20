"""Mutation engine for the team counters.

Every operation is one transaction: admission check, lock the team row(s),
read, compute, write the counter and its action record(s), commit. Expected
outcomes come back as result dicts with ``success`` and, on failure, an
``error`` code and ``message``. Storage failures are rolled back, logged
and re-raised.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterable, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from scoreboard import db
from scoreboard.errors import LedgerError
from scoreboard.models import Score
from .actions import append_action, find_undoable, mark_undone
from .counters import (
    apply_lock_timeout,
    hold_team_locks,
    lock_nonzero_scores,
    lock_score,
    set_score,
    team_exists,
    team_names,
)
from .guard import ledger_write_scope
from .rate_limit import admit

Result = Dict[str, Any]

RATE_LIMITED = 'rate_limited'
NOT_FOUND = 'not_found'
NO_OP = 'no_op'
NO_UNDOABLE_ACTION = 'no_undoable_action'

MESSAGES = {
    RATE_LIMITED: 'Rate limited. Please wait a few seconds.',
    NOT_FOUND: 'Team not found',
    NO_OP: 'Score is already at 0',
    NO_UNDOABLE_ACTION: 'No undoable action found',
}


def clamp_amount(amount: int) -> int:
    cfg = current_app.config
    low = int(cfg.get('MIN_AMOUNT', 1))
    high = int(cfg.get('MAX_AMOUNT', 100))
    return max(low, min(int(amount), high))


def _ok(**fields) -> Result:
    return {'success': True, **fields}


def _fail(error: str, message: Optional[str] = None) -> Result:
    return {'success': False, 'error': error, 'message': message or MESSAGES[error]}


def _rate_limited(op: str, client_id: str) -> Result:
    current_app.logger.info(f"[{op}] client={client_id} rate_limited")
    return _fail(RATE_LIMITED)


def _not_found(op: str, team: str, client_id: str) -> Result:
    current_app.logger.warning(f"[{op}] client={client_id} team={team!r} not_found")
    return _fail(NOT_FOUND)


@contextmanager
def _locked_transaction(op: str, teams: Iterable[str]):
    """Hold the team locks and the write scope until the block commits or bails out.

    Leaving the block without committing rolls back, which also releases
    any row locks taken by the reads inside it.
    """
    teams = sorted(set(teams))
    timeout_ms = int(current_app.config.get('LOCK_TIMEOUT_MS', 500))
    session = db.session
    try:
        with ledger_write_scope(session), hold_team_locks(teams, timeout_ms):
            try:
                apply_lock_timeout(timeout_ms)
                yield
            finally:
                session.rollback()
    except (SQLAlchemyError, LedgerError):
        session.rollback()
        current_app.logger.exception(f"[{op}] storage failure teams={teams}")
        raise


def _apply(score: Score, new_score: int, client_id: str, action_type: str,
           reverts_action_id: Optional[str] = None) -> Tuple[str, int, str]:
    """Write the counter and its action record, then commit both."""
    team = score.team
    prev_score = score.score
    delta = new_score - prev_score
    set_score(score, new_score)
    action = append_action(team, delta, prev_score, new_score, client_id, action_type, reverts_action_id)
    action_id = action.id
    db.session.commit()
    current_app.logger.info(
        f"[{action_type}] team={team} client={client_id} prev={prev_score} new={new_score} delta={delta} action={action_id}"
    )
    return team, prev_score, action_id


def increment_team(team: str, client_id: str, amount: int = 1) -> Result:
    amount = clamp_amount(amount)
    if not admit(client_id):
        return _rate_limited('increment', client_id)
    if not team_exists(team):
        return _not_found('increment', team, client_id)
    with _locked_transaction('increment', [team]):
        score = lock_score(team)
        if score is None:
            return _not_found('increment', team, client_id)
        new_score = score.score + amount
        _, prev_score, action_id = _apply(score, new_score, client_id, 'increment')
        return _ok(team=team, prev_score=prev_score, new_score=new_score, action_id=action_id)


def decrement_team(team: str, client_id: str, amount: int = 1) -> Result:
    amount = clamp_amount(amount)
    if not admit(client_id):
        return _rate_limited('decrement', client_id)
    if not team_exists(team):
        return _not_found('decrement', team, client_id)
    with _locked_transaction('decrement', [team]):
        score = lock_score(team)
        if score is None:
            return _not_found('decrement', team, client_id)
        # Floor at 0; the logged delta is what was actually removed
        new_score = max(score.score - amount, 0)
        if new_score == score.score:
            current_app.logger.info(f"[decrement] team={team} client={client_id} no_op at 0")
            return _fail(NO_OP)
        _, prev_score, action_id = _apply(score, new_score, client_id, 'decrement')
        return _ok(team=team, prev_score=prev_score, new_score=new_score, action_id=action_id)


def reset_team(team: str, client_id: str) -> Result:
    if not admit(client_id):
        return _rate_limited('reset', client_id)
    if not team_exists(team):
        return _not_found('reset', team, client_id)
    with _locked_transaction('reset', [team]):
        score = lock_score(team)
        if score is None:
            return _not_found('reset', team, client_id)
        if score.score == 0:
            return _ok(team=team, prev_score=0, new_score=0, action_id=None, message='Score is already 0')
        _, prev_score, action_id = _apply(score, 0, client_id, 'reset')
        return _ok(team=team, prev_score=prev_score, new_score=0, action_id=action_id)


def reset_all(client_id: str) -> Result:
    if not admit(client_id):
        return _rate_limited('reset_all', client_id)
    with _locked_transaction('reset_all', team_names()):
        reset = []
        for score in lock_nonzero_scores():
            prev_score = score.score
            set_score(score, 0)
            append_action(score.team, -prev_score, prev_score, 0, client_id, 'reset_all')
            reset.append(score.team)
        if reset:
            db.session.commit()
    current_app.logger.info(f"[reset_all] client={client_id} teams_reset={len(reset)} teams={reset}")
    return _ok(teams_reset=len(reset))


def undo_last_action(client_id: str) -> Result:
    """Revert the caller's newest eligible action.

    Eligible: not an undo itself, not already undone, created inside the undo
    window. The inverse delta is floored at 0 and the undo record logs what
    was actually applied. If a concurrent undo by the same client consumes
    the candidate, or moves it to another team, the lookup runs again until
    nothing eligible is left.
    """
    if not admit(client_id):
        return _rate_limited('undo', client_id)
    window = int(current_app.config.get('UNDO_WINDOW_SEC', 60))
    while True:
        candidate = find_undoable(client_id, window)
        if candidate is None:
            break
        team = candidate.team
        with _locked_transaction('undo', [team]):
            score = lock_score(team)
            action = find_undoable(client_id, window, lock=True)
            if action is None:
                break
            if action.team != team:
                continue
            reverted_action_id = action.id
            new_score = max(score.score - action.delta, 0)
            mark_undone(action)
            _, prev_score, undo_action_id = _apply(
                score, new_score, client_id, 'undo', reverts_action_id=reverted_action_id
            )
            return _ok(
                team=team,
                prev_score=prev_score,
                new_score=new_score,
                reverted_action_id=reverted_action_id,
                undo_action_id=undo_action_id,
            )
    current_app.logger.info(f"[undo] client={client_id} no_undoable_action window={window}s")
    return _fail(NO_UNDOABLE_ACTION, f"No undoable action found (must be within {window} seconds)")
