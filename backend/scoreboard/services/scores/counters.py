import threading
from contextlib import contextmanager
from typing import Dict, Iterable, List, Mapping, Optional, Union

from sqlalchemy import text

from scoreboard import db
from scoreboard.errors import LockTimeoutError
from scoreboard.models import Score, utcnow
from .guard import ledger_write_scope


# Per-team locks held from read to commit. Row locks (SELECT ... FOR UPDATE)
# cover other processes on PostgreSQL; these cover threads in this process
# and backends that ignore FOR UPDATE (SQLite).
_team_locks: Dict[str, threading.Lock] = {}
_team_locks_guard = threading.Lock()


def _lock_for(team: str) -> threading.Lock:
    with _team_locks_guard:
        lock = _team_locks.get(team)
        if lock is None:
            lock = _team_locks[team] = threading.Lock()
        return lock


@contextmanager
def hold_team_locks(teams: Iterable[str], timeout_ms: int):
    """Acquire the in-process locks for ``teams`` in team-name order."""
    acquired: List[threading.Lock] = []
    try:
        for team in sorted(set(teams)):
            lock = _lock_for(team)
            if not lock.acquire(timeout=timeout_ms / 1000.0):
                raise LockTimeoutError(team, timeout_ms)
            acquired.append(lock)
        yield
    finally:
        for lock in reversed(acquired):
            lock.release()


def apply_lock_timeout(timeout_ms: int) -> None:
    """Bound row-lock waits for the current transaction where the backend supports it."""
    if db.session.get_bind().dialect.name == 'postgresql':
        db.session.execute(text(f"SET LOCAL lock_timeout = '{int(timeout_ms)}ms'"))


def team_names() -> List[str]:
    return [row.team for row in Score.query.order_by(Score.team).all()]


def team_exists(team: str) -> bool:
    return db.session.get(Score, team) is not None


def lock_score(team: str) -> Optional[Score]:
    """Row-lock and return the counter for ``team``, or None if unknown."""
    return (
        Score.query.filter_by(team=team)
        .populate_existing()
        .with_for_update()
        .first()
    )


def lock_nonzero_scores() -> List[Score]:
    """Row-lock every counter above zero, in team-name order."""
    return (
        Score.query.filter(Score.score > 0)
        .order_by(Score.team)
        .populate_existing()
        .with_for_update()
        .all()
    )


def set_score(score: Score, value: int) -> None:
    score.score = value
    score.updated_at = utcnow()
    db.session.add(score)


def list_scores() -> List[Score]:
    return Score.query.order_by(Score.team).all()


def seed_teams(teams: Union[Iterable[str], Mapping[str, int]]) -> int:
    """Insert any missing team rows; existing rows are left alone.

    Accepts team names (seeded at 0) or a mapping of team -> seed value.
    Returns the number of rows inserted.
    """
    seeds = dict(teams) if isinstance(teams, Mapping) else {t: 0 for t in teams}
    inserted = 0
    with ledger_write_scope(db.session):
        for team, value in seeds.items():
            if db.session.get(Score, team) is None:
                db.session.add(Score(team=team, score=int(value), updated_at=utcnow()))
                inserted += 1
        db.session.commit()
    return inserted
