"""Score ledger services: counters, action log, throttling and the mutation engine.

Routes and socket handlers import from here; nothing in this package knows
about HTTP or Socket.IO.
"""

from .engine import (
    NO_OP,
    NO_UNDOABLE_ACTION,
    NOT_FOUND,
    RATE_LIMITED,
    clamp_amount,
    decrement_team,
    increment_team,
    reset_all,
    reset_team,
    undo_last_action,
)
from .counters import list_scores, seed_teams
from .actions import recent_actions

__all__ = [
    'NO_OP',
    'NO_UNDOABLE_ACTION',
    'NOT_FOUND',
    'RATE_LIMITED',
    'clamp_amount',
    'decrement_team',
    'increment_team',
    'reset_all',
    'reset_team',
    'undo_last_action',
    'list_scores',
    'seed_teams',
    'recent_actions',
]
