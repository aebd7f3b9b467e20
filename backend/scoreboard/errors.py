"""Unrecoverable ledger failures.

Expected outcomes (rate limiting, unknown team, no-op, nothing to undo) are
returned as result dicts by the engine. Only the conditions below are raised.
"""


class LedgerError(Exception):
    """Base class for storage-level failures surfaced by the mutation engine."""


class LockTimeoutError(LedgerError):
    def __init__(self, team: str, timeout_ms: int):
        super().__init__(f"Timed out after {timeout_ms}ms waiting for lock on team '{team}'")
        self.team = team
        self.timeout_ms = timeout_ms


class LedgerWriteError(LedgerError):
    """A write to scores/score_actions that bypassed the engine or broke the append-only rules."""
