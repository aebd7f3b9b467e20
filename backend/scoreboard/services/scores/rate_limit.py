from flask import current_app

from .actions import count_recent


def admit(client_id: str) -> bool:
    """Best-effort throttle derived from the action log.

    Counts the client's log entries inside the trailing window. The check is
    not part of the mutation's locked transaction, so a burst of concurrent
    calls can slip marginally past the cap.
    """
    cfg = current_app.config
    max_actions = int(cfg.get('RATE_LIMIT_MAX_ACTIONS', 5))
    window = int(cfg.get('RATE_LIMIT_WINDOW_SEC', 10))
    return count_recent(client_id, window) < max_actions
