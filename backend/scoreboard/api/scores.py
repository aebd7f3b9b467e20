from flask import Blueprint, jsonify, request, current_app
from scoreboard.services.scores import (
    NO_OP,
    NO_UNDOABLE_ACTION,
    NOT_FOUND,
    RATE_LIMITED,
    decrement_team,
    increment_team,
    list_scores,
    recent_actions,
    reset_all,
    reset_team,
    undo_last_action,
)


scores = Blueprint('scores', __name__)

MAX_HISTORY_LIMIT = 100

_STATUS_BY_ERROR = {
    RATE_LIMITED: 429,
    NOT_FOUND: 404,
    NO_OP: 409,
    NO_UNDOABLE_ACTION: 409,
}


def _bad_request(message):
    return jsonify({'success': False, 'error': 'bad_request', 'message': message}), 400


def _respond(result):
    if result.get('success'):
        return jsonify(result)
    return jsonify(result), _STATUS_BY_ERROR.get(result.get('error'), 400)


def _read_str(data, key):
    value = data.get(key)
    return value if isinstance(value, str) and value.strip() else None


def _read_amount(data):
    amount = data.get('amount', 1)
    # bool is an int subclass; reject it along with floats and strings
    if isinstance(amount, bool) or not isinstance(amount, int):
        return None
    return amount


@scores.route('', methods=['GET'])
def get_scores():
    return jsonify({'scores': [s.to_dict() for s in list_scores()]})


@scores.route('/actions', methods=['GET'])
def get_actions():
    default_limit = int(current_app.config.get('HISTORY_LIMIT', 20))
    limit = request.args.get('limit', default_limit, type=int)
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))
    return jsonify({'actions': [a.to_dict() for a in recent_actions(limit)]})


@scores.route('/increment', methods=['POST'])
def increment():
    data = request.get_json(silent=True) or {}
    team = _read_str(data, 'team')
    client_id = _read_str(data, 'client_id')
    if not all([team, client_id]):
        return _bad_request('team and client_id are required')
    amount = _read_amount(data)
    if amount is None:
        return _bad_request('amount must be an integer')
    return _respond(increment_team(team, client_id, amount))


@scores.route('/decrement', methods=['POST'])
def decrement():
    data = request.get_json(silent=True) or {}
    team = _read_str(data, 'team')
    client_id = _read_str(data, 'client_id')
    if not all([team, client_id]):
        return _bad_request('team and client_id are required')
    amount = _read_amount(data)
    if amount is None:
        return _bad_request('amount must be an integer')
    return _respond(decrement_team(team, client_id, amount))


@scores.route('/reset', methods=['POST'])
def reset():
    data = request.get_json(silent=True) or {}
    team = _read_str(data, 'team')
    client_id = _read_str(data, 'client_id')
    if not all([team, client_id]):
        return _bad_request('team and client_id are required')
    return _respond(reset_team(team, client_id))


@scores.route('/reset_all', methods=['POST'])
def reset_all_teams():
    data = request.get_json(silent=True) or {}
    client_id = _read_str(data, 'client_id')
    if not client_id:
        return _bad_request('client_id is required')
    return _respond(reset_all(client_id))


@scores.route('/undo', methods=['POST'])
def undo():
    data = request.get_json(silent=True) or {}
    client_id = _read_str(data, 'client_id')
    if not client_id:
        return _bad_request('client_id is required')
    return _respond(undo_last_action(client_id))
