from flask import Blueprint, current_app, jsonify
from vibecheck.catalog import catalog_payload

sessions = Blueprint('sessions', __name__)


def _registry():
    return current_app.extensions['session_registry']


@sessions.route('/catalog', methods=['GET'])
def get_catalog():
    return jsonify(catalog_payload())


@sessions.route('/sessions', methods=['GET'])
def list_sessions():
    """
    Lists active sessions with their phase and head count.
    """
    result = []
    for session in _registry().active_sessions():
        with session.lock:
            result.append({
                'session_id': session.id,
                'phase': session.phase.value,
                'player_count': session.player_count,
            })
    return jsonify(result)


@sessions.route('/sessions/<string:session_id>/state', methods=['GET'])
def get_session_state(session_id):
    session = _registry().get(session_id)
    if not session:
        return jsonify({'error': 'Session not found'}), 404
    with session.lock:
        payload = session.snapshot()
    # Include phase durations so clients can show countdowns
    payload['durations'] = current_app.extensions['phase_scheduler'].durations()
    return jsonify(payload)
