from functools import wraps
from flask import current_app, request
from flask_socketio import emit, join_room, leave_room
from vibecheck import socketio
from vibecheck.catalog import catalog_payload
from vibecheck.errors import (
    BadRequest,
    GameError,
    InvalidPhase,
    NotFound,
    PowerUpUnavailable,
    SelfTargetingForbidden,
)
from vibecheck.models import Phase
from vibecheck.services.sessions.scheduler import NAMESPACE, room_for

MAX_NAME_LENGTH = 32


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def _registry():
    return current_app.extensions['session_registry']

def _scheduler():
    return current_app.extensions['phase_scheduler']

def _field(data, key):
    """Read ``key`` from a dict payload, or take a bare payload as the value."""
    if isinstance(data, dict):
        return data.get(key)
    return data

def _player_name(data) -> str:
    name = _field(data, 'player_name')
    name = str(name).strip()[:MAX_NAME_LENGTH] if name is not None else ''
    if not name:
        raise BadRequest('player_name is required')
    return name

def _current_session():
    session = _registry().session_for(_get_sid())
    if not session:
        raise NotFound('You are not in a session')
    return session

def reports_failures(handler):
    """Turn a GameError into an ``action_failed`` event for the caller only."""
    @wraps(handler)
    def wrapper(*args, **kwargs):
        try:
            return handler(*args, **kwargs)
        except GameError as exc:
            current_app.logger.info(f"[action-failed] sid={_get_sid()} action={handler.__name__} reason={exc.reason}")
            emit('action_failed', exc.to_dict())
    return wrapper


def handle_connect(auth=None):
    emit('connected', {'message': f'Connected to {NAMESPACE}', 'player_id': _get_sid()})


def handle_disconnect(reason=None):
    _leave(_get_sid(), in_room=False)


@reports_failures
def handle_create_session(data):
    sid = _get_sid()
    name = _player_name(data)
    if _registry().session_for(sid):
        _leave(sid)
    code = _registry().create_session(sid, name)
    session = _registry().get(code)
    join_room(room_for(code))
    with session.lock:
        emit('session_created', {'session_id': code, 'player_id': sid, 'state': session.snapshot()})


@reports_failures
def handle_join_session(data):
    if not isinstance(data, dict) or not data.get('session_id'):
        raise BadRequest('session_id is required')
    sid = _get_sid()
    name = _player_name(data)
    previous = _registry().session_for(sid)
    if previous and previous.id != str(data['session_id']).upper():
        _leave(sid)
    session = _registry().join_session(data['session_id'], sid, name)
    join_room(room_for(session.id))
    with session.lock:
        emit('session_joined', {'session_id': session.id, 'player_id': sid, 'state': session.snapshot()})
        _scheduler().broadcast_state(session)


@reports_failures
def handle_leave_session(data=None):
    session = _leave(_get_sid())
    emit('session_left', {'session_id': session.id if session else None})


@reports_failures
def handle_start_game(data=None):
    _scheduler().start_game(_current_session(), _get_sid())


@reports_failures
def handle_submit_response(data):
    reaction_id = _field(data, 'reaction_id')
    if reaction_id is None:
        raise BadRequest('reaction_id is required')
    session = _current_session()
    with session.lock:
        if not session.submit_response(_get_sid(), reaction_id):
            raise InvalidPhase('Responses are closed')
        _scheduler().broadcast_state(session)


@reports_failures
def handle_submit_vote(data):
    sid = _get_sid()
    target_id = _field(data, 'target_id')
    if not target_id or not isinstance(target_id, str):
        raise BadRequest('target_id is required')
    if target_id == sid:
        raise SelfTargetingForbidden()
    session = _current_session()
    with session.lock:
        if session.phase != Phase.VOTING:
            raise InvalidPhase('Voting is closed')
        if not session.submit_vote(sid, target_id):
            raise BadRequest('Unknown vote target')
        _scheduler().broadcast_state(session)


@reports_failures
def handle_use_power_up(data):
    kind = _field(data, 'kind')
    if not kind or not isinstance(kind, str):
        raise BadRequest('kind is required')
    session = _current_session()
    with session.lock:
        if not session.use_power_up(_get_sid(), kind):
            raise PowerUpUnavailable()
        _scheduler().broadcast_state(session)


def handle_request_catalog(data=None):
    emit('catalog_data', catalog_payload())


def _leave(sid: str, in_room: bool = True):
    session, torn_down = _registry().leave_session(sid)
    if session is None:
        return None
    if in_room:
        leave_room(room_for(session.id))
    if not torn_down:
        with session.lock:
            _scheduler().broadcast_state(session)
    return session


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('create_session', handle_create_session, namespace=NAMESPACE)
    socketio.on_event('join_session', handle_join_session, namespace=NAMESPACE)
    socketio.on_event('leave_session', handle_leave_session, namespace=NAMESPACE)
    socketio.on_event('start_game', handle_start_game, namespace=NAMESPACE)
    socketio.on_event('submit_response', handle_submit_response, namespace=NAMESPACE)
    socketio.on_event('submit_vote', handle_submit_vote, namespace=NAMESPACE)
    socketio.on_event('use_power_up', handle_use_power_up, namespace=NAMESPACE)
    socketio.on_event('request_catalog', handle_request_catalog, namespace=NAMESPACE)
