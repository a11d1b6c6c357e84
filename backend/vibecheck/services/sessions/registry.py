import threading
from typing import Callable, Dict, List, Optional, Tuple

from vibecheck.errors import InvalidPhase, NotFound, SessionFull
from vibecheck.models import Phase, Session, generate_session_code


class SessionRegistry:
    """Active sessions and the participant -> session index.

    Bound to a Flask app with ``init_app`` and reachable afterwards as
    ``app.extensions['session_registry']``. ``shutdown`` tears down every
    session and must be called by whoever owns the process.
    """

    def __init__(self, app=None):
        self._sessions: Dict[str, Session] = {}
        self._participants: Dict[str, str] = {}
        self._teardown_hooks: List[Callable[[Session], None]] = []
        self._lock = threading.RLock()
        self.logger = None
        self.max_rounds = 3
        self.max_players = 8
        self.min_players = 2
        self.code_length = 6
        self.code_attempts = 20
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        cfg = app.config
        self.max_rounds = int(cfg.get('MAX_ROUNDS', 3))
        self.max_players = int(cfg.get('MAX_PLAYERS', 8))
        self.min_players = int(cfg.get('MIN_PLAYERS', 2))
        self.code_length = int(cfg.get('SESSION_CODE_LENGTH', 6))
        self.code_attempts = int(cfg.get('SESSION_CODE_ATTEMPTS', 20))
        self.logger = app.logger
        # A fresh app (e.g. per test) starts from an empty registry
        self.shutdown()
        app.extensions['session_registry'] = self

    def on_teardown(self, fn: Callable[[Session], None]) -> Callable[[Session], None]:
        """Register ``fn`` to run for every session that is torn down."""
        if fn not in self._teardown_hooks:
            self._teardown_hooks.append(fn)
        return fn

    # ---- Lookup ----

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(str(session_id).upper())

    def session_for(self, participant_id: str) -> Optional[Session]:
        with self._lock:
            code = self._participants.get(participant_id)
            return self._sessions.get(code) if code else None

    def active_sessions(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    # ---- Lifecycle ----

    def create_session(self, host_id: str, host_name: str) -> str:
        if self.session_for(host_id):
            self.leave_session(host_id)
        with self._lock:
            code = generate_session_code(lambda c: c in self._sessions,
                                         length=self.code_length, attempts=self.code_attempts)
            session = Session(code, host_id, max_rounds=self.max_rounds,
                              max_players=self.max_players, min_players=self.min_players)
            session.add_player(host_id, host_name)
            self._sessions[code] = session
            self._participants[host_id] = code
        self._log(f"[session-create] session={code} host={host_id}")
        return code

    def join_session(self, session_id: str, participant_id: str, name: str) -> Session:
        session = self.get(session_id)
        if not session:
            raise NotFound()
        current = self.session_for(participant_id)
        if current is not None and current is not session:
            self.leave_session(participant_id)
        with session.lock:
            if session.phase != Phase.LOBBY:
                raise InvalidPhase('Game already in progress')
            if session.player_count >= session.max_players and participant_id not in session.players:
                raise SessionFull()
            session.add_player(participant_id, name)
        with self._lock:
            # The session may have been torn down while we waited on its lock
            if self._sessions.get(session.id) is not session:
                session.remove_player(participant_id)
                raise NotFound()
            self._participants[participant_id] = session.id
        self._log(f"[session-join] session={session.id} player={participant_id} count={session.player_count}")
        return session

    def leave_session(self, participant_id: str) -> Tuple[Optional[Session], bool]:
        """Remove a participant from its session.

        Returns the session (or None if the participant was in none) and
        whether the session was torn down because it became empty.
        """
        with self._lock:
            code = self._participants.pop(participant_id, None)
            session = self._sessions.get(code) if code else None
        if session is None:
            return None, False
        with session.lock:
            session.remove_player(participant_id)
            empty = session.is_empty
        self._log(f"[session-leave] session={session.id} player={participant_id} remaining={session.player_count}")
        if empty:
            self._teardown(session)
        return session, empty

    def _teardown(self, session: Session) -> None:
        with self._lock:
            if self._sessions.get(session.id) is not session:
                return
            del self._sessions[session.id]
            for pid in [p for p, code in self._participants.items() if code == session.id]:
                del self._participants[pid]
        for hook in self._teardown_hooks:
            hook(session)
        self._log(f"[session-teardown] session={session.id}")

    def shutdown(self) -> None:
        for session in self.active_sessions():
            self._teardown(session)
        with self._lock:
            self._sessions.clear()
            self._participants.clear()

    def _log(self, message: str) -> None:
        if self.logger is not None:
            self.logger.info(message)
