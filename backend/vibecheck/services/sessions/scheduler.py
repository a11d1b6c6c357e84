import itertools
import threading
import time
from typing import Dict, Optional, Tuple

from vibecheck.errors import InvalidPhase, NotEnoughPlayers, Unauthorized
from vibecheck.models import Phase, Session

NAMESPACE = '/ws'


def room_for(session_id: str) -> str:
    return f"session:{session_id}"


class PhaseScheduler:
    """Drives sessions through their phases on fixed timers.

    One pending one-shot timer per session, keyed by session id:
    responding -> voting -> round_results -> responding (next round) or
    ended. Each schedule records ``session.deadline`` and
    ``session.next_phase`` and a fresh token; a timer that fires with a
    stale token, for a deleted session, or for a session whose phase or
    round moved on is logged and dropped.

    Background tasks are not started under TESTING unless
    ENABLE_SCHEDULER_IN_TESTS is set; ``fire_pending`` runs the pending
    step synchronously instead.
    """

    def __init__(self, app=None, socketio=None, registry=None):
        self.app = None
        self.socketio = None
        self.registry = None
        self._timers: Dict[str, Tuple[int, Phase, int]] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app, socketio, registry)

    def init_app(self, app, socketio, registry) -> None:
        self.app = app
        self.socketio = socketio
        self.registry = registry
        with self._lock:
            self._timers.clear()
        registry.on_teardown(self._on_teardown)
        app.extensions['phase_scheduler'] = self

    # ---- Config ----

    def durations(self) -> Dict[str, float]:
        cfg = self.app.config
        return {
            Phase.RESPONDING.value: float(cfg.get('RESPONSE_DURATION_SEC', 60)),
            Phase.VOTING.value: float(cfg.get('VOTING_DURATION_SEC', 45)),
            Phase.ROUND_RESULTS.value: float(cfg.get('RESULTS_DURATION_SEC', 3)),
        }

    def _background_enabled(self) -> bool:
        cfg = self.app.config
        return not (cfg.get('TESTING') and not cfg.get('ENABLE_SCHEDULER_IN_TESTS'))

    # ---- Broadcasting ----

    def emit(self, session: Session, event: str, payload) -> None:
        self.socketio.emit(event, payload, to=room_for(session.id), namespace=NAMESPACE)

    def broadcast_state(self, session: Session) -> None:
        self.emit(session, 'state_updated', session.snapshot())

    def _announce_phase(self, session: Session) -> None:
        self.broadcast_state(session)
        payload = {'phase': session.phase.value, 'deadline': session.deadline}
        if session.phase == Phase.RESPONDING:
            payload['prompt'] = session.prompt
        self.emit(session, 'phase_changed', payload)

    # ---- Game start ----

    def start_game(self, session: Session, requester_id: str) -> None:
        with session.lock:
            if not session.is_host(requester_id):
                raise Unauthorized()
            if session.phase != Phase.LOBBY:
                raise InvalidPhase('Game has already started')
            if not session.start_game():
                raise NotEnoughPlayers(f'At least {session.min_players} players are required to start')
            self.app.logger.info(f"[game-start] session={session.id} players={session.player_count}")
            self.schedule(session)
            self._announce_phase(session)

    # ---- Timers ----

    def schedule(self, session: Session) -> None:
        """Arm the timer that moves ``session`` out of its current phase."""
        phase = session.phase
        if phase == Phase.RESPONDING:
            target = Phase.VOTING
        elif phase == Phase.VOTING:
            target = Phase.ROUND_RESULTS
        elif phase == Phase.ROUND_RESULTS:
            target = Phase.RESPONDING
        else:
            return
        duration = self.durations()[phase.value]
        token = next(self._tokens)
        with self._lock:
            self._timers[session.id] = (token, phase, session.round)
        session.deadline = time.time() + duration
        session.next_phase = target
        self.app.logger.info(
            f"[timer-set] session={session.id} phase={phase.value} round={session.round} "
            f"duration={duration}s deadline={session.deadline}"
        )
        if self._background_enabled():
            self.socketio.start_background_task(self._worker, session.id, token, duration)

    def cancel(self, session_id: str) -> bool:
        with self._lock:
            pending = self._timers.pop(session_id, None)
        if pending:
            self.app.logger.info(f"[timer-cancel] session={session_id} phase={pending[1].value} round={pending[2]}")
        return pending is not None

    def pending(self, session_id: str) -> Optional[Tuple[int, Phase, int]]:
        with self._lock:
            return self._timers.get(session_id)

    def fire_pending(self, session_id: str) -> bool:
        pending = self.pending(session_id)
        if not pending:
            return False
        return self.fire(session_id, pending[0])

    def _on_teardown(self, session: Session) -> None:
        self.cancel(session.id)
        with session.lock:
            session.deadline = None
            session.next_phase = None

    def _worker(self, session_id: str, token: int, delay: float) -> None:
        hb = float(self.app.config.get('TIMER_HEARTBEAT_SEC', 0) or 0)
        if hb > 0:
            slept = 0.0
            while slept < delay:
                step = min(hb, delay - slept)
                self.socketio.sleep(step)
                slept += step
                self.app.logger.info(f"[timer-heartbeat] session={session_id} remaining={max(0, delay - slept)}s")
        else:
            self.socketio.sleep(delay)
        self.fire(session_id, token)

    def fire(self, session_id: str, token: int) -> bool:
        """Run the step for timer ``token`` if it is still the current one."""
        session = self.registry.get(session_id)
        if session is None:
            with self._lock:
                current = self._timers.get(session_id)
                if current and current[0] == token:
                    del self._timers[session_id]
            self.app.logger.info(f"[timer-abort] session={session_id} session gone")
            return False

        with session.lock:
            with self._lock:
                current = self._timers.get(session_id)
                if not current or current[0] != token:
                    self.app.logger.info(f"[timer-abort] session={session_id} token={token} cancelled or superseded")
                    return False
                del self._timers[session_id]
            _, expected_phase, expected_round = current
            self.app.logger.info(
                f"[timer-fire] session={session_id} expected_phase={expected_phase.value} "
                f"expected_round={expected_round} actual_phase={session.phase.value} actual_round={session.round}"
            )
            if session.phase != expected_phase or session.round != expected_round:
                self.app.logger.info(f"[timer-abort] session={session_id} mismatch phase/round")
                return False
            # Emptied sessions are on their way to teardown
            if session.is_empty or self.registry.get(session_id) is not session:
                self.app.logger.info(f"[timer-abort] session={session_id} session torn down")
                return False
            self._step(session)
            return True

    def _step(self, session: Session) -> None:
        if session.phase == Phase.RESPONDING:
            session.open_voting()
            self.schedule(session)
            self._announce_phase(session)
            return

        if session.phase == Phase.VOTING:
            ranking = session.compute_round_results()
            self.emit(session, 'round_results', {'round': session.round, 'ranking': ranking})
            session.show_results()
            self.schedule(session)
            self._announce_phase(session)
            return

        if session.phase == Phase.ROUND_RESULTS:
            if session.advance_round():
                self.schedule(session)
                self._announce_phase(session)
                return
            standings = session.final_standings()
            self.emit(session, 'game_ended', {'standings': standings})
            session.end_game()
            self.app.logger.info(f"[finish] session={session.id} finished at round={session.round}")
            self._announce_phase(session)
