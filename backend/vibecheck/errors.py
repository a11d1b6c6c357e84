"""Recoverable game errors.

Each error carries a stable ``reason`` code that is sent to the
originating participant in an ``action_failed`` event.
"""


class GameError(Exception):
    reason = 'internal_error'
    default_message = 'Something went wrong'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'reason': self.reason, 'message': self.message}


class BadRequest(GameError):
    reason = 'bad_request'
    default_message = 'Malformed request'


class NotFound(GameError):
    reason = 'not_found'
    default_message = 'Session not found'


class InvalidPhase(GameError):
    reason = 'invalid_phase'
    default_message = 'Action not allowed in the current phase'


class SessionFull(GameError):
    reason = 'session_full'
    default_message = 'Session is full'


class SelfTargetingForbidden(GameError):
    reason = 'self_targeting_forbidden'
    default_message = 'You cannot vote for yourself'


class Unauthorized(GameError):
    reason = 'unauthorized'
    default_message = 'Only the host may do that'


class NotEnoughPlayers(GameError):
    reason = 'not_enough_players'
    default_message = 'Not enough players to start'


class PowerUpUnavailable(GameError):
    reason = 'power_up_unavailable'
    default_message = 'Power-up not available'


class InternalError(GameError):
    reason = 'internal_error'
    default_message = 'Could not allocate a session code'
