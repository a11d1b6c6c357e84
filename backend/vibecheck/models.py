import random
import string
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional

from vibecheck import catalog
from vibecheck.errors import InternalError, InvalidPhase, SessionFull
from vibecheck.services.sessions.scoring import final_standings, score_round

ANONYMOUS_NAME = 'Anonymous'


class Phase(str, Enum):
    LOBBY = 'lobby'
    RESPONDING = 'responding'
    VOTING = 'voting'
    ROUND_RESULTS = 'round_results'
    ENDED = 'ended'


class Player:
    def __init__(self, id: str, name: str):
        self.id = id
        self.name = name

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
        }


class Modifier:
    def __init__(self, kind: str, used: bool = False):
        self.kind = kind
        self.used = used

    def to_dict(self):
        info = catalog.modifier_info(self.kind) or {}
        return {
            'kind': self.kind,
            'used': self.used,
            'name': info.get('name'),
            'description': info.get('description'),
        }


def generate_session_code(exists: Callable[[str], bool], length: int = 6, attempts: int = 20,
                          rng: Optional[random.Random] = None) -> str:
    """Generate a short session code not currently in use."""
    rng = rng or random
    alphabet = string.ascii_uppercase + string.digits
    for _ in range(attempts):
        code = ''.join(rng.choices(alphabet, k=length))
        if not exists(code):
            return code
    raise InternalError(f'No free session code after {attempts} attempts')


class Session:
    """Authoritative state for one game, from lobby to final standings.

    Mutators never block or schedule anything; timing lives in the
    scheduler. Callers running on several threads hold ``lock`` around
    every mutation and the broadcast that follows it.
    """

    def __init__(self, id: str, host_id: str, max_rounds: int = 3, max_players: int = 8,
                 min_players: int = 2, rng: Optional[random.Random] = None):
        self.id = id
        self.host_id = host_id
        self.max_rounds = max_rounds
        self.max_players = max_players
        self.min_players = min_players
        self.phase = Phase.LOBBY
        self.round = 0
        self.prompt: Optional[str] = None
        self.players: Dict[str, Player] = {}
        self.submissions: Dict[str, object] = {}
        self.votes: Dict[str, str] = {}
        self.modifiers: Dict[str, Modifier] = {}
        self.scores: Dict[str, int] = {}
        # Pending timer, set by the scheduler
        self.deadline: Optional[float] = None
        self.next_phase: Optional[Phase] = None
        self.lock = threading.RLock()
        self._rng = rng or random.Random()

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_empty(self) -> bool:
        return not self.players

    def is_host(self, player_id: str) -> bool:
        return player_id == self.host_id

    # ---- Membership ----

    def add_player(self, player_id: str, name: str) -> Player:
        if self.phase != Phase.LOBBY:
            raise InvalidPhase('Game already in progress')
        if player_id in self.players:
            return self.players[player_id]
        if len(self.players) >= self.max_players:
            raise SessionFull()
        player = Player(player_id, name)
        self.players[player_id] = player
        self.scores[player_id] = 0
        return player

    def remove_player(self, player_id: str) -> bool:
        if player_id not in self.players:
            return False
        del self.players[player_id]
        self.scores.pop(player_id, None)
        self.submissions.pop(player_id, None)
        self.modifiers.pop(player_id, None)
        self.votes.pop(player_id, None)
        # Votes cast for the leaver go too, so those voters may vote again
        for voter in [v for v, target in self.votes.items() if target == player_id]:
            del self.votes[voter]
        if player_id == self.host_id and self.players:
            self.host_id = next(iter(self.players))
        return True

    # ---- Phase transitions ----

    def start_game(self) -> bool:
        if self.phase != Phase.LOBBY or len(self.players) < self.min_players:
            return False
        self.phase = Phase.RESPONDING
        self.round = 1
        self.prompt = catalog.draw_prompt(self._rng)
        self._assign_modifiers()
        return True

    def open_voting(self) -> None:
        if self.phase != Phase.RESPONDING:
            raise InvalidPhase(f'Cannot open voting from {self.phase.value}')
        self.phase = Phase.VOTING

    def show_results(self) -> None:
        if self.phase != Phase.VOTING:
            raise InvalidPhase(f'Cannot show results from {self.phase.value}')
        self.phase = Phase.ROUND_RESULTS

    def advance_round(self) -> bool:
        """Clear the round and start the next one if any remain.

        Returns False once ``max_rounds`` have been played; the phase is then
        left for the caller to end after announcing the final standings.
        """
        if self.phase in (Phase.LOBBY, Phase.ENDED):
            raise InvalidPhase(f'Cannot advance round from {self.phase.value}')
        self.submissions.clear()
        self.votes.clear()
        self.modifiers.clear()
        if self.round < self.max_rounds:
            self.round += 1
            self.prompt = catalog.draw_prompt(self._rng)
            self._assign_modifiers()
            self.phase = Phase.RESPONDING
            return True
        return False

    def end_game(self) -> None:
        if self.phase != Phase.ROUND_RESULTS:
            raise InvalidPhase(f'Cannot end game from {self.phase.value}')
        self.phase = Phase.ENDED
        self.deadline = None
        self.next_phase = None

    # ---- Player actions ----

    def submit_response(self, player_id: str, reaction_id) -> bool:
        if self.phase != Phase.RESPONDING or player_id not in self.players:
            return False
        self.submissions[player_id] = reaction_id
        return True

    def submit_vote(self, voter_id: str, target_id: str) -> bool:
        if voter_id == target_id:
            return False
        if self.phase != Phase.VOTING:
            return False
        if voter_id not in self.players or target_id not in self.players:
            return False
        self.votes[voter_id] = target_id
        return True

    def use_power_up(self, player_id: str, kind: str) -> bool:
        modifier = self.modifiers.get(player_id)
        if not modifier or modifier.kind != kind or modifier.used:
            return False
        modifier.used = True
        return True

    # ---- Scoring ----

    def compute_round_results(self) -> List[dict]:
        return score_round(self)

    def final_standings(self) -> List[dict]:
        return final_standings(self)

    # ---- Views ----

    def _assign_modifiers(self) -> None:
        for player_id in self.players:
            self.modifiers[player_id] = Modifier(catalog.draw_modifier_kind(self._rng))

    def _is_anonymous(self, player_id: str) -> bool:
        modifier = self.modifiers.get(player_id)
        return bool(modifier and modifier.kind == catalog.ANONYMOUS_RESPONSE and modifier.used)

    def _voting_view(self) -> List[dict]:
        if self.phase != Phase.VOTING:
            return []
        view = []
        for player_id, reaction_id in self.submissions.items():
            player = self.players.get(player_id)
            view.append({
                'player_id': player_id,
                'player_name': ANONYMOUS_NAME if self._is_anonymous(player_id) else (player.name if player else None),
                'reaction': catalog.reaction_by_id(reaction_id),
            })
        return view

    def snapshot(self) -> dict:
        players_serialized = []
        for p in self.players.values():
            pd = p.to_dict()
            pd['is_host'] = self.is_host(p.id)
            modifier = self.modifiers.get(p.id)
            if modifier:
                pd['modifier'] = modifier.to_dict()
            players_serialized.append(pd)

        return {
            'id': self.id,
            'host_id': self.host_id,
            'phase': self.phase.value,
            'round': self.round,
            'max_rounds': self.max_rounds,
            'prompt': self.prompt,
            'deadline': self.deadline,
            'players': players_serialized,
            'scores': dict(self.scores),
            'responded_ids': list(self.submissions.keys()),
            'voted_ids': list(self.votes.keys()),
            'voting_view': self._voting_view(),
        }
