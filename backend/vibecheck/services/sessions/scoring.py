from typing import Dict, List, Mapping

from vibecheck.catalog import DOUBLE_POINTS


def tally_votes(votes: Mapping[str, str]) -> Dict[str, int]:
    """Count votes received per target.

    The result is ordered by the first vote each target received, which is
    the tie-break order used by the round ranking.
    """
    tally: Dict[str, int] = {}
    for _voter, target in votes.items():
        tally[target] = tally.get(target, 0) + 1
    return tally


def score_round(session) -> List[dict]:
    """Apply scoring for the current round and return the ranking.

    +1 per vote received; doubled when the target used a double-points
    modifier this round. Players with no votes are left out of the ranking.
    """
    tally = tally_votes(session.votes)
    for player_id, received in tally.items():
        points = received
        modifier = session.modifiers.get(player_id)
        if modifier and modifier.kind == DOUBLE_POINTS and modifier.used:
            points *= 2
        session.scores[player_id] = session.scores.get(player_id, 0) + points

    ranked = sorted(tally.items(), key=lambda item: item[1], reverse=True)
    return [
        {
            'player_id': player_id,
            'player_name': session.players[player_id].name if player_id in session.players else None,
            'votes_this_round': received,
            'total_score': session.scores.get(player_id, 0),
        }
        for player_id, received in ranked
    ]


def final_standings(session) -> List[dict]:
    """Every current player by cumulative score, join order breaking ties."""
    ranked = sorted(session.players.values(), key=lambda p: session.scores.get(p.id, 0), reverse=True)
    return [
        {'player_id': p.id, 'player_name': p.name, 'score': session.scores.get(p.id, 0)}
        for p in ranked
    ]
