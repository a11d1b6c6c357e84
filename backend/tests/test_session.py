import random
import string

import pytest

from vibecheck import catalog
from vibecheck.errors import InternalError, InvalidPhase, SessionFull
from vibecheck.models import ANONYMOUS_NAME, Modifier, Phase, Session, generate_session_code


def make_session(*names, **kwargs):
    session = Session('ABC123', 'p0', rng=random.Random(7), **kwargs)
    for idx, name in enumerate(names):
        session.add_player(f'p{idx}', name)
    return session


def play_to_voting(session, responses=None):
    assert session.start_game()
    for pid, reaction in (responses or {}).items():
        assert session.submit_response(pid, reaction)
    session.open_voting()


def test_add_players_until_capacity():
    session = make_session()
    for idx in range(8):
        session.add_player(f'p{idx}', f'Player {idx}')
        assert session.player_count == idx + 1
    with pytest.raises(SessionFull):
        session.add_player('p8', 'One too many')
    assert session.player_count == 8
    assert list(session.players) == [f'p{idx}' for idx in range(8)]
    assert all(session.scores[pid] == 0 for pid in session.players)


def test_names_may_collide():
    session = make_session('Sam', 'Sam')
    assert [p.name for p in session.players.values()] == ['Sam', 'Sam']


def test_add_player_rejected_after_start():
    session = make_session('Alice', 'Bob')
    assert session.start_game()
    with pytest.raises(InvalidPhase):
        session.add_player('p2', 'Late')
    assert session.player_count == 2


def test_start_game_needs_two_players():
    session = make_session('Alice')
    assert session.start_game() is False
    assert session.phase == Phase.LOBBY
    assert session.round == 0

    session.add_player('p1', 'Bob')
    assert session.start_game() is True
    assert session.phase == Phase.RESPONDING
    assert session.round == 1
    assert session.prompt in catalog.PROMPTS
    assert set(session.modifiers) == {'p0', 'p1'}
    assert all(not m.used for m in session.modifiers.values())
    # A second start is rejected
    assert session.start_game() is False


def test_submit_response_phase_gated_and_last_write_wins():
    session = make_session('Alice', 'Bob')
    assert session.submit_response('p0', 3) is False
    session.start_game()
    assert session.submit_response('p0', 3)
    assert session.submit_response('p0', 5)
    assert session.submissions == {'p0': 5}
    assert session.submit_response('ghost', 1) is False
    session.open_voting()
    assert session.submit_response('p1', 2) is False
    assert 'p1' not in session.submissions


def test_self_vote_always_fails():
    session = make_session('Alice', 'Bob', 'Cara')
    play_to_voting(session)
    assert session.submit_vote('p1', 'p0')
    before = dict(session.votes)
    for pid in session.players:
        assert session.submit_vote(pid, pid) is False
    assert session.votes == before


def test_submit_vote_gates():
    session = make_session('Alice', 'Bob')
    session.start_game()
    assert session.submit_vote('p0', 'p1') is False
    session.open_voting()
    assert session.submit_vote('p0', 'nobody') is False
    # Target need not have submitted a response
    assert session.submit_vote('p0', 'p1')
    assert session.submit_vote('p1', 'p0')
    assert session.votes == {'p0': 'p1', 'p1': 'p0'}


def test_use_power_up():
    session = make_session('Alice', 'Bob')
    assert session.use_power_up('p0', catalog.DOUBLE_POINTS) is False
    session.start_game()
    session.modifiers['p0'] = Modifier(catalog.DOUBLE_POINTS)
    assert session.use_power_up('p0', catalog.ANONYMOUS_RESPONSE) is False
    assert session.use_power_up('p0', catalog.DOUBLE_POINTS) is True
    assert session.modifiers['p0'].used
    assert session.use_power_up('p0', catalog.DOUBLE_POINTS) is False


def test_round_results_sum_matches_votes_cast():
    session = make_session('Alice', 'Bob', 'Cara', 'Dan')
    play_to_voting(session)
    session.submit_vote('p0', 'p2')
    session.submit_vote('p1', 'p2')
    session.submit_vote('p2', 'p3')
    session.submit_vote('p3', 'p2')
    ranking = session.compute_round_results()
    assert sum(entry['votes_this_round'] for entry in ranking) == len(session.votes)
    assert [entry['player_id'] for entry in ranking] == ['p2', 'p3']
    assert ranking[0] == {'player_id': 'p2', 'player_name': 'Cara', 'votes_this_round': 3, 'total_score': 3}
    # No votes received: left out of the ranking, score unchanged
    assert session.scores['p0'] == 0
    assert session.phase == Phase.VOTING


def test_round_results_ties_keep_first_vote_order():
    session = make_session('Alice', 'Bob', 'Cara')
    play_to_voting(session)
    session.submit_vote('p0', 'p2')
    session.submit_vote('p2', 'p1')
    session.submit_vote('p1', 'p0')
    ranking = session.compute_round_results()
    assert [entry['player_id'] for entry in ranking] == ['p2', 'p1', 'p0']


def test_double_points_only_when_used():
    session = make_session('Alice', 'Bob', 'Cara')
    play_to_voting(session)
    session.modifiers['p0'] = Modifier(catalog.DOUBLE_POINTS, used=True)
    session.modifiers['p1'] = Modifier(catalog.DOUBLE_POINTS, used=False)
    session.submit_vote('p1', 'p0')
    session.submit_vote('p2', 'p0')
    session.submit_vote('p0', 'p1')
    ranking = session.compute_round_results()
    assert session.scores == {'p0': 4, 'p1': 1, 'p2': 0}
    assert ranking[0]['votes_this_round'] == 2
    assert ranking[0]['total_score'] == 4


def test_two_player_scenario():
    session = make_session('A', 'B')
    assert session.start_game()
    assert session.round == 1
    for played, expected_more in enumerate((True, True, False), start=1):
        session.submit_response('p0', 3)
        session.submit_response('p1', 7)
        session.open_voting()
        session.submit_vote('p0', 'p1')
        session.submit_vote('p1', 'p0')
        ranking = session.compute_round_results()
        assert sorted(e['votes_this_round'] for e in ranking) == [1, 1]
        assert session.scores == {'p0': played, 'p1': played}
        session.show_results()
        assert session.advance_round() is expected_more
        if expected_more:
            assert session.round == played + 1
            assert session.phase == Phase.RESPONDING
    session.end_game()
    assert session.phase == Phase.ENDED
    # No modifier was used, so each round added exactly one point
    assert session.scores == {'p0': 3, 'p1': 3}
    standings = session.final_standings()
    assert [s['player_id'] for s in standings] == ['p0', 'p1']


def test_advance_round_drains_and_clears_each_boundary():
    session = make_session('Alice', 'Bob')
    session.start_game()
    results = []
    for _ in range(session.max_rounds):
        session.submit_response('p0', 1)
        session.open_voting()
        session.submit_vote('p1', 'p0')
        session.show_results()
        results.append(session.advance_round())
        assert session.submissions == {}
        assert session.votes == {}
        if results[-1]:
            assert set(session.modifiers) == {'p0', 'p1'}
        else:
            assert session.modifiers == {}
    assert results == [True, True, False]
    assert session.round == session.max_rounds
    assert session.phase == Phase.ROUND_RESULTS
    session.end_game()
    assert session.phase == Phase.ENDED
    with pytest.raises(InvalidPhase):
        session.advance_round()


def test_phase_transitions_are_ordered():
    session = make_session('Alice', 'Bob')
    with pytest.raises(InvalidPhase):
        session.open_voting()
    with pytest.raises(InvalidPhase):
        session.advance_round()
    session.start_game()
    with pytest.raises(InvalidPhase):
        session.show_results()
    with pytest.raises(InvalidPhase):
        session.end_game()
    session.open_voting()
    with pytest.raises(InvalidPhase):
        session.open_voting()


def test_remove_voter_mid_voting():
    session = make_session('Alice', 'Bob', 'Cara')
    play_to_voting(session, {'p0': 1, 'p1': 2, 'p2': 3})
    session.submit_vote('p0', 'p1')
    session.submit_vote('p2', 'p1')
    session.submit_vote('p1', 'p0')

    assert session.remove_player('p2')
    assert session.votes == {'p0': 'p1', 'p1': 'p0'}
    assert 'p2' not in session.scores
    assert 'p2' not in session.submissions
    assert 'p2' not in session.modifiers
    assert session.phase == Phase.VOTING
    ranking = session.compute_round_results()
    assert {e['player_id']: e['votes_this_round'] for e in ranking} == {'p1': 1, 'p0': 1}


def test_remove_player_drops_votes_for_them():
    session = make_session('Alice', 'Bob', 'Cara')
    play_to_voting(session)
    session.submit_vote('p0', 'p2')
    session.submit_vote('p1', 'p0')
    session.remove_player('p2')
    assert session.votes == {'p1': 'p0'}


def test_remove_player_is_idempotent_and_keeps_phase():
    session = make_session('Alice', 'Bob')
    session.start_game()
    assert session.remove_player('p1')
    assert session.remove_player('p1') is False
    assert session.remove_player('p0')
    assert session.is_empty
    assert session.phase == Phase.RESPONDING


def test_host_passes_to_earliest_remaining_player():
    session = make_session('Alice', 'Bob', 'Cara')
    assert session.is_host('p0')
    session.remove_player('p0')
    assert session.host_id == 'p1'
    session.remove_player('p2')
    assert session.host_id == 'p1'


def test_snapshot_hides_choices_outside_voting():
    session = make_session('Alice', 'Bob')
    session.start_game()
    session.submit_response('p0', 4)
    state = session.snapshot()
    assert state['phase'] == 'responding'
    assert state['responded_ids'] == ['p0']
    assert state['voting_view'] == []
    assert state['players'][0]['is_host'] is True
    assert 'modifier' in state['players'][0]


def test_snapshot_voting_view_applies_anonymity():
    session = make_session('Alice', 'Bob')
    session.start_game()
    session.modifiers['p0'] = Modifier(catalog.ANONYMOUS_RESPONSE)
    session.modifiers['p1'] = Modifier(catalog.ANONYMOUS_RESPONSE)
    session.use_power_up('p0', catalog.ANONYMOUS_RESPONSE)
    session.submit_response('p0', 3)
    session.submit_response('p1', 7)
    session.open_voting()
    view = {entry['player_id']: entry for entry in session.snapshot()['voting_view']}
    assert view['p0']['player_name'] == ANONYMOUS_NAME
    assert view['p1']['player_name'] == 'Bob'
    assert view['p0']['reaction']['id'] == 3
    assert view['p1']['reaction']['text'] == catalog.reaction_by_id(7)['text']


def test_snapshot_is_detached_from_state():
    session = make_session('Alice', 'Bob')
    state = session.snapshot()
    state['scores']['p0'] = 99
    state['players'].clear()
    assert session.scores['p0'] == 0
    assert session.player_count == 2


def test_generate_session_code_gives_up():
    code = generate_session_code(lambda c: False, length=6)
    assert len(code) == 6
    assert all(ch in string.ascii_uppercase + string.digits for ch in code)
    with pytest.raises(InternalError):
        generate_session_code(lambda c: True, attempts=5)
