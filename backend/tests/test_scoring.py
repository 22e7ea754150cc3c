from partyquip.game.models import Pair, Player, Room, RoundData, ScoreCounters, Vote
from partyquip.game.scoring import build_leaderboard, tally_step


def _room_with_votes():
    room = Room(id='r1', players=[Player('a', 'Ann'), Player('b', 'Ben'), Player('c', 'Cy'), Player('d', 'Di')])
    pair = Pair(members=['a', 'b'], prompts=['p0', 'p1'])
    pair.answers[0] = {'a': 'yes', 'b': 'no'}
    rd = RoundData(pairs=[pair])
    rd.step_votes(0, 0)['c'] = Vote('a', '😂')
    rd.step_votes(0, 0)['d'] = Vote('b', '💩')
    room.round_data = rd
    return room


def test_leaderboard_ordering():
    players = [Player('A', 'A'), Player('B', 'B'), Player('C', 'C')]
    scores = {
        'A': ScoreCounters(laugh=3, neutral=1, negative=0),
        'B': ScoreCounters(laugh=3, neutral=2, negative=0),
        'C': ScoreCounters(laugh=5, neutral=0, negative=9),
    }
    board = build_leaderboard(players, scores)
    assert [e['id'] for e in board] == ['C', 'B', 'A']
    assert board[0] == {'id': 'C', 'name': 'C', 'laugh': 5, 'neutral': 0, 'negative': 9}


def test_leaderboard_fewer_negative_ranks_higher_and_ties_keep_order():
    players = [Player('x', 'X'), Player('y', 'Y'), Player('z', 'Z')]
    scores = {
        'x': ScoreCounters(laugh=1, neutral=1, negative=2),
        'y': ScoreCounters(laugh=1, neutral=1, negative=1),
        'z': ScoreCounters(laugh=1, neutral=1, negative=2),
    }
    assert [e['id'] for e in build_leaderboard(players, scores)] == ['y', 'x', 'z']


def test_leaderboard_player_without_scores_counts_as_zero():
    board = build_leaderboard([Player('n', 'New')], {})
    assert board == [{'id': 'n', 'name': 'New', 'laugh': 0, 'neutral': 0, 'negative': 0}]


def test_tally_adds_votes_and_returns_raw_map():
    room = _room_with_votes()
    votes = tally_step(room, 0, 0)
    assert votes == {
        'c': {'targetPlayerId': 'a', 'emoji': '😂'},
        'd': {'targetPlayerId': 'b', 'emoji': '💩'},
    }
    assert room.scores['a'] == ScoreCounters(laugh=1)
    assert room.scores['b'] == ScoreCounters(negative=1)


def test_tally_runs_once_per_step():
    room = _room_with_votes()
    tally_step(room, 0, 0)
    assert tally_step(room, 0, 0) is None
    assert room.scores['a'].laugh == 1
    assert room.scores['b'].negative == 1


def test_tally_creates_counters_for_unseen_targets():
    room = _room_with_votes()
    room.scores.clear()
    tally_step(room, 0, 0)
    assert set(room.scores) == {'a', 'b'}


def test_tally_of_step_without_votes_is_empty():
    room = _room_with_votes()
    assert tally_step(room, 0, 1) == {}
    assert room.scores == {}
