"""Tests for per-player delta computation and application."""
import pytest

from darts_league.services.stat_delta import (
    EventKind, StatDelta, apply_delta, compute_delta,
)


def _single(order, home, away, winner, home_legs, away_legs, events=None, checkouts=None):
    return {
        'order': order, 'type': 'single', 'format': '501 DO',
        'participants': {'home': [home], 'away': [away]},
        'winner': winner, 'home_legs': home_legs, 'away_legs': away_legs,
        'events': events or {}, 'highest_checkouts': checkouts or {},
    }


def _double(order, home, away, winner, home_legs=1, away_legs=0):
    return {
        'order': order, 'type': 'double_501', 'format': '501 DO',
        'participants': {'home': home, 'away': away},
        'winner': winner, 'home_legs': home_legs, 'away_legs': away_legs,
        'events': {}, 'highest_checkouts': {},
    }


def test_singles_count_games_legs_events_and_checkout():
    deltas = compute_delta([
        _single(1, 10, 20, 'home', 3, 1,
                events={10: {EventKind.S95: 2, EventKind.CO4: 1}, 20: {EventKind.S133: 1}},
                checkouts={10: 121}),
        _single(2, 10, 21, 'away', 2, 3, checkouts={10: 80}),
    ])

    home = deltas[10]
    assert home.total_games_played == 2 and home.total_games_won == 1
    assert home.singles_played == 2 and home.singles_won == 1
    assert home.legs_won == 5 and home.legs_lost == 4
    assert home.s95 == 2 and home.co4 == 1
    assert home.highest_checkout == 121

    assert deltas[20].s133 == 1 and deltas[20].legs_won == 1
    assert deltas[21].singles_won == 1


def test_team_games_count_only_played_and_won():
    deltas = compute_delta([_double(3, [10, 11], [20, 22], 'home', 2, 0)])
    for player_id in (10, 11):
        assert deltas[player_id].total_games_played == 1
        assert deltas[player_id].total_games_won == 1
        assert deltas[player_id].singles_played == 0
        assert deltas[player_id].legs_won == 0
    assert deltas[20].total_games_won == 0


def test_compute_delta_of_nothing_is_empty():
    assert compute_delta([]) == {}


def test_apply_delta_subtracts_old_and_adds_new():
    existing = {'total_games_played': 5, 'total_games_won': 3, 'singles_played': 5,
                'singles_won': 3, 's95': 4, 'highest_checkout': 100}
    old = StatDelta(total_games_played=1, total_games_won=1, singles_played=1,
                    singles_won=1, s95=3)
    new = StatDelta(total_games_played=1, total_games_won=0, singles_played=1, s95=1)

    updated = apply_delta(existing, old, new)
    assert updated['s95'] == 2
    assert updated['total_games_won'] == 2
    assert updated['singles_played'] == 5
    assert updated['highest_checkout'] == 100


def test_apply_delta_raises_max_checkout_but_never_lowers_it():
    updated = apply_delta({'highest_checkout': 90}, StatDelta(highest_checkout=90),
                          StatDelta(highest_checkout=140))
    assert updated['highest_checkout'] == 140
    updated = apply_delta({'highest_checkout': 140}, StatDelta(highest_checkout=140),
                          StatDelta(highest_checkout=60))
    assert updated['highest_checkout'] == 140


def test_apply_delta_rejects_negative_counters():
    with pytest.raises(ValueError):
        apply_delta({'s95': 1}, StatDelta(s95=3), StatDelta())


def test_apply_delta_rejects_more_wins_than_games():
    with pytest.raises(ValueError):
        apply_delta({}, StatDelta(), StatDelta(total_games_won=2, total_games_played=1))


def test_negated_flips_counters_only():
    delta = StatDelta(s95=1, legs_won=2, highest_checkout=50)
    negated = delta.negated()
    assert negated.s95 == -1 and negated.legs_won == -2
    assert negated.highest_checkout == 0


def test_event_kind_maps_to_stat_field():
    assert EventKind('CO6').stat_field == 'co6'
    with pytest.raises(ValueError):
        EventKind('S180')
