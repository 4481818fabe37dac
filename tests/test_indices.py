"""Tests for the player performance indices."""
import pytest

from darts_league.services.indices import (
    calculate_bpi, calculate_hsl_index, calculate_uso_index, checkout_score,
)
from darts_league.services.stat_delta import StatDelta


def test_bpi_is_zero_without_singles():
    assert calculate_bpi({'singles_played': 0, 'singles_won': 0, 's95': 4}) == 0.0
    assert calculate_bpi({}) == 0.0


def test_bpi_combines_win_rate_high_scores_and_checkouts():
    stats = {
        'singles_played': 10, 'singles_won': 5,
        's95': 5, 's133': 5, 's170': 1,
        'co3': 2, 'co4': 2, 'co5': 2,
    }
    # 60*0.5 + 20*0.5 + 15*1 + 15*0.5 + 10*(0.5*2 + 0.35*2 + 0.15*2)/10
    assert calculate_bpi(stats) == 64.5


def test_bpi_high_score_components_are_capped():
    capped = {'singles_played': 4, 'singles_won': 4, 's95': 50, 's133': 50, 's170': 50}
    at_cap = {'singles_played': 4, 'singles_won': 4, 's95': 10, 's133': 5, 's170': 2}
    assert calculate_bpi(capped) == calculate_bpi(at_cap) == 110.0


def test_indices_accept_stat_delta_objects():
    delta = StatDelta(singles_played=2, singles_won=1, total_games_played=2, total_games_won=1)
    assert calculate_bpi(delta) == 30.0


def test_checkout_score_weights_by_round():
    assert checkout_score({'co3': 1, 'co4': 1, 'co5': 1, 'co6': 2}) == 8.0


def test_hsl_index_never_negative_and_has_floor():
    assert calculate_hsl_index({}) == 0.0
    losing = {'total_games_played': 20, 'singles_played': 20, 'legs_won': 0, 'legs_lost': 60}
    # Model value is negative; the floor is 1.5 points per game played.
    assert calculate_hsl_index(losing) == 30.0


def test_hsl_index_reliability_scales_small_samples():
    stats = {
        'total_games_played': 10, 'total_games_won': 10,
        'singles_played': 10, 'singles_won': 10,
        'legs_won': 30, 'legs_lost': 0,
    }
    full = dict(stats, total_games_played=50, total_games_won=50,
                singles_played=50, singles_won=50, legs_won=150)
    small = calculate_hsl_index(stats)
    large = calculate_hsl_index(full)
    # (-10 + 280 + 80 - 30) = 320, scaled by (10 + 10) / 60 for the small sample.
    assert small == pytest.approx(106.7)
    assert large == 320.0


def test_uso_index_may_be_negative():
    assert calculate_uso_index({}) == pytest.approx(-56.0, abs=0.05)
    winner = {'singles_played': 1, 'singles_won': 1, 'legs_won': 3, 'legs_lost': 0}
    assert calculate_uso_index(winner) > 200


def test_indices_ignore_negative_or_garbage_counters():
    assert calculate_bpi({'singles_played': 'x', 'singles_won': 3}) == 0.0
    assert calculate_hsl_index({'total_games_played': -5}) == 0.0
