"""
Player performance indices derived from season counters.

- BPI (primary): 60 points for the singles win rate, up to 50 points for high
  scores (each category capped), plus a checkout component normalised by
  singles played. No singles played means an index of 0.
- HSL index (secondary): linear model on the singles leg win rate, the overall
  game win rate and per-leg high scores, scaled by a reliability factor that
  reaches full weight after 50 games and floored at 1.5 points per game.
- USO index: the older linear model kept for player detail pages. It can go
  negative and is not stored.

`stats` may be a PlayerStats row, a StatDelta or a plain mapping with the same
field names.
"""
import math

# BPI
BPI_SINGLES_WIN_WEIGHT = 60.0
BPI_S95_WEIGHT, BPI_S95_CAP = 20.0, 10
BPI_S133_WEIGHT, BPI_S133_CAP = 15.0, 5
BPI_S170_WEIGHT, BPI_S170_CAP = 15.0, 2
BPI_CHECKOUT_WEIGHT = 10.0
BPI_CO3_SHARE = 0.5
BPI_CO4_SHARE = 0.35
BPI_CO5_SHARE = 0.15

# HSL index
HSL_SINGLES_WIN_RATE = -10.0
HSL_LEG_WIN_RATE = 280.0
HSL_OVERALL_WIN_RATE = 80.0
HSL_S95_PER_LEG = 2.5
HSL_S133_PER_LEG = 8.0
HSL_S170_PER_LEG = 25.0
HSL_CHECKOUT_SCORE = 0.6
HSL_BASE = -30.0
HSL_RELIABILITY_OFFSET = 10
HSL_RELIABILITY_GAMES = 60
HSL_MIN_PER_GAME = 1.5

# USO index
USO_MATCH_WIN_RATE = -13.34
USO_LEG_WIN_RATE = 312.34
USO_H95_PER_LEG = 3.43
USO_H133_PER_LEG = 15.19
USO_H170_PER_LEG = 93.75
USO_CHECKOUT_SCORE = 0.94
USO_BASE = -55.96

# Checkout score weights by the round the leg was closed in.
CHECKOUT_SCORE_WEIGHTS = {'co3': 4.0, 'co4': 2.0, 'co5': 1.0, 'co6': 0.5}


def _value(stats, name):
    if isinstance(stats, dict):
        raw = stats.get(name)
    else:
        raw = getattr(stats, name, 0)
    try:
        value = int(raw or 0)
    except (TypeError, ValueError):
        return 0
    return max(0, value)


def _rate(part, whole):
    return part / whole if whole > 0 else 0.0


def _finite(value):
    return value if math.isfinite(value) else 0.0


def checkout_score(stats):
    return sum(weight * _value(stats, name) for name, weight in CHECKOUT_SCORE_WEIGHTS.items())


def calculate_bpi(stats):
    singles_played = _value(stats, 'singles_played')
    if singles_played == 0:
        return 0.0

    win_rate = _rate(_value(stats, 'singles_won'), singles_played)
    s95 = BPI_S95_WEIGHT * min(1.0, _value(stats, 's95') / BPI_S95_CAP)
    s133 = BPI_S133_WEIGHT * min(1.0, _value(stats, 's133') / BPI_S133_CAP)
    s170 = BPI_S170_WEIGHT * min(1.0, _value(stats, 's170') / BPI_S170_CAP)
    checkouts = BPI_CHECKOUT_WEIGHT * (
        BPI_CO3_SHARE * _value(stats, 'co3')
        + BPI_CO4_SHARE * _value(stats, 'co4')
        + BPI_CO5_SHARE * _value(stats, 'co5')
    ) / singles_played

    bpi = BPI_SINGLES_WIN_WEIGHT * win_rate + s95 + s133 + s170 + checkouts
    return round(_finite(bpi), 2)


def calculate_hsl_index(stats):
    singles_played = _value(stats, 'singles_played')
    total_played = _value(stats, 'total_games_played') or singles_played
    total_won = _value(stats, 'total_games_won') or _value(stats, 'singles_won')
    legs = _value(stats, 'legs_won') + _value(stats, 'legs_lost')

    base_index = (
        HSL_SINGLES_WIN_RATE * _rate(_value(stats, 'singles_won'), singles_played)
        + HSL_LEG_WIN_RATE * _rate(_value(stats, 'legs_won'), legs)
        + HSL_OVERALL_WIN_RATE * _rate(total_won, total_played)
        + HSL_S95_PER_LEG * _rate(_value(stats, 's95'), legs)
        + HSL_S133_PER_LEG * _rate(_value(stats, 's133'), legs)
        + HSL_S170_PER_LEG * _rate(_value(stats, 's170'), legs)
        + HSL_CHECKOUT_SCORE * checkout_score(stats)
        + HSL_BASE
    )
    reliability = min(1.0, (total_played + HSL_RELIABILITY_OFFSET) / HSL_RELIABILITY_GAMES)
    floor = total_played * HSL_MIN_PER_GAME
    return round(max(_finite(base_index * reliability), floor, 0.0), 1)


def calculate_uso_index(stats):
    singles_played = _value(stats, 'singles_played')
    legs = _value(stats, 'legs_won') + _value(stats, 'legs_lost')
    raw = (
        USO_MATCH_WIN_RATE * _rate(_value(stats, 'singles_won'), singles_played)
        + USO_LEG_WIN_RATE * _rate(_value(stats, 'legs_won'), legs)
        + USO_H95_PER_LEG * _rate(_value(stats, 's95'), legs)
        + USO_H133_PER_LEG * _rate(_value(stats, 's133'), legs)
        + USO_H170_PER_LEG * _rate(_value(stats, 's170'), legs)
        + USO_CHECKOUT_SCORE * checkout_score(stats)
        + USO_BASE
    )
    return round(_finite(raw), 1)
