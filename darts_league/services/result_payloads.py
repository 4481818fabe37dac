"""Validation and normalisation of submitted match results.

Nothing here touches the database: every function returns normalised data
together with a list of validation messages.
"""
from darts_league.services.stat_delta import (
    EventKind, GAME_TYPE_SIDE_SIZES, HIGHEST_CHECKOUT, MAX_CHECKOUT_VALUE,
)
from darts_league.services.standings import match_points

MAX_GAMES_PER_MATCH = 19
MAX_LEGS_PER_SIDE = 60
MAX_EVENT_COUNT = 99

QUICK_RESULT_FIELDS = ('homeWins', 'awayWins', 'homeLegs', 'awayLegs')
SIDES = ('home', 'away')

_GAMES_WON_KEYS = {
    'home': ('homeGamesWon', 'homeWins', 'homeScore'),
    'away': ('awayGamesWon', 'awayWins', 'awayScore'),
}
_LEG_TOTAL_KEYS = {
    'home': ('homeLegs', 'homeLegsTotal', 'homeLegsWon'),
    'away': ('awayLegs', 'awayLegsTotal', 'awayLegsWon'),
}


def parse_count(value):
    """Non-negative whole number or None. Booleans are not numbers here."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            return None
        return int(value)
    if not isinstance(value, int):
        return None
    return value if value >= 0 else None


def _parse_player_id(value):
    parsed = parse_count(value)
    if not parsed:
        return None
    return parsed


# ── Quick results ─────────────────────────────────────────────────────


def normalize_quick_result(raw_data, max_games=MAX_GAMES_PER_MATCH, max_legs=MAX_LEGS_PER_SIDE):
    """Return ({field: int}, errors) for a quick (aggregate-only) result."""
    if not isinstance(raw_data, dict):
        return {}, ['Invalid JSON payload']

    values = {}
    errors = []
    for field in QUICK_RESULT_FIELDS:
        raw = raw_data.get(field)
        if raw is None or raw == '':
            errors.append(f'{field} is required.')
            continue
        if not isinstance(raw, bool) and isinstance(raw, (int, float)) and raw < 0:
            errors.append(f'{field} must not be negative.')
            continue
        parsed = parse_count(raw)
        if parsed is None:
            errors.append(f'{field} must be a whole number.')
            continue
        values[field] = parsed
    if errors:
        return values, errors

    home_wins, away_wins = values['homeWins'], values['awayWins']
    home_legs, away_legs = values['homeLegs'], values['awayLegs']

    if home_wins + away_wins > max_games:
        errors.append(f'Total wins must not exceed {max_games}.')
    if home_wins + away_wins == 0:
        errors.append('At least one game win must be recorded.')
    if home_legs < home_wins or away_legs < away_wins:
        errors.append('Each side needs at least as many legs as wins.')
    if home_legs > max_legs or away_legs > max_legs:
        errors.append(f'Legs per side must not exceed {max_legs}.')
    return values, errors


def build_quick_result(values):
    """Stored payload for a validated quick result. Points follow game wins."""
    home_wins, away_wins = values['homeWins'], values['awayWins']
    if home_wins > away_wins:
        home_points, away_points = 3, 0
    elif away_wins > home_wins:
        home_points, away_points = 0, 3
    else:
        home_points, away_points = 1, 1
    return {
        'homeWins': home_wins,
        'awayWins': away_wins,
        'homeLegs': values['homeLegs'],
        'awayLegs': values['awayLegs'],
        'homePoints': home_points,
        'awayPoints': away_points,
        'legDifference': values['homeLegs'] - values['awayLegs'],
        'isQuickResult': True,
    }


# ── Detailed results ──────────────────────────────────────────────────


def _normalize_participants(raw, game_type, label, errors):
    if not isinstance(raw, dict):
        errors.append(f'{label}: participants must list home and away players.')
        return None
    expected = GAME_TYPE_SIDE_SIZES[game_type]
    participants = {}
    for side in SIDES:
        raw_ids = raw.get(side)
        if not isinstance(raw_ids, list):
            errors.append(f'{label}: participants.{side} must be a list of player ids.')
            return None
        ids = [_parse_player_id(value) for value in raw_ids]
        if any(pid is None for pid in ids):
            errors.append(f'{label}: participants.{side} contains an invalid player id.')
            return None
        if len(ids) != expected:
            errors.append(f'{label}: {game_type} needs {expected} player(s) per side.')
            return None
        participants[side] = ids
    everyone = participants['home'] + participants['away']
    if len(set(everyone)) != len(everyone):
        errors.append(f'{label}: a player cannot appear twice in one game.')
        return None
    return participants


def _count_leg_winners(legs, label, errors, max_legs):
    """Legs listed one by one, e.g. [{'winner': 'home', 'homeScore': 0, ...}, ...].

    A leg without a winner was not played and is skipped.
    """
    counts = {'home': 0, 'away': 0}
    for leg in legs:
        if not isinstance(leg, dict):
            errors.append(f'{label}: every leg must be an object.')
            return False
        winner = leg.get('winner')
        if winner in (None, ''):
            continue
        if winner not in SIDES:
            errors.append(f'{label}: leg winner must be "home" or "away".')
            return False
        counts[winner] += 1
    if not counts['home'] and not counts['away']:
        return None
    if counts['home'] > max_legs or counts['away'] > max_legs:
        errors.append(f'{label}: legs per side must not exceed {max_legs}.')
        return False
    return counts['home'], counts['away']


def _read_leg_pair(result, label, errors, max_legs):
    legs = result.get('legs')
    if isinstance(legs, list):
        return _count_leg_winners(legs, label, errors, max_legs)
    if isinstance(legs, dict):
        raw_home, raw_away = legs.get('home'), legs.get('away')
    elif result.get('homeLegs') is not None or result.get('awayLegs') is not None:
        raw_home, raw_away = result.get('homeLegs'), result.get('awayLegs')
    else:
        raw_home, raw_away = result.get('homeScore'), result.get('awayScore')

    if raw_home is None and raw_away is None:
        return None
    home, away = parse_count(raw_home), parse_count(raw_away)
    if home is None or away is None:
        errors.append(f'{label}: legs must be non-negative whole numbers for both sides.')
        return False
    if home > max_legs or away > max_legs:
        errors.append(f'{label}: legs per side must not exceed {max_legs}.')
        return False
    return home, away


def _resolve_winner(result, legs, label, errors):
    winner = result.get('winner')
    if winner in (None, ''):
        winner = None
    elif winner not in SIDES:
        errors.append(f'{label}: winner must be "home" or "away".')
        return False, None

    if legs is None:
        if winner is None:
            return None, (0, 0)
        return winner, (1, 0) if winner == 'home' else (0, 1)

    home_legs, away_legs = legs
    leg_winner = None
    if home_legs > away_legs:
        leg_winner = 'home'
    elif away_legs > home_legs:
        leg_winner = 'away'
    if winner is not None and winner != leg_winner:
        errors.append(f'{label}: winner does not match the leg score.')
        return False, None
    return leg_winner, legs


def _normalize_events(raw_events, participants, game_type, label, errors):
    events, checkouts = {}, {}
    if raw_events in (None, {}):
        return events, checkouts
    if not isinstance(raw_events, dict):
        errors.append(f'{label}: events must map player ids to event counts.')
        return events, checkouts
    if game_type != 'single':
        errors.append(f'{label}: events can only be recorded for singles.')
        return events, checkouts

    players = set(participants['home'] + participants['away'])
    for raw_pid, raw_counts in raw_events.items():
        player_id = _parse_player_id(raw_pid)
        if player_id is None or player_id not in players:
            errors.append(f'{label}: events reference player {raw_pid} who did not play this game.')
            continue
        if not isinstance(raw_counts, dict):
            errors.append(f'{label}: events for player {raw_pid} must be an object.')
            continue
        for raw_kind, raw_count in raw_counts.items():
            count = parse_count(raw_count)
            if raw_kind == HIGHEST_CHECKOUT:
                if count is None or count > MAX_CHECKOUT_VALUE:
                    errors.append(
                        f'{label}: {HIGHEST_CHECKOUT} must be between 0 and {MAX_CHECKOUT_VALUE}.'
                    )
                elif count:
                    checkouts[player_id] = count
                continue
            try:
                kind = EventKind(raw_kind)
            except ValueError:
                errors.append(f'{label}: unknown event type "{raw_kind}".')
                continue
            if count is None or count > MAX_EVENT_COUNT:
                errors.append(
                    f'{label}: {kind.value} count must be a whole number up to {MAX_EVENT_COUNT}.'
                )
                continue
            if count:
                events.setdefault(player_id, {})[kind] = count
    return events, checkouts


def normalize_game_entry(order, entry, max_legs=MAX_LEGS_PER_SIDE):
    """Return (game_record, errors) for one submitted game."""
    label = f'Game {order}'
    errors = []
    if not isinstance(entry, dict):
        return None, [f'{label}: expected an object.']

    game_type = str(entry.get('type') or '').strip()
    if game_type not in GAME_TYPE_SIDE_SIZES:
        allowed = ', '.join(sorted(GAME_TYPE_SIDE_SIZES))
        return None, [f'{label}: type must be one of: {allowed}.']

    participants = _normalize_participants(entry.get('participants'), game_type, label, errors)
    if participants is None:
        return None, errors

    result = entry.get('result')
    if not isinstance(result, dict):
        result = entry
    legs = _read_leg_pair(result, label, errors, max_legs)
    if legs is False:
        return None, errors
    winner, legs = _resolve_winner(result, legs, label, errors)
    if winner is False:
        return None, errors

    events, checkouts = _normalize_events(
        entry.get('events'), participants, game_type, label, errors,
    )
    if errors:
        return None, errors

    return {
        'order': order,
        'type': game_type,
        'format': str(entry.get('format') or '').strip()[:60],
        'participants': participants,
        'winner': winner,
        'home_legs': legs[0],
        'away_legs': legs[1],
        'events': events,
        'highest_checkouts': checkouts,
    }, []


def _is_game_position(key, max_games):
    order = parse_count(key)
    return order is not None and 1 <= order <= max_games


def normalize_detailed_submission(raw_data, max_games=MAX_GAMES_PER_MATCH,
                                  max_legs=MAX_LEGS_PER_SIDE):
    """Return (game_records, submitted_result, errors).

    Accepts {"games": {position: entry}, "result": {...}}, the older
    {"gameResults": ..., "matchResult": ...} spelling, and a bare
    {position: entry} mapping without a match-level result.
    """
    if not isinstance(raw_data, dict):
        return [], None, ['Invalid JSON payload']

    if 'games' in raw_data or 'gameResults' in raw_data:
        raw_games = raw_data.get('games', raw_data.get('gameResults'))
        submitted = raw_data.get('result', raw_data.get('matchResult'))
    elif raw_data and all(_is_game_position(key, max_games) for key in raw_data):
        raw_games, submitted = raw_data, None
    else:
        raw_games, submitted = None, None
    if not isinstance(raw_games, dict) or not raw_games:
        return [], None, ['games must map game positions to game results.']
    if submitted is not None and not isinstance(submitted, dict):
        return [], None, ['result must be an object.']
    if len(raw_games) > max_games:
        return [], None, [f'A match has at most {max_games} games.']

    records, errors = [], []
    for raw_order, entry in raw_games.items():
        if not _is_game_position(raw_order, max_games):
            errors.append(f'Game position {raw_order!r} must be between 1 and {max_games}.')
            continue
        order = parse_count(raw_order)
        record, game_errors = normalize_game_entry(order, entry, max_legs)
        errors.extend(game_errors)
        if record:
            records.append(record)

    orders = [record['order'] for record in records]
    if len(set(orders)) != len(orders):
        errors.append('Each game position may only be given once.')
    records.sort(key=lambda record: record['order'])
    return records, submitted, errors


def _submitted_total(submitted, keys):
    for key in keys:
        if submitted.get(key) is not None:
            return key, submitted[key]
    return None, None


def build_detailed_result(game_records, submitted=None):
    """Match-level payload for a detailed submission, plus errors.

    Submitted keys are kept; win and leg totals are derived from the games
    and any submitted total that disagrees with them is rejected.
    """
    submitted = dict(submitted or {})
    totals = {
        'home': {
            'games': sum(1 for r in game_records if r['winner'] == 'home'),
            'legs': sum(r['home_legs'] for r in game_records),
        },
        'away': {
            'games': sum(1 for r in game_records if r['winner'] == 'away'),
            'legs': sum(r['away_legs'] for r in game_records),
        },
    }

    errors = []
    for side in SIDES:
        for kind, keys in (('games', _GAMES_WON_KEYS[side]), ('legs', _LEG_TOTAL_KEYS[side])):
            key, raw = _submitted_total(submitted, keys)
            if key is None:
                continue
            if parse_count(raw) != totals[side][kind]:
                errors.append(
                    f'result.{key} is {raw!r} but the games add up to {totals[side][kind]}.'
                )
    legs = submitted.get('legs')
    if isinstance(legs, dict):
        for side in SIDES:
            if legs.get(side) is not None and parse_count(legs.get(side)) != totals[side]['legs']:
                errors.append(f'result.legs.{side} does not match the games.')
    if totals['home']['games'] + totals['away']['games'] == 0:
        errors.append('At least one game needs a winner.')
    if errors:
        return None, errors

    home_legs, away_legs = totals['home']['legs'], totals['away']['legs']
    home_points, away_points = match_points(home_legs, away_legs)
    submitted.update({
        'homeGamesWon': totals['home']['games'],
        'awayGamesWon': totals['away']['games'],
        'homeLegs': home_legs,
        'awayLegs': away_legs,
        'homePoints': home_points,
        'awayPoints': away_points,
        'legDifference': home_legs - away_legs,
        'isQuickResult': False,
    })
    return submitted, []
