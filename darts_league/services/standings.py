"""
League table computation.

Points come from the leg difference d = home legs - away legs of each
completed match:

    d > 1   clear win     3 : 0   (W / L)
    d == 1  penalty win   2 : 1   (WP / LP)
    d == -1 penalty loss  1 : 2
    d < -1  clear loss    0 : 3

Equal leg totals cannot come out of a full match (the 701 tiebreak decides
it), but a quick result can still carry them; such a match is scored as a
1 : 1 draw (form 'D') and logged.

Ties in the table break on leg difference, then legs for, then team name.
Head-to-head comparison is not applied.
"""
import logging
import unicodedata

logger = logging.getLogger(__name__)

FORM_LENGTH = 5

WIN, PENALTY_WIN, PENALTY_LOSS, LOSS, DRAW = 'W', 'WP', 'LP', 'L', 'D'

OUTCOME_POINTS = {WIN: 3, PENALTY_WIN: 2, PENALTY_LOSS: 1, LOSS: 0, DRAW: 1}

_OUTCOME_COUNTER = {
    WIN: 'won',
    PENALTY_WIN: 'won_penalty',
    PENALTY_LOSS: 'lost_penalty',
    LOSS: 'lost',
    DRAW: 'drawn',
}

# Canonical key first, then the names older detailed results used.
_HOME_LEG_KEYS = ('homeLegs', 'homeLegsTotal', 'homeLegsWon')
_AWAY_LEG_KEYS = ('awayLegs', 'awayLegsTotal', 'awayLegsWon')


def calculate_points(won, won_penalty, lost_penalty, drawn=0):
    return won * 3 + won_penalty * 2 + lost_penalty + drawn


def classify_leg_difference(leg_difference):
    """Return (home_outcome, away_outcome) for a leg difference."""
    if leg_difference > 1:
        return WIN, LOSS
    if leg_difference == 1:
        return PENALTY_WIN, PENALTY_LOSS
    if leg_difference == -1:
        return PENALTY_LOSS, PENALTY_WIN
    if leg_difference < -1:
        return LOSS, WIN
    return DRAW, DRAW


def match_points(home_legs, away_legs):
    """(home_points, away_points) for a leg score."""
    home_outcome, away_outcome = classify_leg_difference(home_legs - away_legs)
    return OUTCOME_POINTS[home_outcome], OUTCOME_POINTS[away_outcome]


def _first_present(result, keys):
    for key in keys:
        if result.get(key) is not None:
            return result[key]
    return None


def _leg_count(raw_value):
    if isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, float) and not raw_value.is_integer():
        return None
    try:
        value = int(raw_value)
    except (TypeError, ValueError):
        return None
    return value if value >= 0 else None


def extract_leg_totals(result):
    """Return (home_legs, away_legs) from a match result payload, or None."""
    if not isinstance(result, dict):
        return None
    home = _leg_count(_first_present(result, _HOME_LEG_KEYS))
    away = _leg_count(_first_present(result, _AWAY_LEG_KEYS))
    if home is None or away is None:
        return None
    return home, away


def _empty_record(team):
    return {
        'team_id': team['id'],
        'team_name': team['name'],
        'short_name': team.get('short_name', ''),
        'played': 0,
        'won': 0,
        'won_penalty': 0,
        'lost_penalty': 0,
        'lost': 0,
        'drawn': 0,
        'legs_for': 0,
        'legs_against': 0,
        'leg_difference': 0,
        'points': 0,
        'form': [],
    }


def _apply_outcome(record, outcome, legs_for, legs_against):
    record['played'] += 1
    record['legs_for'] += legs_for
    record['legs_against'] += legs_against
    record['leg_difference'] = record['legs_for'] - record['legs_against']
    record[_OUTCOME_COUNTER[outcome]] += 1
    record['points'] += OUTCOME_POINTS[outcome]
    record['form'] = ([outcome] + record['form'])[:FORM_LENGTH]


def _chronological_key(match):
    return (match['end_time'], match.get('id') or 0)


def calculate_standings(teams, matches):
    """Build one record per team from completed matches.

    `teams`: dicts with id, name, short_name.
    `matches`: dicts with id, home_team_id, away_team_id, end_time, result.
    Matches without an end time, without a result or without leg totals are
    left out; the last kind is logged since it points at bad data.
    """
    records = {team['id']: _empty_record(team) for team in teams}

    qualifying = []
    for match in matches:
        if match.get('end_time') is None or not match.get('result'):
            continue
        legs = extract_leg_totals(match['result'])
        if legs is None:
            logger.warning('Match %s is completed but has no usable leg totals; '
                           'left out of the standings', match.get('id'))
            continue
        if match['home_team_id'] not in records or match['away_team_id'] not in records:
            continue
        qualifying.append((match, legs))

    qualifying.sort(key=lambda item: _chronological_key(item[0]))

    for match, (home_legs, away_legs) in qualifying:
        home_outcome, away_outcome = classify_leg_difference(home_legs - away_legs)
        if home_outcome == DRAW:
            logger.warning('Match %s has equal leg totals (%s-%s); scored as a draw',
                           match.get('id'), home_legs, away_legs)
        _apply_outcome(records[match['home_team_id']], home_outcome, home_legs, away_legs)
        _apply_outcome(records[match['away_team_id']], away_outcome, away_legs, home_legs)

    return list(records.values())


def _name_key(name):
    decomposed = unicodedata.normalize('NFKD', str(name or ''))
    base = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), str(name or ''))


def sort_standings(records):
    """Points, leg difference and legs for descending, then name ascending."""
    return sorted(records, key=lambda r: (
        -r['points'], -r['leg_difference'], -r['legs_for'], _name_key(r['team_name']),
    ))


def build_table(teams, matches):
    table = sort_standings(calculate_standings(teams, matches))
    for position, record in enumerate(table, start=1):
        record['position'] = position
    return table
