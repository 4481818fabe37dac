"""
Per-player statistic deltas derived from a set of game records.

A game record is the normalised form of one game of a detailed match result:

    {
        'order': 1,
        'type': 'single',
        'format': '501 DO',
        'participants': {'home': [12], 'away': [31]},
        'winner': 'home',            # 'home', 'away' or None
        'home_legs': 3, 'away_legs': 1,
        'events': {12: {EventKind.S95: 2}},
        'highest_checkouts': {12: 121},
    }

The same record shape is produced from a fresh submission and from the Game /
GameEvent rows already stored for a match, so the contribution a match made
earlier and the contribution it makes now are computed by one function.
"""
from dataclasses import dataclass, fields
from enum import Enum

SINGLE = 'single'

# Players per side for every game type in a league match.
GAME_TYPE_SIDE_SIZES = {
    SINGLE: 1,
    'double_501': 2,
    'double_cricket': 2,
    'triple_301': 3,
    'tiebreak_701': 3,
}

HIGHEST_CHECKOUT = 'highestCheckout'
MAX_CHECKOUT_VALUE = 170


class EventKind(str, Enum):
    """Countable singles achievements, one GameEvent row per occurrence."""
    S95 = 'S95'
    S133 = 'S133'
    S170 = 'S170'
    CO3 = 'CO3'
    CO4 = 'CO4'
    CO5 = 'CO5'
    CO6 = 'CO6'

    @property
    def stat_field(self):
        return self.value.lower()


@dataclass
class StatDelta:
    total_games_played: int = 0
    total_games_won: int = 0
    singles_played: int = 0
    singles_won: int = 0
    legs_won: int = 0
    legs_lost: int = 0
    s95: int = 0
    s133: int = 0
    s170: int = 0
    co3: int = 0
    co4: int = 0
    co5: int = 0
    co6: int = 0
    highest_checkout: int = 0

    def add_event(self, kind, count):
        field = EventKind(kind).stat_field
        setattr(self, field, getattr(self, field) + count)

    def negated(self):
        """Additive fields flipped; the running maximum is not subtractable and stays 0."""
        values = {name: -getattr(self, name) for name in ADDITIVE_FIELDS}
        return StatDelta(**values)


ADDITIVE_FIELDS = tuple(f.name for f in fields(StatDelta) if f.name != 'highest_checkout')


def compute_delta(game_records):
    """Aggregate game records into {player_id: StatDelta}. Pure."""
    deltas = {}
    for record in game_records:
        participants = record.get('participants') or {}
        winner = record.get('winner')
        is_single = record.get('type') == SINGLE
        events = record.get('events') or {}
        checkouts = record.get('highest_checkouts') or {}

        for side, other in (('home', 'away'), ('away', 'home')):
            own_legs = int(record.get(f'{side}_legs') or 0)
            other_legs = int(record.get(f'{other}_legs') or 0)
            won = winner == side
            for player_id in participants.get(side) or []:
                delta = deltas.setdefault(player_id, StatDelta())
                delta.total_games_played += 1
                if won:
                    delta.total_games_won += 1
                if not is_single:
                    continue
                delta.singles_played += 1
                if won:
                    delta.singles_won += 1
                delta.legs_won += own_legs
                delta.legs_lost += other_legs
                for kind, count in (events.get(player_id) or {}).items():
                    delta.add_event(kind, count)
                checkout = checkouts.get(player_id) or 0
                delta.highest_checkout = max(delta.highest_checkout, checkout)
    return deltas


def apply_delta(existing, old_delta, new_delta):
    """Return updated counter values: existing - old + new.

    `existing` maps stat field names to their stored values. The running
    maximum checkout cannot be subtracted, so it becomes
    max(existing, new_delta) and a maximum set earlier by the same match stays.
    Raises ValueError when the result would break a counter invariant.
    """
    removal = old_delta.negated()
    updated = {}
    for name in ADDITIVE_FIELDS:
        value = int(existing.get(name) or 0) + getattr(removal, name) + getattr(new_delta, name)
        if value < 0:
            raise ValueError(f'{name} would become negative ({value})')
        updated[name] = value
    updated['highest_checkout'] = max(
        int(existing.get('highest_checkout') or 0), new_delta.highest_checkout,
    )
    if updated['total_games_won'] > updated['total_games_played']:
        raise ValueError('total_games_won would exceed total_games_played')
    if updated['singles_won'] > updated['singles_played']:
        raise ValueError('singles_won would exceed singles_played')
    return updated
