"""Persisted per-player season aggregates."""
import logging

from darts_league.app import db
from darts_league.models import Game, Match, PlayerStats
from darts_league.services.indices import calculate_bpi, calculate_hsl_index
from darts_league.services.stat_delta import (
    ADDITIVE_FIELDS, HIGHEST_CHECKOUT, EventKind, StatDelta, apply_delta, compute_delta,
)

logger = logging.getLogger(__name__)

STAT_FIELDS = ADDITIVE_FIELDS + ('highest_checkout',)


def stats_values(row):
    return {name: getattr(row, name) or 0 for name in STAT_FIELDS}


def refresh_indices(row):
    row.bpi = calculate_bpi(row)
    row.hsl_index = calculate_hsl_index(row)


def _write_values(row, values):
    for name, value in values.items():
        setattr(row, name, value)
    refresh_indices(row)


def apply_match_deltas(season_id, old_deltas, new_deltas):
    """Move each affected player's aggregate from the old to the new contribution.

    Players only in `old_deltas` lose what the match gave them earlier;
    players without a stored row get one seeded from their new delta.
    Raises ValueError if a counter would leave its valid range. Does not
    commit. Returns the touched rows.
    """
    player_ids = set(old_deltas) | set(new_deltas)
    if not player_ids:
        return []

    rows = PlayerStats.query.filter(
        PlayerStats.season_id == season_id,
        PlayerStats.player_id.in_(player_ids),
    ).all()
    rows_by_player = {row.player_id: row for row in rows}

    touched = []
    for player_id in sorted(player_ids):
        old_delta = old_deltas.get(player_id) or StatDelta()
        new_delta = new_deltas.get(player_id) or StatDelta()
        row = rows_by_player.get(player_id)
        if row is None:
            if player_id not in new_deltas:
                continue
            row = PlayerStats(player_id=player_id, season_id=season_id)
            db.session.add(row)
            values = apply_delta({}, StatDelta(), new_delta)
        else:
            values = apply_delta(stats_values(row), old_delta, new_delta)
        _write_values(row, values)
        touched.append(row)
    return touched


def game_records_from_rows(games):
    """Rebuild game records from stored Game / GameEvent rows."""
    records = []
    for game in games:
        result = game.result
        events, checkouts = {}, {}
        for event in game.events:
            if event.event_type == HIGHEST_CHECKOUT:
                checkouts[event.player_id] = max(
                    checkouts.get(event.player_id, 0), event.value or 0,
                )
                continue
            kind = EventKind(event.event_type)
            per_player = events.setdefault(event.player_id, {})
            per_player[kind] = per_player.get(kind, 0) + 1
        records.append({
            'order': game.order,
            'type': game.game_type,
            'format': game.format,
            'participants': game.participants,
            'winner': result.get('winner'),
            'home_legs': int(result.get('homeLegs') or 0),
            'away_legs': int(result.get('awayLegs') or 0),
            'events': events,
            'highest_checkouts': checkouts,
        })
    return records


def rebuild_season_stats(season_id):
    """Recompute every aggregate of a season from all stored games.

    Unlike the incremental path this also lowers a running maximum checkout
    that an edited match no longer supports. Does not commit.
    """
    games = Game.query.join(Match, Game.match_id == Match.id).filter(
        Match.season_id == season_id,
        Match.end_time.isnot(None),
        Match.status == 'completed',
    ).all()
    deltas = compute_delta(game_records_from_rows(games))

    rows = PlayerStats.query.filter_by(season_id=season_id).all()
    rows_by_player = {row.player_id: row for row in rows}
    player_ids = set(rows_by_player) | set(deltas)
    for player_id in player_ids:
        row = rows_by_player.get(player_id)
        if row is None:
            row = PlayerStats(player_id=player_id, season_id=season_id)
            db.session.add(row)
        values = apply_delta({}, StatDelta(), deltas.get(player_id) or StatDelta())
        _write_values(row, values)

    logger.info('Rebuilt statistics for season %s: %s games, %s players',
                season_id, len(games), len(player_ids))
    return len(player_ids)
