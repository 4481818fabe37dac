"""Match result entry: quick (aggregate only) and detailed (per game)."""
import json
import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from darts_league.app import db
from darts_league.auth_utils import can_enter_result
from darts_league.models import Game, GameEvent, Match, Player
from darts_league.services.errors import (
    AuthorizationError, ConflictError, ConsistencyError, NotFoundError, ValidationError,
)
from darts_league.services.player_stats import apply_match_deltas, game_records_from_rows
from darts_league.services.result_payloads import (
    MAX_GAMES_PER_MATCH, MAX_LEGS_PER_SIDE, build_detailed_result, build_quick_result,
    normalize_detailed_submission, normalize_quick_result,
)
from darts_league.services.stat_delta import HIGHEST_CHECKOUT, compute_delta
from darts_league.time_utils import utcnow_naive

logger = logging.getLogger(__name__)


def ensure_can_submit(user, match):
    if not can_enter_result(user, match):
        raise AuthorizationError('Only an admin or a captain of one of the teams may enter this result')


def result_limits():
    """Size limits for submitted results, from the app config."""
    return {
        'max_games': current_app.config.get('MAX_GAMES_PER_MATCH', MAX_GAMES_PER_MATCH),
        'max_legs': current_app.config.get('MAX_LEGS_PER_SIDE', MAX_LEGS_PER_SIDE),
    }


def load_match(match_id, for_update=False):
    query = db.select(Match).filter_by(id=match_id)
    if for_update:
        query = query.with_for_update()
    match = db.session.execute(query).scalar_one_or_none()
    if match is None:
        raise NotFoundError('Match not found')
    return match


def _mark_completed(match, result, is_quick, now):
    match.result = result
    match.is_quick_result = is_quick
    match.status = 'completed'
    match.end_time = now
    if match.start_time is None:
        match.start_time = now


def submit_quick_result(match, user, payload, now=None):
    """Store an aggregate result. Player statistics are not touched."""
    ensure_can_submit(user, match)

    values, errors = normalize_quick_result(payload, **result_limits())
    if errors:
        raise ValidationError('Invalid quick result', errors)
    if match.games:
        raise ConflictError(
            'This match already has a detailed result; re-enter it in detailed mode'
        )

    _mark_completed(match, build_quick_result(values), True, now or utcnow_naive())
    try:
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError('The match was changed by another submission; please retry') from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise ConsistencyError('Failed to save the result') from exc

    logger.info('Quick result saved for match %s by user %s: %s-%s',
                match.id, getattr(user, 'id', None), values['homeWins'], values['awayWins'])
    return match


def _ensure_players_exist(game_records):
    player_ids = set()
    for record in game_records:
        player_ids.update(record['participants']['home'])
        player_ids.update(record['participants']['away'])
    found = {
        pid for (pid,) in db.session.query(Player.id).filter(Player.id.in_(player_ids)).all()
    }
    missing = sorted(player_ids - found)
    if missing:
        raise NotFoundError('One or more players not found', [f'Player {pid}' for pid in missing])


def _delete_games(match):
    for game in list(match.games):
        db.session.delete(game)
    db.session.flush()
    db.session.expire(match, ['games'])


def _create_games(match, game_records):
    for record in game_records:
        game = Game(
            match_id=match.id,
            order=record['order'],
            game_type=record['type'],
            format=record['format'],
        )
        game.result_json = json.dumps({
            'winner': record['winner'],
            'homeLegs': record['home_legs'],
            'awayLegs': record['away_legs'],
        })
        game.participants_json = json.dumps(record['participants'])
        db.session.add(game)
        db.session.flush()

        for player_id, counts in record['events'].items():
            for kind, count in counts.items():
                for _ in range(count):
                    db.session.add(GameEvent(
                        game_id=game.id, player_id=player_id, event_type=kind.value,
                    ))
        for player_id, value in record['highest_checkouts'].items():
            db.session.add(GameEvent(
                game_id=game.id, player_id=player_id,
                event_type=HIGHEST_CHECKOUT, value=value,
            ))


def submit_detailed_result(match, user, payload, now=None):
    """Replace a match's games and move player aggregates to the new result.

    The match row should be loaded with `load_match(..., for_update=True)`.
    All writes share one transaction: the match result, the game and event
    rows and every participant's aggregate either all change or none do.
    """
    ensure_can_submit(user, match)

    game_records, submitted, errors = normalize_detailed_submission(payload, **result_limits())
    if errors:
        raise ValidationError('Invalid detailed result', errors)
    match_result, errors = build_detailed_result(game_records, submitted)
    if errors:
        raise ValidationError('Result does not match the games', errors)
    _ensure_players_exist(game_records)

    try:
        old_deltas = compute_delta(game_records_from_rows(match.games))
        new_deltas = compute_delta(game_records)

        _mark_completed(match, match_result, False, now or utcnow_naive())
        _delete_games(match)
        _create_games(match, game_records)
        apply_match_deltas(match.season_id, old_deltas, new_deltas)
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError('The match was changed by another submission; please retry') from exc
    except ValueError as exc:
        db.session.rollback()
        logger.error('Statistics for match %s out of range, rolled back: %s', match.id, exc)
        raise ConsistencyError('Stored player statistics are inconsistent; run a recalculation') from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error('Detailed result for match %s rolled back: %s', match.id, exc)
        raise ConsistencyError('Failed to save the result') from exc

    logger.info('Detailed result saved for match %s by user %s: %s games, %s players',
                match.id, getattr(user, 'id', None), len(game_records), len(new_deltas))
    return match
