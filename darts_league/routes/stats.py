from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from darts_league.app import db
from darts_league.auth_utils import admin_required
from darts_league.routes.helpers import emit_league_update, parse_int
from darts_league.services.errors import ConsistencyError
from darts_league.services.player_stats import rebuild_season_stats
from darts_league.services.seasons import resolve_season

stats_bp = Blueprint('stats', __name__)


@stats_bp.route('/recalculate', methods=['POST'])
@admin_required
def recalculate():
    """Rebuild every player aggregate of a season from its stored games."""
    data = request.get_json(silent=True) or {}
    season_id = parse_int(data.get('season_id', request.args.get('season_id')))
    season = resolve_season(season_id)

    try:
        players = rebuild_season_stats(season.id)
        db.session.commit()
    except (SQLAlchemyError, ValueError) as exc:
        db.session.rollback()
        current_app.logger.error('Statistics rebuild for season %s failed: %s', season.id, exc)
        raise ConsistencyError('Failed to recalculate statistics') from exc

    emit_league_update('standings_update', season_id=season.id)
    return jsonify({'season_id': season.id, 'players_updated': players})
