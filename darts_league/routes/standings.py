from flask import Blueprint, jsonify
from darts_league.models import Match, Team
from darts_league.routes.helpers import season_id_arg
from darts_league.services.seasons import resolve_season
from darts_league.services.standings import build_table

standings_bp = Blueprint('standings', __name__)


def season_table(season):
    """Sorted standings of a season, recomputed from its completed matches."""
    teams = Team.query.filter_by(season_id=season.id).all()
    matches = Match.query.filter(
        Match.season_id == season.id,
        Match.end_time.isnot(None),
        Match.result_json.isnot(None),
    ).all()
    return build_table(
        [{'id': t.id, 'name': t.name, 'short_name': t.short_name} for t in teams],
        [{
            'id': m.id,
            'home_team_id': m.home_team_id,
            'away_team_id': m.away_team_id,
            'end_time': m.end_time,
            'result': m.result,
        } for m in matches],
    )


@standings_bp.route('', methods=['GET'])
def get_standings():
    season = resolve_season(season_id_arg())
    return jsonify({'season': season.to_dict(), 'standings': season_table(season)})
