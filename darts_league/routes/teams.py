from flask import Blueprint, request, jsonify
from darts_league.app import db
from darts_league.models import Match, Player, Team
from darts_league.auth_utils import admin_required
from darts_league.routes.helpers import clean_text, season_id_arg
from darts_league.services.seasons import resolve_season

teams_bp = Blueprint('teams', __name__)


def assign_captain(team, player):
    """Make `player` the team's only captain, or leave the team without one."""
    demoted = Player.query.filter(Player.team_id == team.id, Player.role == 'captain')
    if player is not None:
        demoted = demoted.filter(Player.id != player.id)
    for member in demoted.all():
        member.role = 'player'
    if player is None:
        team.captain_id = None
        return
    player.role = 'captain'
    team.captain_id = player.id


def _apply_captain(team, raw_captain_id):
    """Set or clear the captain; returns an error message or None."""
    if raw_captain_id in (None, ''):
        assign_captain(team, None)
        return None
    player = db.session.get(Player, raw_captain_id)
    if not player or player.team_id != team.id:
        return 'Captain must be a player of this team'
    assign_captain(team, player)
    return None


@teams_bp.route('', methods=['GET'])
def list_teams():
    season = resolve_season(season_id_arg())
    teams = Team.query.filter_by(season_id=season.id).order_by(Team.name.asc()).all()
    return jsonify({'teams': [t.to_dict(include_players=True) for t in teams]})


@teams_bp.route('/<int:team_id>', methods=['GET'])
def get_team(team_id):
    team = db.session.get(Team, team_id)
    if not team:
        return jsonify({'error': 'Team not found'}), 404
    return jsonify({'team': team.to_dict(include_players=True)})


@teams_bp.route('', methods=['POST'])
@admin_required
def create_team():
    data = request.get_json(silent=True) or {}
    name = clean_text(data.get('name'), 120)
    short_name = clean_text(data.get('short_name'), 20)
    if not name or not short_name:
        return jsonify({'error': 'Team name and short name are required'}), 400

    season = resolve_season(data.get('season_id'))
    team = Team(
        season_id=season.id, name=name, short_name=short_name,
        city=clean_text(data.get('city'), 100),
        logo_url=clean_text(data.get('logo_url'), 500) or None,
    )
    db.session.add(team)
    db.session.commit()
    return jsonify({'team': team.to_dict(include_players=True)}), 201


@teams_bp.route('/<int:team_id>', methods=['PUT'])
@admin_required
def update_team(team_id):
    team = db.session.get(Team, team_id)
    if not team:
        return jsonify({'error': 'Team not found'}), 404

    data = request.get_json(silent=True) or {}
    if 'name' in data:
        team.name = clean_text(data['name'], 120)
    if 'short_name' in data:
        team.short_name = clean_text(data['short_name'], 20)
    if not team.name or not team.short_name:
        db.session.rollback()
        return jsonify({'error': 'Team name and short name cannot be empty'}), 400
    if 'city' in data:
        team.city = clean_text(data['city'], 100)
    if 'logo_url' in data:
        team.logo_url = clean_text(data['logo_url'], 500) or None
    if 'captain_id' in data:
        error = _apply_captain(team, data['captain_id'])
        if error:
            db.session.rollback()
            return jsonify({'error': error}), 400

    db.session.commit()
    return jsonify({'team': team.to_dict(include_players=True)})


@teams_bp.route('/<int:team_id>', methods=['DELETE'])
@admin_required
def delete_team(team_id):
    team = db.session.get(Team, team_id)
    if not team:
        return jsonify({'error': 'Team not found'}), 404
    if team.players:
        return jsonify({'error': 'Move or remove the team\'s players first'}), 400
    has_matches = Match.query.filter(
        (Match.home_team_id == team.id) | (Match.away_team_id == team.id)
    ).first()
    if has_matches:
        return jsonify({'error': 'Team has matches and cannot be deleted'}), 400

    db.session.delete(team)
    db.session.commit()
    return jsonify({'message': 'Team deleted'})


@teams_bp.route('/<int:team_id>/matches', methods=['GET'])
def team_matches(team_id):
    team = db.session.get(Team, team_id)
    if not team:
        return jsonify({'error': 'Team not found'}), 404
    matches = Match.query.filter(
        Match.season_id == team.season_id,
        (Match.home_team_id == team.id) | (Match.away_team_id == team.id),
    ).order_by(Match.round.asc(), Match.start_time.asc()).all()
    return jsonify({'matches': [m.to_dict() for m in matches]})
