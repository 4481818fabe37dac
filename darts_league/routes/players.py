from flask import Blueprint, request, jsonify
from darts_league.app import db
from darts_league.models import Player, PlayerStats, Team, User
from darts_league.auth_utils import admin_required
from darts_league.routes.helpers import clean_text, parse_date, season_id_arg
from darts_league.routes.teams import assign_captain
from darts_league.services.indices import calculate_uso_index
from darts_league.services.seasons import resolve_season

players_bp = Blueprint('players', __name__)

_ROLES = {'player', 'captain'}


def _player_with_stats(player, stats):
    data = player.to_dict()
    data['stats'] = stats.to_dict() if stats else None
    data['bpi'] = stats.bpi if stats else 0.0
    data['hsl_index'] = stats.hsl_index if stats else 0.0
    return data


def _apply_player_fields(player, data):
    """Copy editable fields from a request body; returns an error message or None."""
    if 'name' in data:
        player.name = clean_text(data['name'], 120)
    if not player.name:
        return 'Player name is required'
    if 'nickname' in data:
        player.nickname = clean_text(data['nickname'], 80) or None
    if 'role' in data:
        role = clean_text(data['role'], 20).lower()
        if role not in _ROLES:
            return 'Role must be player or captain'
        player.role = role
    if 'date_of_birth' in data:
        raw_date = data['date_of_birth']
        player.date_of_birth = parse_date(raw_date)
        if raw_date and player.date_of_birth is None:
            return 'Invalid date of birth'
    if 'photo_url' in data:
        player.photo_url = clean_text(data['photo_url'], 500) or None
    if 'team_id' in data:
        team = db.session.get(Team, data['team_id'])
        if not team:
            return 'Team not found'
        player.team_id = team.id
    if player.team_id is None:
        return 'Team is required'
    return None


def _sync_captaincy(player):
    """Bring Team.captain_id in line with the player's role."""
    team = db.session.get(Team, player.team_id)
    if player.role == 'captain':
        assign_captain(team, player)
    elif team.captain_id == player.id:
        assign_captain(team, None)


@players_bp.route('', methods=['GET'])
def list_players():
    """Players of the season's teams with their season statistics."""
    season = resolve_season(season_id_arg())
    query = Player.query.join(Team, Player.team_id == Team.id).filter(Team.season_id == season.id)
    team_id = request.args.get('team_id', type=int)
    if team_id:
        query = query.filter(Player.team_id == team_id)
    players = query.order_by(Player.name.asc()).all()

    stats_rows = PlayerStats.query.filter(
        PlayerStats.season_id == season.id,
        PlayerStats.player_id.in_([p.id for p in players]),
    ).all() if players else []
    stats_by_player = {row.player_id: row for row in stats_rows}

    return jsonify({
        'season_id': season.id,
        'players': [_player_with_stats(p, stats_by_player.get(p.id)) for p in players],
    })


@players_bp.route('/<int:player_id>', methods=['GET'])
def get_player(player_id):
    player = db.session.get(Player, player_id)
    if not player:
        return jsonify({'error': 'Player not found'}), 404

    seasons = []
    for stats in sorted(player.stats, key=lambda row: row.season_id, reverse=True):
        entry = stats.to_dict()
        entry['season_name'] = stats.season.name if stats.season else None
        entry['uso_index'] = calculate_uso_index(stats)
        seasons.append(entry)

    data = player.to_dict()
    data['seasons'] = seasons
    return jsonify({'player': data})


@players_bp.route('', methods=['POST'])
@admin_required
def create_player():
    data = request.get_json(silent=True) or {}
    if not data.get('team_id'):
        return jsonify({'error': 'Team is required'}), 400
    player = Player(name='', role='player')
    error = _apply_player_fields(player, data)
    if error:
        return jsonify({'error': error}), 400

    db.session.add(player)
    db.session.flush()
    if player.role == 'captain':
        _sync_captaincy(player)
    db.session.commit()
    return jsonify({'player': player.to_dict()}), 201


@players_bp.route('/<int:player_id>', methods=['PUT'])
@admin_required
def update_player(player_id):
    player = db.session.get(Player, player_id)
    if not player:
        return jsonify({'error': 'Player not found'}), 404

    data = request.get_json(silent=True) or {}
    previous_team_id = player.team_id
    error = _apply_player_fields(player, data)
    if error:
        db.session.rollback()
        return jsonify({'error': error}), 400

    moved = player.team_id != previous_team_id
    if moved:
        old_team = db.session.get(Team, previous_team_id)
        if old_team and old_team.captain_id == player.id:
            old_team.captain_id = None
        if 'role' not in data:
            player.role = 'player'
    if moved or 'role' in data:
        _sync_captaincy(player)
    db.session.commit()
    return jsonify({'player': player.to_dict()})


@players_bp.route('/<int:player_id>', methods=['DELETE'])
@admin_required
def delete_player(player_id):
    player = db.session.get(Player, player_id)
    if not player:
        return jsonify({'error': 'Player not found'}), 404
    if any(stats.total_games_played for stats in player.stats):
        return jsonify({'error': 'Player has recorded games and cannot be deleted'}), 400

    Team.query.filter_by(captain_id=player.id).update(
        {'captain_id': None}, synchronize_session='fetch',
    )
    User.query.filter_by(player_id=player.id).update(
        {'player_id': None}, synchronize_session='fetch',
    )
    db.session.delete(player)
    db.session.commit()
    return jsonify({'message': 'Player deleted'})
