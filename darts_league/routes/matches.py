from flask import Blueprint, request, jsonify
from werkzeug.security import check_password_hash
from darts_league.app import db
from darts_league.models import Match, Team, User
from darts_league.auth_utils import admin_required, login_required, member_team_id
from darts_league.routes.helpers import (
    emit_league_update, parse_datetime, parse_int, season_id_arg,
)
from darts_league.services.results import load_match, submit_detailed_result, submit_quick_result
from darts_league.services.seasons import resolve_season

matches_bp = Blueprint('matches', __name__)


def _teams_error(season_id, home_team_id, away_team_id):
    if not home_team_id or not away_team_id:
        return 'Home and away teams are required'
    if home_team_id == away_team_id:
        return 'A team cannot play itself'
    teams = Team.query.filter(Team.id.in_([home_team_id, away_team_id])).all()
    if len(teams) != 2:
        return 'Team not found'
    if any(team.season_id != season_id for team in teams):
        return 'Both teams must belong to the match season'
    return None


def _broadcast_result(match, mode):
    emit_league_update(
        'match_update',
        match_id=match.id, season_id=match.season_id, mode=mode,
        result=match.result,
    )
    emit_league_update('standings_update', season_id=match.season_id)


@matches_bp.route('', methods=['GET'])
def list_matches():
    season = resolve_season(season_id_arg())
    query = Match.query.filter_by(season_id=season.id)
    status = request.args.get('status')
    if status:
        query = query.filter(Match.status == status)
    matches = query.order_by(
        Match.round.asc(), Match.start_time.asc(), Match.id.asc(),
    ).all()
    return jsonify({'matches': [m.to_dict() for m in matches]})


@matches_bp.route('/<int:match_id>', methods=['GET'])
def get_match(match_id):
    match = db.session.get(Match, match_id)
    if not match:
        return jsonify({'error': 'Match not found'}), 404
    return jsonify({'match': match.to_dict(include_games=True)})


@matches_bp.route('', methods=['POST'])
@admin_required
def create_match():
    data = request.get_json(silent=True) or {}
    season = resolve_season(data.get('season_id'))
    home_team_id = parse_int(data.get('home_team_id'))
    away_team_id = parse_int(data.get('away_team_id'))
    error = _teams_error(season.id, home_team_id, away_team_id)
    if error:
        return jsonify({'error': error}), 400

    start_time = parse_datetime(data.get('start_time'))
    if data.get('start_time') and start_time is None:
        return jsonify({'error': 'Invalid start time'}), 400

    match = Match(
        season_id=season.id,
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        round=parse_int(data.get('round')),
        start_time=start_time,
        status='scheduled',
    )
    db.session.add(match)
    db.session.commit()
    return jsonify({'match': match.to_dict()}), 201


@matches_bp.route('/<int:match_id>', methods=['PUT'])
@admin_required
def update_match(match_id):
    match = db.session.get(Match, match_id)
    if not match:
        return jsonify({'error': 'Match not found'}), 404
    if match.status != 'scheduled':
        return jsonify({'error': 'Only scheduled matches can be edited'}), 400

    data = request.get_json(silent=True) or {}
    home_team_id = parse_int(data.get('home_team_id', match.home_team_id))
    away_team_id = parse_int(data.get('away_team_id', match.away_team_id))
    error = _teams_error(match.season_id, home_team_id, away_team_id)
    if error:
        return jsonify({'error': error}), 400
    match.home_team_id = home_team_id
    match.away_team_id = away_team_id

    if 'round' in data:
        match.round = parse_int(data['round'])
    if 'start_time' in data:
        start_time = parse_datetime(data['start_time'])
        if data['start_time'] and start_time is None:
            db.session.rollback()
            return jsonify({'error': 'Invalid start time'}), 400
        match.start_time = start_time

    db.session.commit()
    return jsonify({'match': match.to_dict()})


@matches_bp.route('/<int:match_id>', methods=['DELETE'])
@admin_required
def delete_match(match_id):
    match = db.session.get(Match, match_id)
    if not match:
        return jsonify({'error': 'Match not found'}), 404
    if match.games:
        return jsonify({'error': 'Match has a detailed result and cannot be deleted'}), 400

    season_id = match.season_id
    was_completed = match.is_completed
    db.session.delete(match)
    db.session.commit()
    if was_completed:
        emit_league_update('standings_update', season_id=season_id)
    return jsonify({'message': 'Match deleted'})


@matches_bp.route('/<int:match_id>/quick-result', methods=['POST'])
@login_required
def quick_result(match_id):
    match = load_match(match_id)
    submit_quick_result(match, request.current_user, request.get_json(silent=True))
    _broadcast_result(match, 'quick')
    return jsonify({'match': match.to_dict()})


@matches_bp.route('/<int:match_id>/result', methods=['PUT'])
@login_required
def detailed_result(match_id):
    match = load_match(match_id, for_update=True)
    submit_detailed_result(match, request.current_user, request.get_json(silent=True))
    _broadcast_result(match, 'detailed')
    return jsonify({'match': match.to_dict(include_games=True)})


@matches_bp.route('/<int:match_id>/verify-pin', methods=['POST'])
@login_required
def verify_pin(match_id):
    """Check the PIN of the caller's team captain for a match of that team."""
    data = request.get_json(silent=True) or {}
    pin = str(data.get('pin') or '').strip()
    if len(pin) < 4:
        return jsonify({'error': 'Invalid PIN'}), 400

    match = db.session.get(Match, match_id)
    if not match:
        return jsonify({'error': 'Match not found'}), 404

    team_id = member_team_id(request.current_user)
    if team_id is None or not match.involves_team(team_id):
        return jsonify({'error': 'You can only enter results for your own team\'s matches'}), 403

    team = db.session.get(Team, team_id)
    captain_user = None
    if team.captain_id is not None:
        captain_user = User.query.filter(
            User.player_id == team.captain_id,
            User.captain_pin_hash.isnot(None),
        ).first()
    if not captain_user:
        return jsonify({'error': 'Team captain has not set a PIN'}), 404
    if not check_password_hash(captain_user.captain_pin_hash, pin):
        return jsonify({'error': 'Incorrect PIN'}), 403

    return jsonify({
        'success': True,
        'match_id': match.id,
        'team_id': team.id,
        'captain_name': captain_user.name or captain_user.username,
    })
