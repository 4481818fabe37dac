from datetime import datetime, time, timedelta

from flask import Blueprint, request, jsonify
from darts_league.app import db
from darts_league.models import Match, Player, PlayerStats, Post, Season, Team
from darts_league.auth_utils import admin_required
from darts_league.routes.helpers import clean_text, coerce_bool, parse_date
from darts_league.routes.standings import season_table
from darts_league.services.seasons import activate_season

seasons_bp = Blueprint('seasons', __name__)

_ARCHIVE_TOP_PLAYERS = 10
_ARCHIVE_POSTS = 10


@seasons_bp.route('', methods=['GET'])
def list_seasons():
    seasons = Season.query.order_by(Season.start_date.desc()).all()
    return jsonify({'seasons': [s.to_dict() for s in seasons]})


@seasons_bp.route('', methods=['POST'])
@admin_required
def create_season():
    data = request.get_json(silent=True) or {}
    name = clean_text(data.get('name'), 120)
    start_date = parse_date(data.get('start_date'))
    end_date = parse_date(data.get('end_date'))
    if not name or not start_date or not end_date:
        return jsonify({'error': 'Name, start date and end date are required'}), 400
    if end_date < start_date:
        return jsonify({'error': 'Season cannot end before it starts'}), 400

    season = Season(name=name, start_date=start_date, end_date=end_date, is_active=False)
    db.session.add(season)
    db.session.flush()
    if coerce_bool(data.get('is_active')):
        activate_season(season)
    db.session.commit()
    return jsonify({'season': season.to_dict()}), 201


@seasons_bp.route('/<int:season_id>/activate', methods=['POST'])
@admin_required
def activate(season_id):
    season = db.session.get(Season, season_id)
    if not season:
        return jsonify({'error': 'Season not found'}), 404
    activate_season(season)
    db.session.commit()
    return jsonify({'season': season.to_dict()})


@seasons_bp.route('/<int:season_id>/archive', methods=['GET'])
def season_archive(season_id):
    """Final table, best players and news of a season."""
    season = db.session.get(Season, season_id)
    if not season:
        return jsonify({'error': 'Season not found'}), 404

    completed = Match.query.filter(
        Match.season_id == season.id,
        Match.end_time.isnot(None),
    ).count()

    top_stats = PlayerStats.query.join(Player).filter(
        PlayerStats.season_id == season.id,
        PlayerStats.bpi > 0,
    ).order_by(PlayerStats.bpi.desc()).limit(_ARCHIVE_TOP_PLAYERS).all()

    posts = Post.query.filter(
        Post.published.is_(True),
        Post.created_at >= datetime.combine(season.start_date, time.min),
        Post.created_at < datetime.combine(season.end_date + timedelta(days=1), time.min),
    ).order_by(Post.created_at.desc()).limit(_ARCHIVE_POSTS).all()

    return jsonify({
        'season': season.to_dict(),
        'teams': [t.to_dict() for t in Team.query.filter_by(season_id=season.id).order_by(Team.name)],
        'final_standings': season_table(season),
        'top_players': [
            {'player': stats.player.to_dict(), 'stats': stats.to_dict()}
            for stats in top_stats
        ],
        'completed_matches': completed,
        'posts': [p.to_dict() for p in posts],
    })
