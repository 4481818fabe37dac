import re

from flask import Blueprint, request, jsonify, current_app
from werkzeug.security import generate_password_hash, check_password_hash
from darts_league.app import db
from darts_league.models import User, Player
from darts_league.auth_utils import (
    generate_token, login_required, admin_required, captain_required, caller_role,
    csrf_token_for_bearer,
)

auth_bp = Blueprint('auth', __name__)

_PIN_PATTERN = re.compile(r'^\d{4,8}$')


def _configured_admin_emails():
    raw_value = current_app.config.get('ADMIN_EMAILS', '')
    return {
        item.strip().lower()
        for item in str(raw_value).split(',')
        if item and item.strip()
    }


def _is_configured_admin_email(email):
    normalized = (email or '').strip().lower()
    return normalized in _configured_admin_emails()


def _password_complexity_error(raw_password):
    password = str(raw_password or '')
    if len(password) < 8:
        return 'Password must be at least 8 characters long'
    if not re.search(r'[A-Za-z]', password) or not re.search(r'\d', password):
        return 'Password must include at least one letter and one number'
    return None


def _profile_dict(user):
    data = user.to_dict()
    data['player'] = user.player.to_dict() if user.player else None
    data['role'] = caller_role(user)
    return data


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True)
    if not data or not data.get('username') or not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Username, email, and password are required'}), 400

    username = str(data['username']).strip()
    email = str(data['email']).strip().lower()
    password_error = _password_complexity_error(data.get('password'))
    if password_error:
        return jsonify({'error': password_error}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already taken'}), 409
    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 409

    user = User(
        username=username,
        email=email,
        password_hash=generate_password_hash(data['password']),
        is_admin=_is_configured_admin_email(email),
        name=data.get('name', ''),
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info('Registered user %s (admin=%s)', user.id, user.is_admin)
    token = generate_token(user.id)
    return jsonify({'token': token, 'user': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    if not data or not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Email and password are required'}), 400

    email = str(data['email']).strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, data['password']):
        return jsonify({'error': 'Invalid email or password'}), 401

    if not user.is_admin and _is_configured_admin_email(user.email):
        user.is_admin = True
        db.session.commit()

    token = generate_token(user.id)
    return jsonify({'token': token, 'user': user.to_dict()})


@auth_bp.route('/csrf', methods=['GET'])
@login_required
def get_csrf_token():
    auth_header = request.headers.get('Authorization', '')
    return jsonify({'csrf_token': csrf_token_for_bearer(auth_header)})


@auth_bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    return jsonify({'user': _profile_dict(request.current_user)})


@auth_bp.route('/users/<int:user_id>/player', methods=['PUT'])
@admin_required
def link_player(user_id):
    """Attach a user account to a player record (or detach with null)."""
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    if player_id is None:
        user.player_id = None
    else:
        player = db.session.get(Player, player_id)
        if not player:
            return jsonify({'error': 'Player not found'}), 404
        linked = User.query.filter(User.player_id == player.id, User.id != user.id).first()
        if linked:
            return jsonify({'error': 'Player is already linked to another account'}), 409
        user.player_id = player.id
    db.session.commit()
    return jsonify({'user': _profile_dict(user)})


@auth_bp.route('/captain-pin', methods=['PUT'])
@captain_required
def set_captain_pin():
    """Captains set the PIN team-mates use to confirm result entry."""
    user = request.current_user

    data = request.get_json(silent=True) or {}
    pin = str(data.get('pin') or '').strip()
    if not _PIN_PATTERN.match(pin):
        return jsonify({'error': 'PIN must be 4 to 8 digits'}), 400

    user.captain_pin_hash = generate_password_hash(pin)
    db.session.commit()
    return jsonify({'message': 'PIN updated'})
