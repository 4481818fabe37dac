from datetime import date
from types import SimpleNamespace

import pytest
from werkzeug.security import generate_password_hash
from darts_league.app import create_app, db
from darts_league.auth_utils import generate_token

ADMIN_EMAIL = 'admin@league.test'


@pytest.fixture
def app():
    app = create_app('testing')
    app.config['ADMIN_EMAILS'] = ADMIN_EMAIL
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _headers(user):
    return {'Authorization': f'Bearer {generate_token(user.id)}'}


def _make_user(username, player=None, is_admin=False):
    from darts_league.models import User
    user = User(
        username=username, email=f'{username}@league.test',
        password_hash=generate_password_hash('password123'),
        is_admin=is_admin, name=username.title(),
        player_id=player.id if player else None,
    )
    db.session.add(user)
    db.session.flush()
    return user


def _make_team(season, name, short_name):
    from darts_league.models import Player, Team
    team = Team(season_id=season.id, name=name, short_name=short_name)
    db.session.add(team)
    db.session.flush()
    players = [
        Player(team_id=team.id, name=f'{name} {number}',
               role='captain' if number == 1 else 'player')
        for number in range(1, 5)
    ]
    db.session.add_all(players)
    db.session.flush()
    team.captain_id = players[0].id
    return team, players


@pytest.fixture
def auth_headers(client):
    """Register a user and return auth headers."""
    res = client.post('/api/auth/register', json={
        'username': 'testuser', 'email': 'test@example.com',
        'password': 'password123', 'name': 'Test User',
    })
    token = res.get_json()['token']
    return {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}


@pytest.fixture
def league(app):
    """An active season with three teams, their captains' accounts and one fixture."""
    from darts_league.models import Match, Season
    season = Season(name='Season 2025/26', start_date=date(2025, 9, 1),
                    end_date=date(2026, 5, 31), is_active=True)
    db.session.add(season)
    db.session.flush()

    home, home_players = _make_team(season, 'Arrows Brno', 'ARB')
    away, away_players = _make_team(season, 'Bulls Praha', 'BUP')
    other, other_players = _make_team(season, 'Checkout Club', 'CHC')

    admin = _make_user('admin', is_admin=True)
    home_captain = _make_user('homecap', player=home_players[0])
    away_captain = _make_user('awaycap', player=away_players[0])
    other_captain = _make_user('othercap', player=other_players[0])
    home_member = _make_user('homemember', player=home_players[1])
    outsider = _make_user('outsider')

    match = Match(season_id=season.id, home_team_id=home.id, away_team_id=away.id,
                  round=1, status='scheduled')
    db.session.add(match)
    db.session.commit()

    return SimpleNamespace(
        season=season, home=home, away=away, other=other,
        home_players=home_players, away_players=away_players, other_players=other_players,
        match=match,
        admin_headers=_headers(admin),
        home_captain_headers=_headers(home_captain),
        away_captain_headers=_headers(away_captain),
        other_captain_headers=_headers(other_captain),
        home_member_headers=_headers(home_member),
        outsider_headers=_headers(outsider),
        home_captain_user=home_captain,
    )
