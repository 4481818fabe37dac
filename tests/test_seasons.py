"""Tests for season routes and the demo seeder."""
from datetime import date, datetime

from darts_league.app import db
from darts_league.models import Match, Post, Season, Team
from darts_league.services.demo_seeder import seed_demo_season


def test_create_season_requires_admin(client, league):
    payload = {'name': 'Season 2026/27', 'start_date': '2026-09-01', 'end_date': '2027-05-31'}
    res = client.post('/api/seasons', json=payload, headers=league.home_captain_headers)
    assert res.status_code == 403

    res = client.post('/api/seasons', json=payload, headers=league.admin_headers)
    assert res.status_code == 201
    assert res.get_json()['season']['is_active'] is False


def test_create_season_validates_dates(client, league):
    res = client.post('/api/seasons', json={
        'name': 'Backwards', 'start_date': '2026-09-01', 'end_date': '2026-01-01',
    }, headers=league.admin_headers)
    assert res.status_code == 400
    res = client.post('/api/seasons', json={'name': 'No dates'}, headers=league.admin_headers)
    assert res.status_code == 400


def test_only_one_season_is_active(client, league):
    res = client.post('/api/seasons', json={
        'name': 'Season 2026/27', 'start_date': '2026-09-01', 'end_date': '2027-05-31',
        'is_active': True,
    }, headers=league.admin_headers)
    assert res.status_code == 201
    new_id = res.get_json()['season']['id']

    active = Season.query.filter_by(is_active=True).all()
    assert [s.id for s in active] == [new_id]

    res = client.post(f'/api/seasons/{league.season.id}/activate', headers=league.admin_headers)
    assert res.status_code == 200
    active = Season.query.filter_by(is_active=True).all()
    assert [s.id for s in active] == [league.season.id]


def test_list_seasons_newest_first(client, league):
    db.session.add(Season(name='Old', start_date=date(2020, 9, 1), end_date=date(2021, 5, 31)))
    db.session.commit()
    seasons = client.get('/api/seasons').get_json()['seasons']
    assert [s['name'] for s in seasons] == ['Season 2025/26', 'Old']


def test_standings_without_active_season_is_404(client):
    res = client.get('/api/standings')
    assert res.status_code == 404
    assert res.get_json()['error'] == 'No active season found'


def test_standings_for_explicit_season(client, league):
    res = client.get(f'/api/standings?season_id={league.season.id}')
    assert res.status_code == 200
    table = res.get_json()['standings']
    assert len(table) == 3
    assert all(row['points'] == 0 for row in table)
    assert client.get('/api/standings?season_id=999').status_code == 404


def test_season_archive(client, league):
    client.post(f'/api/matches/{league.match.id}/quick-result', json={
        'homeWins': 10, 'awayWins': 9, 'homeLegs': 24, 'awayLegs': 23,
    }, headers=league.admin_headers)
    db.session.add(Post(title='Round 1 report', content='Great darts.',
                        created_at=datetime(2025, 10, 2, 12, 0)))
    db.session.add(Post(title='Last year', content='Old news.',
                        created_at=datetime(2024, 10, 2, 12, 0)))
    db.session.commit()

    res = client.get(f'/api/seasons/{league.season.id}/archive')
    assert res.status_code == 200
    data = res.get_json()
    assert data['completed_matches'] == 1
    assert data['final_standings'][0]['team_id'] == league.home.id
    assert data['final_standings'][0]['won_penalty'] == 1
    assert [p['title'] for p in data['posts']] == ['Round 1 report']
    assert data['top_players'] == []


def test_demo_seeder_creates_round_robin_once(app):
    created = seed_demo_season(today=date(2026, 1, 5))
    assert created == 6
    season = Season.query.one()
    assert season.is_active is True
    teams = Team.query.filter_by(season_id=season.id).all()
    assert len(teams) == 4
    assert all(team.captain_id for team in teams)

    pairs = {frozenset((m.home_team_id, m.away_team_id)) for m in Match.query.all()}
    assert len(pairs) == 6

    assert seed_demo_season() == 0
