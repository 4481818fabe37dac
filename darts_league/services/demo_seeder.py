"""Seed an empty database with a demo season."""
from datetime import date, datetime, time, timedelta

from darts_league.app import db
from darts_league.models import Match, Player, Season, Team
from darts_league.services.seasons import activate_season

DEMO_TEAMS = (
    ('Bullseye Brothers', 'BUL', 'Brno'),
    ('Triple Twenty', 'T20', 'Praha'),
    ('Checkout Kings', 'CHK', 'Ostrava'),
    ('Double Trouble', 'DBL', 'Plzen'),
)
PLAYERS_PER_TEAM = 4


def _round_robin(team_ids):
    """Pairings per round for an even number of teams (circle method)."""
    ids = list(team_ids)
    rounds = []
    for _ in range(len(ids) - 1):
        half = len(ids) // 2
        rounds.append(list(zip(ids[:half], reversed(ids[half:]))))
        ids = [ids[0], ids[-1]] + ids[1:-1]
    return rounds


def seed_demo_season(today=None):
    """Insert a demo season with teams, players and fixtures when no season exists."""
    if Season.query.first():
        return 0

    today = today or date.today()
    try:
        season = Season(
            name=f'Demo season {today.year}',
            start_date=today,
            end_date=today + timedelta(days=180),
        )
        db.session.add(season)
        db.session.flush()
        activate_season(season)

        teams = []
        for name, short_name, city in DEMO_TEAMS:
            team = Team(season_id=season.id, name=name, short_name=short_name, city=city)
            db.session.add(team)
            db.session.flush()
            players = [
                Player(team_id=team.id, name=f'{short_name} Player {number}',
                       role='captain' if number == 1 else 'player')
                for number in range(1, PLAYERS_PER_TEAM + 1)
            ]
            db.session.add_all(players)
            db.session.flush()
            team.captain_id = players[0].id
            teams.append(team)

        created = 0
        for round_index, pairings in enumerate(_round_robin([t.id for t in teams]), start=1):
            kickoff = datetime.combine(today + timedelta(weeks=round_index), time(19, 0))
            for home_id, away_id in pairings:
                db.session.add(Match(
                    season_id=season.id, home_team_id=home_id, away_team_id=away_id,
                    round=round_index, start_time=kickoff, status='scheduled',
                ))
                created += 1
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return created
