import json
from darts_league.app import db
from darts_league.time_utils import utcnow_naive


def _safe_json(raw_value, fallback=None):
    if fallback is None:
        fallback = {}
    if not raw_value:
        return fallback
    try:
        return json.loads(raw_value)
    except (TypeError, ValueError):
        return fallback


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    name = db.Column(db.String(120), default='')
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), unique=True, nullable=True)
    captain_pin_hash = db.Column(db.String(256), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    player = db.relationship('Player', backref=db.backref('user', uselist=False))

    def to_dict(self):
        return {
            'id': self.id, 'username': self.username, 'email': self.email,
            'name': self.name, 'is_admin': self.is_admin,
            'player_id': self.player_id,
            'has_captain_pin': bool(self.captain_pin_hash),
            'created_at': _iso(self.created_at),
        }


class Season(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    is_active = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    # At most one active season.
    __table_args__ = (
        db.Index(
            'ix_season_single_active', 'is_active', unique=True,
            sqlite_where=db.text('is_active = 1'),
            postgresql_where=db.text('is_active'),
        ),
    )

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name,
            'start_date': _iso(self.start_date), 'end_date': _iso(self.end_date),
            'is_active': self.is_active,
        }


class Team(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    season_id = db.Column(db.Integer, db.ForeignKey('season.id'), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    short_name = db.Column(db.String(20), nullable=False)
    city = db.Column(db.String(100), default='')
    logo_url = db.Column(db.String(500), nullable=True)
    captain_id = db.Column(
        db.Integer,
        db.ForeignKey('player.id', use_alter=True, name='fk_team_captain_id'),
        nullable=True,
    )
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    season = db.relationship('Season', backref='teams')
    players = db.relationship('Player', backref='team', foreign_keys='Player.team_id',
                              order_by='Player.name')
    captain = db.relationship('Player', foreign_keys=[captain_id], post_update=True)

    def to_dict(self, include_players=False):
        data = {
            'id': self.id, 'season_id': self.season_id,
            'name': self.name, 'short_name': self.short_name,
            'city': self.city, 'logo_url': self.logo_url,
            'captain_id': self.captain_id,
            'captain': self.captain.to_summary() if self.captain else None,
            'player_count': len(self.players),
        }
        if include_players:
            data['players'] = [p.to_summary() for p in self.players]
        return data


class Player(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    nickname = db.Column(db.String(80), nullable=True)
    role = db.Column(db.String(20), default='player', nullable=False)  # player, captain
    date_of_birth = db.Column(db.Date, nullable=True)
    photo_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    stats = db.relationship('PlayerStats', backref='player', cascade='all, delete-orphan')

    @property
    def is_captain(self):
        # Team.captain_id decides; role only mirrors it.
        return bool(self.team and self.team.captain_id == self.id)

    def to_summary(self):
        return {
            'id': self.id, 'name': self.name, 'nickname': self.nickname,
            'role': self.role, 'team_id': self.team_id,
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            'date_of_birth': _iso(self.date_of_birth),
            'photo_url': self.photo_url,
            'is_captain': self.is_captain,
            'team': {
                'id': self.team.id, 'name': self.team.name,
                'short_name': self.team.short_name,
            } if self.team else None,
        })
        return data


class PlayerStats(db.Model):
    """Per-(player, season) counters. Written only by result reconciliation."""
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    season_id = db.Column(db.Integer, db.ForeignKey('season.id'), nullable=False)
    total_games_played = db.Column(db.Integer, default=0, nullable=False)
    total_games_won = db.Column(db.Integer, default=0, nullable=False)
    singles_played = db.Column(db.Integer, default=0, nullable=False)
    singles_won = db.Column(db.Integer, default=0, nullable=False)
    legs_won = db.Column(db.Integer, default=0, nullable=False)
    legs_lost = db.Column(db.Integer, default=0, nullable=False)
    s95 = db.Column(db.Integer, default=0, nullable=False)
    s133 = db.Column(db.Integer, default=0, nullable=False)
    s170 = db.Column(db.Integer, default=0, nullable=False)
    co3 = db.Column(db.Integer, default=0, nullable=False)
    co4 = db.Column(db.Integer, default=0, nullable=False)
    co5 = db.Column(db.Integer, default=0, nullable=False)
    co6 = db.Column(db.Integer, default=0, nullable=False)
    highest_checkout = db.Column(db.Integer, default=0, nullable=False)
    bpi = db.Column(db.Float, default=0.0, nullable=False)
    hsl_index = db.Column(db.Float, default=0.0, nullable=False)
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('player_id', 'season_id', name='uq_player_stats_player_season'),
        db.CheckConstraint('total_games_won <= total_games_played', name='ck_stats_total_won'),
        db.CheckConstraint('singles_won <= singles_played', name='ck_stats_singles_won'),
        db.CheckConstraint(
            'total_games_won >= 0 AND singles_won >= 0 AND legs_won >= 0 AND legs_lost >= 0 '
            'AND s95 >= 0 AND s133 >= 0 AND s170 >= 0 '
            'AND co3 >= 0 AND co4 >= 0 AND co5 >= 0 AND co6 >= 0 '
            'AND highest_checkout >= 0',
            name='ck_stats_non_negative',
        ),
    )

    season = db.relationship('Season')

    def to_dict(self):
        return {
            'player_id': self.player_id, 'season_id': self.season_id,
            'total_games_played': self.total_games_played,
            'total_games_won': self.total_games_won,
            'singles_played': self.singles_played, 'singles_won': self.singles_won,
            'legs_won': self.legs_won, 'legs_lost': self.legs_lost,
            'S95': self.s95, 'S133': self.s133, 'S170': self.s170,
            'CO3': self.co3, 'CO4': self.co4, 'CO5': self.co5, 'CO6': self.co6,
            'highest_checkout': self.highest_checkout,
            'bpi': self.bpi, 'hsl_index': self.hsl_index,
            'updated_at': _iso(self.updated_at),
        }


class Match(db.Model):
    """A league fixture between two teams of one season."""
    id = db.Column(db.Integer, primary_key=True)
    season_id = db.Column(db.Integer, db.ForeignKey('season.id'), nullable=False)
    home_team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    away_team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    round = db.Column(db.Integer, nullable=True)
    start_time = db.Column(db.DateTime, nullable=True)
    end_time = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(20), default='scheduled', nullable=False)  # scheduled, completed
    result_json = db.Column(db.Text, nullable=True)
    is_quick_result = db.Column(db.Boolean, default=False, nullable=False)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.CheckConstraint('home_team_id != away_team_id', name='ck_match_distinct_teams'),
        db.Index('ix_match_season_end_time', 'season_id', 'end_time'),
    )
    __mapper_args__ = {'version_id_col': version}

    season = db.relationship('Season', backref='matches')
    home_team = db.relationship('Team', foreign_keys=[home_team_id])
    away_team = db.relationship('Team', foreign_keys=[away_team_id])
    games = db.relationship('Game', backref='match', order_by='Game.order',
                            cascade='all, delete-orphan')

    @property
    def result(self):
        if not self.result_json:
            return None
        return _safe_json(self.result_json, fallback=None)

    @result.setter
    def result(self, value):
        self.result_json = json.dumps(value) if value is not None else None

    @property
    def is_completed(self):
        return self.status == 'completed' and self.end_time is not None

    def involves_team(self, team_id):
        return team_id in (self.home_team_id, self.away_team_id)

    def to_dict(self, include_games=False):
        data = {
            'id': self.id, 'season_id': self.season_id,
            'home_team_id': self.home_team_id, 'away_team_id': self.away_team_id,
            'home_team': self.home_team.to_dict() if self.home_team else None,
            'away_team': self.away_team.to_dict() if self.away_team else None,
            'round': self.round,
            'start_time': _iso(self.start_time), 'end_time': _iso(self.end_time),
            'status': self.status, 'result': self.result,
            'is_quick_result': self.is_quick_result,
        }
        if include_games:
            data['games'] = [g.to_dict() for g in self.games]
        return data


class Game(db.Model):
    """One game of a detailed match result, ordered by its 1-based position."""
    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey('match.id'), nullable=False)
    order = db.Column(db.Integer, nullable=False)
    game_type = db.Column(db.String(20), nullable=False)
    format = db.Column(db.String(60), default='')
    result_json = db.Column(db.Text, nullable=False)
    participants_json = db.Column(db.Text, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('match_id', 'order', name='uq_game_match_order'),
    )

    events = db.relationship('GameEvent', backref='game', cascade='all, delete-orphan')

    @property
    def result(self):
        return _safe_json(self.result_json)

    @property
    def participants(self):
        return _safe_json(self.participants_json, fallback={'home': [], 'away': []})

    def to_dict(self):
        return {
            'id': self.id, 'match_id': self.match_id, 'order': self.order,
            'type': self.game_type, 'format': self.format,
            'result': self.result, 'participants': self.participants,
            'events': [e.to_dict() for e in self.events],
        }


class GameEvent(db.Model):
    """A single counted occurrence credited to a player in a singles game."""
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    event_type = db.Column(db.String(20), nullable=False)
    value = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    player = db.relationship('Player')

    def to_dict(self):
        return {
            'id': self.id, 'game_id': self.game_id, 'player_id': self.player_id,
            'type': self.event_type, 'value': self.value,
        }


class Post(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    excerpt = db.Column(db.String(500), nullable=True)
    content = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.String(500), nullable=True)
    post_type = db.Column(db.String(20), default='news', nullable=False)  # news, announcement, tournament
    pinned = db.Column(db.Boolean, default=False, nullable=False)
    published = db.Column(db.Boolean, default=True, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    author = db.relationship('User', backref='posts')

    def to_dict(self):
        words = len((self.content or '').split())
        return {
            'id': self.id, 'title': self.title, 'excerpt': self.excerpt,
            'content': self.content, 'image_url': self.image_url,
            'type': self.post_type, 'pinned': self.pinned,
            'published': self.published,
            'author': {
                'id': self.author.id, 'name': self.author.name or self.author.username,
            } if self.author else None,
            'read_time_minutes': max(1, round(words / 200)),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
