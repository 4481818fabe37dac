"""Season context for requests and activation of a season."""
import logging

from darts_league.app import db
from darts_league.models import Season
from darts_league.services.errors import NotFoundError

logger = logging.getLogger(__name__)


def active_season():
    return Season.query.filter_by(is_active=True).first()


def resolve_season(season_id=None):
    """The season a request works on: an explicit id, else the active one."""
    if season_id is not None:
        season = db.session.get(Season, season_id)
        if season is None:
            raise NotFoundError('Season not found')
        return season
    season = active_season()
    if season is None:
        raise NotFoundError('No active season found')
    return season


def activate_season(season):
    """Make `season` the only active one. Does not commit."""
    Season.query.filter(
        Season.id != season.id,
        Season.is_active.is_(True),
    ).update({'is_active': False}, synchronize_session='fetch')
    db.session.flush()
    season.is_active = True
    logger.info('Season %s (%s) activated', season.id, season.name)
    return season
