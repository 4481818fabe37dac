"""WSGI entrypoint used by Gunicorn."""
import os

from darts_league.app import create_app
from darts_league.services.demo_seeder import seed_demo_season


config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)

if app.config.get('AUTO_SEED_DEMO'):
    with app.app_context():
        seeded = seed_demo_season()
        if seeded:
            app.logger.info('Seeded demo season with %s fixtures', seeded)
