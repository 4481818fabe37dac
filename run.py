#!/usr/bin/env python3
"""Entry point for the darts league application."""
import os
from darts_league.app import create_app, socketio

config_name = os.environ.get('FLASK_ENV', 'development')
app = create_app(config_name)

if app.config.get('AUTO_SEED_DEMO'):
    with app.app_context():
        from darts_league.services.demo_seeder import seed_demo_season
        count = seed_demo_season()
        if count:
            print(f"Seeded demo season with {count} fixtures")

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5001))
    print(f"Darts league starting on http://localhost:{port}")
    socketio.run(
        app, host='0.0.0.0', port=port,
        debug=(config_name == 'development'),
        allow_unsafe_werkzeug=True,
    )
