from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Importing the guard registers the write-boundary flush listener
    from scoreboard.services.scores import guard  # noqa: F401

    from scoreboard.api.scores import scores
    flask_app.register_blueprint(scores, url_prefix='/api/scores')

    from scoreboard.socketio_events import register_socketio_handlers, register_change_feed
    register_socketio_handlers()
    register_change_feed()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the scores tables."""
        from scoreboard.services.scores import seed_teams
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_teams(flask_app.config['TEAMS'])
            print('Database has been reset and seeded!')

    @click.command('seed-teams')
    def seed_teams_command():
        """Inserts any configured team that has no row yet."""
        from scoreboard.services.scores import seed_teams
        with flask_app.app_context():
            inserted = seed_teams(flask_app.config['TEAMS'])
            print(f'Seeded {inserted} team(s).')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(seed_teams_command)

    return flask_app
