import os
import sys
from datetime import timedelta

import pytest
import sqlalchemy as sa

# Ensure the backend root (containing the `scoreboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from scoreboard import create_app, db, socketio


SEED_TEAMS = ['blue', 'green', 'yellow', 'red']


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    TEAMS = SEED_TEAMS
    CORS_ORIGINS = ['http://localhost:3000']


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import scoreboard.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def seeded(flask_app):
    from scoreboard.services.scores import seed_teams
    seed_teams(SEED_TEAMS)
    return SEED_TEAMS


@pytest.fixture()
def client(flask_app, seeded):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app, seeded):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def age_actions():
    """Shift action timestamps into the past on a raw connection, outside the ORM session."""
    from scoreboard.models import ScoreAction

    actions = ScoreAction.__table__

    def _age(seconds, client_id=None):
        db.session.commit()
        query = sa.select(actions.c.id, actions.c.created_at)
        if client_id is not None:
            query = query.where(actions.c.client_id == client_id)
        with db.engine.begin() as conn:
            for action_id, created_at in conn.execute(query).all():
                conn.execute(
                    actions.update()
                    .where(actions.c.id == action_id)
                    .values(created_at=created_at - timedelta(seconds=seconds))
                )
        db.session.expire_all()

    return _age
