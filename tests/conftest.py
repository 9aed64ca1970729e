import os
import random
import pytest

from kotoba_race import create_app, db, socketio
from kotoba_race.seed import SEED_VOCABULARY
from kotoba_race.services.race import Identity, ManualScheduler, RaceEngine


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    RACE_COUNTDOWN_SEC = 3
    QUESTION_INTRO_SEC = 2
    AUTO_REVEAL_ON_TIMEOUT = False


HOST = Identity(id='host', display_name='Host', avatar='🐸', role='teacher')


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        from kotoba_race.models import Vocabulary
        db.create_all()
        for word, reading, meaning, level in SEED_VOCABULARY:
            db.session.add(Vocabulary(word=word, reading=reading, meaning=meaning, jlpt_level=level))
        db.session.commit()
    # yielded outside the context: every request gets its own `g`
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
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
def register(flask_app):
    """Return a logged-in test client for a fresh account."""
    def _register(username, role='student'):
        user_client = flask_app.test_client()
        res = user_client.post('/register', json={'username': username, 'password': 'password', 'role': role})
        assert res.status_code == 201
        return user_client, res.get_json()['user']
    return _register


@pytest.fixture()
def host():
    return HOST


@pytest.fixture()
def engine():
    return RaceEngine(scheduler=ManualScheduler(), rng=random.Random(2024))


@pytest.fixture()
def vocab_items():
    return [{'prompt': word, 'meaning': meaning} for word, _, meaning, level in SEED_VOCABULARY if level == 'N5']


@pytest.fixture()
def new_race(engine, vocab_items):
    """Create a race hosted by HOST. Mystery boxes are off unless asked for."""
    def _new_race(**settings):
        merged = {'question_count': 5, 'mystery_box_frequency': 0}
        merged.update(settings)
        return engine.create_game(merged, HOST, vocab_items)
    return _new_race


@pytest.fixture()
def to_answering(engine):
    """Start a waiting race and run its timers until answers are open."""
    def _to_answering(game):
        engine.start_game(game.id, HOST.id)
        engine.scheduler.advance(engine.countdown_sec + engine.question_intro_sec)
        return engine.get_game(game.id)
    return _to_answering
