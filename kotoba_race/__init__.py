from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def _build_race_engine(flask_app):
    from kotoba_race.services.race import BackgroundScheduler, ManualScheduler, RaceEngine
    from kotoba_race.socketio_events import broadcast_race_event

    # Tests drive time by hand unless they opt into real timers
    if flask_app.config.get('TESTING') and not flask_app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        scheduler = ManualScheduler()
    else:
        scheduler = BackgroundScheduler(socketio)
    engine = RaceEngine.from_config(flask_app.config, scheduler)
    engine.add_listener(broadcast_race_event)
    flask_app.extensions['race_engine'] = engine
    flask_app.logger.info(f"[engine] scheduler={type(scheduler).__name__} auto_reveal={engine.auto_reveal}")
    return engine


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    _build_race_engine(flask_app)

    # Import and register blueprints here
    from kotoba_race.main import main
    flask_app.register_blueprint(main)

    from kotoba_race.api.races import races
    flask_app.register_blueprint(races, url_prefix='/api/races')

    from kotoba_race.api.vocabulary import vocabulary
    flask_app.register_blueprint(vocabulary, url_prefix='/api/vocabulary')

    # Register Socket.IO event handlers
    from kotoba_race.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from kotoba_race.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from kotoba_race.models import User, Vocabulary
        from kotoba_race.seed import SEED_USERS, SEED_VOCABULARY
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            for username, role in SEED_USERS:
                user = User(username=username, role=role)
                user.set_password('password')
                db.session.add(user)

            for word, reading, meaning, level in SEED_VOCABULARY:
                db.session.add(Vocabulary(word=word, reading=reading, meaning=meaning, jlpt_level=level))

            db.session.commit()
            click.echo('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
