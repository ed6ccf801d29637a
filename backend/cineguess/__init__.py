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


def get_room_service(app=None):
    from flask import current_app
    return (app or current_app).extensions['room_service']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('ALLOWED_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from cineguess.main import main
    flask_app.register_blueprint(main)

    from cineguess.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Room engine: one service per app, torn down through shutdown()
    from cineguess.socketio_events import ConnectionRegistry, SocketPublisher, register_socketio_handlers
    from cineguess.services.rooms import build_room_service
    flask_app.extensions['room_connections'] = ConnectionRegistry()
    flask_app.extensions['room_service'] = build_room_service(
        flask_app, socketio, publisher=SocketPublisher(socketio)
    )
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-seed')
    def db_seed_command():
        """Seeds the movie catalog if it is empty."""
        from cineguess.seed import seed_movies
        with flask_app.app_context():
            added = seed_movies()
            print(f'Seeded {added} movies.')

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from cineguess.seed import seed_movies
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            added = seed_movies()
            print(f'Database has been reset and seeded with {added} movies!')

    flask_app.cli.add_command(db_seed_command)
    flask_app.cli.add_command(db_reset_command)

    return flask_app
