from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
development_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5500",
    "http://127.0.0.1:5500",
]
socketio = SocketIO(async_mode=None)


def allowed_origins(config):
    if config.get('ENVIRONMENT') == 'production':
        return [config.get('FRONTEND_ORIGIN')]
    return development_origins


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    origins = allowed_origins(flask_app.config)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from connect4.main import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers; each app gets a fresh match server
    from connect4.socketio_events import register_socketio_handlers
    register_socketio_handlers(flask_app)

    # Ensure models are imported so the tables are known to SQLAlchemy
    import connect4.models  # noqa: F401

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the players and games tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    flask_app.logger.info(
        f"[startup] environment={flask_app.config.get('ENVIRONMENT')} cors={', '.join(origins)}"
    )
    return flask_app
