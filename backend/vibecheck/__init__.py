from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config
from vibecheck.services.sessions.registry import SessionRegistry
from vibecheck.services.sessions.scheduler import PhaseScheduler

socketio = SocketIO(async_mode=None)
registry = SessionRegistry()
scheduler = PhaseScheduler()

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Session state lives in memory; the registry owns it and the scheduler
    # cancels timers when the registry tears a session down
    registry.init_app(flask_app)
    scheduler.init_app(flask_app, socketio, registry)

    from vibecheck.main import main
    flask_app.register_blueprint(main)

    from vibecheck.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api')

    from vibecheck.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    return flask_app
