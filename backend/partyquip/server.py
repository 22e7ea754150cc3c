from __future__ import annotations

import logging
import sys

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.questions import load_questions
from .game.registry import RoomRegistry, idle_timeout_policy
from .game.service import GameService
from .realtime.handlers import register_socketio_handlers
from .realtime.transport import SocketIOTransport
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp


def create_app(config_class: type = Config) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    async_mode = app.config.get("SOCKETIO_ASYNC_MODE", "")
    if not async_mode:
        # Default choice:
        # - Windows: threading (eventlet has known compatibility issues on newer Python)
        # - Python >= 3.13: threading (safer default)
        # - Otherwise: eventlet
        if sys.platform.startswith("win") or sys.version_info >= (3, 13):
            async_mode = "threading"
        else:
            async_mode = "eventlet"

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    registry = RoomRegistry(
        eviction_policy=idle_timeout_policy(app.config.get("ROOM_IDLE_TTL_SEC", 300)),
        total_rounds=app.config.get("TOTAL_ROUNDS", 3),
    )
    service = GameService(
        registry,
        SocketIOTransport(socketio),
        load_questions(app.config.get("QUESTIONS_PATH")),
        round_duration_sec=app.config.get("ROUND_DURATION_SEC", 60),
        vote_step_timeout_sec=app.config.get("VOTE_STEP_TIMEOUT_SEC", 30),
        next_round_delay_sec=app.config.get("NEXT_ROUND_DELAY_SEC", 5),
    )
    app.extensions["partyquip"] = service

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")

    register_socketio_handlers(
        socketio,
        service,
        run_room_tasks=app.config.get("RUN_ROOM_TASKS", True),
        tick_sec=app.config.get("ROOM_TICK_SEC", 0.25),
    )

    return app, socketio
