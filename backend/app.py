import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


logger = logging.getLogger("partyquip")


def _wants_eventlet() -> bool:
    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    return (
        not sys.platform.startswith("win")
        and sys.version_info < (3, 13)
        and env_async_mode in ("", "eventlet")
    )


def main() -> None:
    # Config reads the environment at import time, so .env goes first.
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")

    if _wants_eventlet():
        import eventlet

        eventlet.monkey_patch()

    try:
        from backend.partyquip.server import create_app
    except ImportError:  # pragma: no cover
        from partyquip.server import create_app

    app, socketio = create_app()

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "10000"))
    debug = os.environ.get("FLASK_DEBUG", "0") == "1"
    allow_unsafe_werkzeug = os.environ.get("ALLOW_UNSAFE_WERKZEUG", "1") == "1"

    logger.info("partyquip listening on %s:%d", host, port)
    socketio.run(
        app,
        host=host,
        port=port,
        debug=debug,
        allow_unsafe_werkzeug=allow_unsafe_werkzeug,
        use_reloader=False,
    )


if __name__ == "__main__":
    main()
