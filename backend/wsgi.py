try:
    from backend.partyquip.server import create_app
except ImportError:  # pragma: no cover
    from partyquip.server import create_app

app, socketio = create_app()
