try:
    from backend.guesswho.server import create_app
except ImportError:  # pragma: no cover
    from guesswho.server import create_app

app, socketio = create_app()
