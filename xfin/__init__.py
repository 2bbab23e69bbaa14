"""XFin personal-finance backend."""

__version__ = "1.0.0"


def create_app(config=None):
    from .app import create_app as _create_app

    return _create_app(config)
