"""Browser client: Flask routes over a single ViewController."""

from vidroi.web.app import create_app

__all__ = ["create_app"]
