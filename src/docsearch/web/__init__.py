"""HTTP front end."""

from .server import make_server, render_error, serve

__all__ = ["make_server", "render_error", "serve"]
