"""
Editor blueprint and route registration.
"""

from flask import Blueprint

bp = Blueprint("editor", __name__, url_prefix="/gaexp")

# Key in the Flask session holding the token of the caller's editor session
SESSION_KEY = "gaexp_editor_session"

# Import route modules for side-effects (decorators attach to bp).
from .routes import (  # noqa: E402,F401
    experiments_api,
    indicator_api,
    pages,
)
