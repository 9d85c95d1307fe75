"""
Routes package - landing pages and API endpoints.
"""
from flask import Blueprint

# JSON API, mounted under /api
api = Blueprint("api", __name__)

# HTML pages
frontend = Blueprint("frontend", __name__)

# Import route modules after creating the blueprints to avoid circular imports
from . import (
    frontend_routes,
    health,
    contact,
)

__all__ = ["api", "frontend"]
