"""
API v1 package.

Contains versioned API routes for the vehicle pairing API.
"""

from src.api.v1.dev_routes import dev_router
from src.api.v1.routes import router

__all__ = ["dev_router", "router"]
