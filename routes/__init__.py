"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.price_update import router as price_update_router

__all__ = [
    "price_update_router",
]
