"""
API Routes
==========

Route modules for the feed hub API.
"""

from feedhub.api.routes.categories import router as categories_router
from feedhub.api.routes.exports import router as exports_router
from feedhub.api.routes.feed import router as feed_router
from feedhub.api.routes.fields import router as fields_router
from feedhub.api.routes.session import router as session_router
from feedhub.api.routes.suppliers import router as suppliers_router

__all__ = [
    "categories_router",
    "exports_router",
    "feed_router",
    "fields_router",
    "session_router",
    "suppliers_router",
]
