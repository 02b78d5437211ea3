"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from itemgen.api.health import router as health_router
from itemgen.api.items import router as items_router
from itemgen.api.options import router as options_router

__all__ = [
    "health_router",
    "items_router",
    "options_router",
]
