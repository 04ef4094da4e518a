"""API routes package."""

from claimsync.routes.sync_routes import router as sync_router
from claimsync.routes.storage_routes import router as storage_router

__all__ = ["sync_router", "storage_router"]
