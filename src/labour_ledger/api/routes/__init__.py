"""API routes."""

from labour_ledger.api.routes.events import router as events_router
from labour_ledger.api.routes.health import router as health_router
from labour_ledger.api.routes.labours import router as labours_router
from labour_ledger.api.routes.maintenance import router as maintenance_router

__all__ = ["events_router", "health_router", "labours_router", "maintenance_router"]
