"""
API Module
FastAPI routers for the MedMinder application
"""

from api.medications import router as medications_router
from api.doses import router as doses_router
from api.prn import router as prn_router
from api.reminders import router as reminders_router
from api.adherence import router as adherence_router

from api.deps import services


__all__ = [
    # Routers
    "medications_router",
    "doses_router",
    "prn_router",
    "reminders_router",
    "adherence_router",
    # Dependencies
    "services",
]


def include_routers(app, prefix: str = "/api/v1"):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(medications_router, prefix=prefix)
    app.include_router(doses_router, prefix=prefix)
    app.include_router(prn_router, prefix=prefix)
    app.include_router(reminders_router, prefix=prefix)
    app.include_router(adherence_router, prefix=prefix)
