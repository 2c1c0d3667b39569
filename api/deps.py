"""
API Dependencies
Common dependencies for FastAPI endpoints
"""


class ServiceDependency:
    """
    Dependency injection for services

    Routers declare these through Depends() so tests can swap the
    service with app.dependency_overrides.
    """

    @staticmethod
    def get_medication_service():
        from services.medication_service import get_medication_service
        return get_medication_service()


# Service dependency instances
services = ServiceDependency()
