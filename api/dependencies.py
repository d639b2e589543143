"""
API Dependencies.

FastAPI dependencies for authentication, service access, and common utilities.
"""

from typing import Optional

from fastapi import Depends

from database.operations import ClassroomGateway, EssayGateway, UserGateway
from grading import (
    AnalysisProvider,
    EssayLifecycle,
    GeminiAnalysisProvider,
    GradeAggregator,
    AnalysisOrchestrator,
)
from utils.auth import AccessPolicy
from utils.errors import ValidationError

MAX_PAGE_SIZE = 100


# ============================================================================
# Service Dependencies
# ============================================================================

class ServiceContainer:
    """
    Wires gateways, policy, aggregator, orchestrator and lifecycle together.

    Args:
        session_factory: Session factory for every gateway (defaults to the
            global engine's)
        provider: Analysis provider (defaults to Gemini)
        **orchestrator_options: Extra ``AnalysisOrchestrator`` arguments
    """

    def __init__(
        self,
        session_factory=None,
        provider: Optional[AnalysisProvider] = None,
        **orchestrator_options
    ):
        self.essays = EssayGateway(session_factory)
        self.classrooms = ClassroomGateway(session_factory)
        self.users = UserGateway(session_factory)

        self.policy = AccessPolicy(self.classrooms)
        self.aggregator = GradeAggregator(self.essays, self.policy)
        self.orchestrator = AnalysisOrchestrator(
            provider=provider or GeminiAnalysisProvider(),
            gateway=self.essays,
            on_scored=self.aggregator.recalculate_final_score,
            **orchestrator_options
        )
        self.lifecycle = EssayLifecycle(
            essays=self.essays,
            classrooms=self.classrooms,
            users=self.users,
            orchestrator=self.orchestrator,
            aggregator=self.aggregator,
            policy=self.policy,
        )

    async def shutdown(self):
        await self.orchestrator.shutdown()


_services: Optional[ServiceContainer] = None


def get_services() -> ServiceContainer:
    """Get or create the process-wide service container."""
    global _services
    if _services is None:
        _services = ServiceContainer()
    return _services


def reset_services():
    """Reset the global service container (for testing)."""
    global _services
    _services = None


def get_lifecycle(services: ServiceContainer = Depends(get_services)) -> EssayLifecycle:
    return services.lifecycle


# ============================================================================
# Pagination Dependencies
# ============================================================================

async def pagination_params(
    page: int = 1,
    page_size: int = 50,
) -> dict:
    """
    Get pagination parameters.

    Args:
        page: Page number (1-indexed)
        page_size: Items per page

    Returns:
        Pagination parameters dict

    Raises:
        ValidationError: If parameters are invalid
    """
    if page < 1:
        raise ValidationError("Page must be >= 1", field="page")

    if page_size < 1:
        raise ValidationError("Page size must be >= 1", field="page_size")

    if page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"Page size must be <= {MAX_PAGE_SIZE}", field="page_size")

    return {
        "page": page,
        "page_size": page_size,
        "offset": (page - 1) * page_size
    }
