"""API Routers."""

from .essays import router as essays_router
from .evaluations import router as evaluations_router
from .classrooms import router as classrooms_router
from .health import router as health_router

__all__ = [
    "essays_router",
    "evaluations_router",
    "classrooms_router",
    "health_router",
]
