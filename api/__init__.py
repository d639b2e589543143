"""
API package for the essay grading service.

FastAPI application with separate routers for essays, evaluations,
classrooms and health, wired through dependency injection.
"""

from .app import app

__all__ = ["app"]
