"""
Test Configuration and Utilities

Shared fixtures for the essay grading tests:
- Temporary SQLite database and gateways
- Fake analysis provider with a release gate and call log
- In-memory essay gateway for orchestrator tests
- Seeded users, classroom and enrollment
"""

import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-essay-grading-0123456789abcdef")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import asyncio
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from api.dependencies import ServiceContainer
from database.core import create_session_factory
from database.models import Base, UserRole
from database.operations import ClassroomGateway, EssayGateway, UserGateway
from grading import AnalysisProvider, AnalysisResult, CompetencyScore
from utils.auth import CurrentUser, Role, create_access_token
from utils.errors import PersistenceError
from utils.monitoring import reset_metrics


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: tests that use a real SQLite database")
    config.addinivalue_line("markers", "api: tests that go through the HTTP layer")


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    yield


# ============================================================================
# Analysis Fakes
# ============================================================================

def make_result(final_score: float = 720.0, scores=(160, 160, 120, 160, 120)) -> AnalysisResult:
    """Build an analysis result with one entry per competency."""
    return AnalysisResult(
        final_score=final_score,
        competencies=[
            CompetencyScore(competency=i + 1, score=score, feedback=f"Competency {i + 1}")
            for i, score in enumerate(scores)
        ],
        summary="Test analysis",
    )


class FakeProvider(AnalysisProvider):
    """
    Analysis provider for tests.

    Calls block on ``gate`` until ``release()`` when created gated. Results
    are looked up by text, falling back to ``default``.
    """

    name = "fake"

    def __init__(self, gated: bool = False, results: Optional[Dict[str, AnalysisResult]] = None):
        self.calls: List[str] = []
        self.results = results or {}
        self.default = make_result()
        self.fail_with: Optional[Exception] = None
        self.gate = asyncio.Event()
        self.started = asyncio.Event()
        if not gated:
            self.gate.set()

    def release(self):
        self.gate.set()

    async def analyze(self, text: str) -> AnalysisResult:
        self.calls.append(text)
        self.started.set()
        await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return self.results.get(text, self.default)


class InMemoryEssayGateway:
    """Dictionary-backed stand-in for ``EssayGateway``."""

    def __init__(self):
        self.essays: Dict[str, SimpleNamespace] = {}
        self.evaluations: Dict[str, List[SimpleNamespace]] = {}
        self.fail_writes = False
        self.auto_score_writes = 0

    def add_essay(self, essay_id: str, text: Optional[str], auto_score: Optional[float] = None):
        self.essays[essay_id] = SimpleNamespace(
            id=essay_id, text=text, auto_score=auto_score, final_score=None, analysis=None
        )
        self.evaluations[essay_id] = []
        return self.essays[essay_id]

    def remove_essay(self, essay_id: str):
        self.essays.pop(essay_id, None)
        self.evaluations.pop(essay_id, None)

    async def get_essay(self, essay_id: str):
        return self.essays.get(essay_id)

    async def get_evaluations(self, essay_id: str):
        return list(self.evaluations.get(essay_id, []))

    async def update_essay_auto_score(self, essay_id, score, analysis=None, expected_text=None):
        essay = self.essays.get(essay_id)
        if essay is None:
            raise PersistenceError("Essay no longer exists", essay_id=essay_id, essay_missing=True)
        if self.fail_writes:
            raise PersistenceError("Disk full", essay_id=essay_id)
        if expected_text is not None and essay.text != expected_text:
            return False
        essay.auto_score = score
        essay.analysis = analysis
        self.auto_score_writes += 1
        return True

    async def update_essay_final_score(self, essay_id, score):
        essay = self.essays.get(essay_id)
        if essay is None:
            raise PersistenceError("Essay no longer exists", essay_id=essay_id, essay_missing=True)
        essay.final_score = score


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def gated_provider():
    return FakeProvider(gated=True)


@pytest.fixture
def memory_gateway():
    return InMemoryEssayGateway()


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
async def db_engine(tmp_path):
    """SQLite database file, one per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'essays.db'}",
        poolclass=NullPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def essay_gateway(session_factory):
    return EssayGateway(session_factory)


@pytest.fixture
def classroom_gateway(session_factory):
    return ClassroomGateway(session_factory)


@pytest.fixture
def user_gateway(session_factory):
    return UserGateway(session_factory)


@pytest.fixture
async def services(session_factory, provider):
    """Service container wired to the test database and fake provider."""
    container = ServiceContainer(session_factory, provider=provider, cache_ttl=3600, timeout=5)
    yield container
    await container.shutdown()


# ============================================================================
# Seed Data
# ============================================================================

@dataclass
class Seed:
    """Users and classroom shared by integration tests."""
    teacher: CurrentUser
    other_teacher: CurrentUser
    student: CurrentUser
    other_student: CurrentUser
    admin: CurrentUser
    classroom_id: str
    tokens: Dict[str, str] = field(default_factory=dict)

    def headers(self, name: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.tokens[name]}"}


def as_current_user(user) -> CurrentUser:
    return CurrentUser(user_id=user.id, email=user.email, role=Role(user.role.value))


@pytest.fixture
async def seed(user_gateway, classroom_gateway) -> Seed:
    """Teacher with one classroom and one enrolled student, plus outsiders."""
    teacher = await user_gateway.create_user("teacher@school.test", UserRole.TEACHER, name="Teacher")
    other_teacher = await user_gateway.create_user("other.teacher@school.test", UserRole.TEACHER)
    student = await user_gateway.create_user("student@school.test", UserRole.STUDENT, name="Student")
    other_student = await user_gateway.create_user("other.student@school.test", UserRole.STUDENT)
    admin = await user_gateway.create_user("admin@school.test", UserRole.ADMIN)

    classroom = await classroom_gateway.create_classroom("3rd grade A", teacher.id)
    await classroom_gateway.enroll_student(classroom.id, student.id)

    seeded = Seed(
        teacher=as_current_user(teacher),
        other_teacher=as_current_user(other_teacher),
        student=as_current_user(student),
        other_student=as_current_user(other_student),
        admin=as_current_user(admin),
        classroom_id=classroom.id,
    )
    for name in ("teacher", "other_teacher", "student", "other_student", "admin"):
        user = getattr(seeded, name)
        seeded.tokens[name] = create_access_token(
            {"user_id": user.user_id, "email": user.email, "role": user.role.value}
        )
    return seeded
