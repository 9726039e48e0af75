"""
Shared fixtures: a fresh in-memory database per test, model factories,
a recording notification dispatcher and an API client bound to the test
database.
"""
import itertools
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sirb.orm import (
    Base, User, UserRole, Subject, Chapter, SubjectModerator,
    Canvas, Quiz, Question, Option, QuestionType, ContentStatus,
)
from sirb.services.notifications import Notice
from sirb.services.rate_limiter import InMemoryRateLimiter

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; keeps every notice it is handed."""

    def __init__(self):
        self.notices: List[Notice] = []

    def dispatch(self, notice: Notice):
        self.notices.append(notice)
        return None

    async def drain(self) -> None:
        return None

    def of_type(self, notice_type: str) -> List[Notice]:
        return [n for n in self.notices if n.type == notice_type]


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


# =============================================================================
# Factories
# =============================================================================

_ids = itertools.count(1)


@pytest_asyncio.fixture
async def make_user(db):
    async def _make(role: UserRole = UserRole.USER, banned: bool = False, name: str = None) -> User:
        n = next(_ids)
        user = User(
            name=name or f"user{n}",
            email=f"user{n}@example.com",
            role=role,
            banned=banned,
        )
        db.add(user)
        await db.commit()
        return user
    return _make


@pytest_asyncio.fixture
async def subject(db):
    n = next(_ids)
    subject = Subject(name=f"Subject {n}", code=f"SUB{n}")
    db.add(subject)
    await db.commit()
    return subject


@pytest_asyncio.fixture
async def chapter(db, subject):
    chapter = Chapter(subject_id=subject.id, title="Chapter 1", sequence=1)
    db.add(chapter)
    await db.commit()
    return chapter


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(role=UserRole.ADMIN, name="admin")


@pytest_asyncio.fixture
async def contributor(make_user):
    return await make_user(name="contributor")


@pytest_asyncio.fixture
async def learner(make_user):
    return await make_user(name="learner")


@pytest_asyncio.fixture
async def moderator(db, make_user, subject):
    user = await make_user(name="moderator")
    db.add(SubjectModerator(subject_id=subject.id, user_id=user.id))
    await db.commit()
    return user


@pytest_asyncio.fixture
async def make_canvas(db, chapter, contributor):
    async def _make(status: ContentStatus = ContentStatus.DRAFT, owner: User = None, sequence: int = None,
                    chapter_id: int = None) -> Canvas:
        canvas = Canvas(
            title="Canvas",
            chapter_id=chapter_id or chapter.id,
            contributor_id=(owner or contributor).id,
            sequence=sequence if sequence is not None else next(_ids),
            status=status,
        )
        db.add(canvas)
        await db.commit()
        return canvas
    return _make


@pytest_asyncio.fixture
async def make_quiz(db, chapter, contributor):
    async def _make(status: ContentStatus = ContentStatus.DRAFT, owner: User = None, questions: int = 0,
                    sequence: int = None) -> Quiz:
        quiz = Quiz(
            title="Quiz",
            chapter_id=chapter.id,
            contributor_id=(owner or contributor).id,
            sequence=sequence if sequence is not None else next(_ids),
            status=status,
        )
        db.add(quiz)
        await db.flush()
        for i in range(questions):
            question = Question(
                quiz_id=quiz.id,
                question_text=f"Question number {i + 1}?",
                question_type=QuestionType.MCQ_SINGLE,
                sequence=i + 1,
            )
            db.add(question)
            await db.flush()
            db.add_all([
                Option(question_id=question.id, option_text="right", is_correct=True, sequence=1),
                Option(question_id=question.id, option_text="wrong", is_correct=False, sequence=2),
            ])
        await db.commit()
        return quiz
    return _make


# =============================================================================
# API client
# =============================================================================

@pytest_asyncio.fixture
async def client(session_factory, dispatcher) -> AsyncGenerator[AsyncClient, None]:
    from sirb.main import app
    from sirb.database import get_db
    from sirb.services.notifications import get_notification_dispatcher
    from sirb.services.rate_limiter import get_upload_rate_limiter

    async def override_get_db():
        async with session_factory() as session:
            yield session

    upload_limiter = InMemoryRateLimiter()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_upload_rate_limiter] = lambda: upload_limiter

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    from sirb.rbac import create_access_token

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers
