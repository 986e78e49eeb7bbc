import unittest
import uuid
from datetime import datetime, timedelta
from typing import Optional

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from animal_sos.core.security import create_access_token, get_password_hash
from animal_sos.core.time_utils import UTC
from animal_sos.db.base import Base
from animal_sos.db.session import install_sqlite_functions
from animal_sos.models import Comment, Like, Report, ReportStatus, User, UserRole
from animal_sos.schemas.identity import Identity

T0 = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)


def at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """
    Fresh in-memory SQLite database per test.
    """

    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        install_sqlite_functions(self.engine)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.session_factory = async_sessionmaker(
            bind=self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self.session = self.session_factory()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def make_user(
        self, name: str = "Ana", role: UserRole = UserRole.CITIZEN, email: Optional[str] = None
    ) -> User:
        user = User(
            name=name,
            nickname=f"{name.lower()}_{uuid.uuid4().hex[:6]}",
            email=email or f"{name.lower()}_{uuid.uuid4().hex[:6]}@example.com",
            avatar_url=f"https://cdn.example.com/{name.lower()}.png",
            role=role,
            password_hash=get_password_hash("secret123"),
        )
        self.session.add(user)
        await self.session.commit()
        return user

    async def make_report(
        self,
        author: Optional[User] = None,
        title: str = "Injured dog",
        description: str = "Dog limping near the market",
        created_at: datetime = T0,
        status: ReportStatus = ReportStatus.PENDING,
        is_anonymous: bool = False,
    ) -> Report:
        report = Report(
            author_id=author.id if author and not is_anonymous else None,
            title=title,
            description=description,
            is_anonymous=is_anonymous,
            status=status,
            created_at=created_at,
            updated_at=created_at,
        )
        self.session.add(report)
        await self.session.commit()
        return report

    async def make_comment(
        self,
        report: Report,
        author: User,
        created_at: datetime = T0,
        parent: Optional[Comment] = None,
        content: str = "Poor thing",
    ) -> Comment:
        comment = Comment(
            report_id=report.id,
            author_id=author.id,
            content=content,
            parent_id=parent.id if parent else None,
            created_at=created_at,
            updated_at=created_at,
        )
        self.session.add(comment)
        await self.session.commit()
        return comment

    async def make_like(self, report: Report, user: User) -> Like:
        like = Like(report_id=report.id, user_id=user.id)
        self.session.add(like)
        await self.session.commit()
        return like


def identity_for(user: User) -> Identity:
    return Identity(user_id=user.id, role=user.role)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


class ApiTestCase(DatabaseTestCase):
    """
    Drives the ASGI app against the per-test database.
    """

    async def asyncSetUp(self):
        await super().asyncSetUp()
        from animal_sos.db.session import get_db
        from animal_sos.main import app

        async def override_get_db():
            async with self.session_factory() as session:
                yield session

        self.app = app
        app.dependency_overrides[get_db] = override_get_db
        self.client = AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")

    async def asyncTearDown(self):
        await self.client.aclose()
        self.app.dependency_overrides.clear()
        await super().asyncTearDown()
