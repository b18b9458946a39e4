import itertools
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from layout_studio.auth.dependencies import AuthContext, get_current_user
from layout_studio.db import models  # noqa: F401
from layout_studio.db.base import Base
from layout_studio.db.deps import get_session
from layout_studio.db.models import Page
from layout_studio.main import app


OWNER_ID = "user-owner"
OTHER_USER_ID = "user-other"
PAGE_ID = "page-1"


class FrozenClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def test_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(test_engine):
    TestingSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False, future=True)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def page(db_session) -> Page:
    record = Page(id=PAGE_ID, owner_id=OWNER_ID, name="Acme")
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record


@pytest.fixture()
def auth_context() -> AuthContext:
    return AuthContext(user_id=OWNER_ID)


@pytest.fixture()
def override_dependencies(db_session, auth_context):
    def get_session_override():
        try:
            yield db_session
        finally:
            pass

    def get_user_override():
        return auth_context

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_current_user] = get_user_override
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def api_client(override_dependencies):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def id_factory():
    counter = itertools.count(1)
    return lambda: f"gen-{next(counter)}"


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def theme_payload() -> dict:
    return {
        "palette": {
            "primary": "#111827",
            "secondary": "#374151",
            "accent": "#6366f1",
            "background": "#ffffff",
            "surface": "#f9fafb",
            "muted": "#9ca3af",
            "textPrimary": "#111827",
            "textSecondary": "#4b5563",
        },
        "typography": {"heading": "Inter", "body": "Inter", "scale": "md"},
        "spacing": {"base": 4, "radius": 12, "gap": 6},
    }


@pytest.fixture()
def hero_section() -> dict:
    return {
        "id": "hero-1",
        "type": "hero",
        "label": "Hero",
        "fields": [
            {"kind": "text", "key": "heading", "label": "Heading", "value": "Welcome to Acme"},
            {"kind": "richText", "key": "body", "label": "Body", "markdown": "We build things."},
        ],
    }


@pytest.fixture()
def make_layout(theme_payload, hero_section):
    def _make(
        *,
        layout_id: str = "layout-1",
        page_id: str = PAGE_ID,
        slug: str = "home",
        sections: list | None = None,
        **overrides,
    ) -> dict:
        payload = {
            "id": layout_id,
            "pageId": page_id,
            "slug": slug,
            "status": "draft",
            "locale": "en",
            "theme": theme_payload,
            "sections": sections if sections is not None else [hero_section],
            "metadata": {"title": "Acme Home", "templateName": "Starter"},
            "createdAt": "2024-05-01T12:00:00+00:00",
            "updatedAt": "2024-05-01T12:00:00+00:00",
        }
        payload.update(overrides)
        return payload

    return _make
