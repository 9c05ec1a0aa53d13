import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("FRONTEND_ORIGIN", "http://frontend.test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Iterator, Optional

import pytest
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from recipebox.app import app
from recipebox.core import get_session
from recipebox.models import Account
from recipebox.oauth_client import HandshakeError, get_identity_provider
from recipebox.services.identity import IdentityAssertion

GOOGLE_ASSERTION = IdentityAssertion(
    provider="google_oauth2",
    uid="123456",
    email="test@example.com",
    name="Test User",
    image="https://example.com/avatar.png",
    extra={"raw_info": {"locale": "en"}},
)


class FakeIdentityProvider:
    """Stands in for the authlib handshake."""

    def __init__(self) -> None:
        self.assertion: Optional[IdentityAssertion] = GOOGLE_ASSERTION
        self.error: Optional[str] = None
        self.fetches = 0

    def is_configured(self, provider) -> bool:
        return True

    async def authorize_redirect(self, request, provider):
        return RedirectResponse(
            f"https://accounts.example/authorize?provider={provider.key}", status_code=302
        )

    async def fetch_assertion(self, request, provider) -> IdentityAssertion:
        self.fetches += 1
        if self.error is not None:
            raise HandshakeError(self.error)
        return self.assertion


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def client(engine, identity) -> Iterator[TestClient]:
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_identity_provider] = lambda: identity
    yield TestClient(app)
    app.dependency_overrides.clear()


def count_accounts(session: Session) -> int:
    return len(session.exec(select(Account)).all())
