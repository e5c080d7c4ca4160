import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from fastapi_datatables.columns import _warn_deprecated
from tests.main import app, get_session


@pytest.fixture(name="session")
def session_fixture():
    """Create a fresh in-memory database session."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_deprecation_warnings():
    """Deprecation notices are deduplicated per process; start each test clean."""
    _warn_deprecated.cache_clear()
    yield
