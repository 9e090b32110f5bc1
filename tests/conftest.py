import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from db.database import get_session, init_db
from main import app


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    def _signup(email="nurse@example.com", password="correct-horse", fullname="Ada Nurse"):
        return client.post("/api/auth/signup", json={"fullname": fullname, "email": email, "password": password})
    return _signup


@pytest.fixture
def auth_headers(client, signup):
    signup()
    response = client.post("/api/auth/login", data={"username": "nurse@example.com", "password": "correct-horse"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
