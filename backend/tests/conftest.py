import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from main import app
from database import Base, get_db
from models import User, Group, GroupMember
from auth import get_password_hash, create_access_token

# Setup in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def client(db_session):
    """Create a FastAPI TestClient with overridden database dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_db, None)

def make_user(db_session, email: str, username: str) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash("password123"),
        username=username,
        is_active=True
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user

def headers_for(user: User) -> dict:
    access_token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {access_token}"}

@pytest.fixture
def test_user(db_session):
    """Create a test user and return the user object."""
    return make_user(db_session, "test@example.com", "Test User")

@pytest.fixture
def auth_headers(test_user):
    """Return authorization headers for the test user."""
    return headers_for(test_user)

@pytest.fixture
def other_user(db_session):
    return make_user(db_session, "other@example.com", "Other User")

@pytest.fixture
def third_user(db_session):
    return make_user(db_session, "third@example.com", "Third User")

@pytest.fixture
def shared_group(db_session, test_user, other_user, third_user):
    """A group created by test_user with other_user and third_user as members."""
    group = Group(name="Trip", created_by_id=test_user.id)
    db_session.add(group)
    db_session.commit()
    db_session.refresh(group)
    for user in (test_user, other_user, third_user):
        db_session.add(GroupMember(group_id=group.id, user_id=user.id))
    db_session.commit()
    return group

@pytest.fixture
def create_user(db_session):
    """Factory fixture: create_user(email, username) -> User."""
    def _create(email: str, username: str) -> User:
        return make_user(db_session, email, username)
    return _create

@pytest.fixture
def auth_for():
    """Factory fixture: auth_for(user) -> authorization headers."""
    return headers_for
