"""
Shared pytest fixtures.

Every test that touches the store gets a fresh in-memory SQLite database,
so resolver commits and rollbacks behave as in production and nothing
leaks between tests. The HTTP and WebSocket client reuses the same session
through a get_db override.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
import os

os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["DATABASE_URL"] = "sqlite://"

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from library_api.database import Base, get_db
from library_api.main import app
from library_api.models import Author, Book
from library_api.models.user import User
from library_api.services.security import create_access_token, hash_password

# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def engine():
    """
    Create a SQLite in-memory database engine.

    StaticPool keeps the single connection alive for the whole test.
    Without it, the in-memory database would disappear between connections.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    """Create a database session bound to the test engine."""
    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )
    session = TestSessionLocal()

    yield session

    session.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client with the test database.

    We override the get_db dependency to use our test session. The GraphQL
    context receives its session through the same dependency.
    """

    def override_get_db():
        """Provide test database session instead of real one."""
        try:
            yield db_session
        finally:
            pass  # Session cleanup handled by db_session fixture

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


@pytest.fixture
def sample_author(db_session: Session) -> Author:
    """Create a sample author for testing."""
    author = Author(name="Robert Martin", born=1952)
    db_session.add(author)
    db_session.commit()
    db_session.refresh(author)
    return author


@pytest.fixture
def second_author(db_session: Session) -> Author:
    """Create an author without a birth year."""
    author = Author(name="Sandi Metz")
    db_session.add(author)
    db_session.commit()
    db_session.refresh(author)
    return author


@pytest.fixture
def sample_books(
    db_session: Session,
    sample_author: Author,
    second_author: Author,
) -> list[Book]:
    """
    Create a small catalog:

    - Clean Code (Robert Martin): refactoring
    - Agile software development (Robert Martin): agile, patterns, design
    - Practical Object-Oriented Design (Sandi Metz): refactoring, design
    """
    books = [
        Book(
            title="Clean Code",
            published=2008,
            author=sample_author,
            genres=["refactoring"],
        ),
        Book(
            title="Agile software development",
            published=2002,
            author=sample_author,
            genres=["agile", "patterns", "design"],
        ),
        Book(
            title="Practical Object-Oriented Design",
            published=2012,
            author=second_author,
            genres=["refactoring", "design"],
        ),
    ]
    db_session.add_all(books)
    db_session.commit()
    for book in books:
        db_session.refresh(book)
    return books


@pytest.fixture
def sample_user(db_session: Session) -> User:
    """Create a user whose password is "secret"."""
    user = User(
        username="alice",
        favorite_genre="fantasy",
        hashed_password=hash_password("secret"),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def auth_token(sample_user: User) -> str:
    """A valid login token for sample_user."""
    return create_access_token({"username": sample_user.username, "id": sample_user.id})
