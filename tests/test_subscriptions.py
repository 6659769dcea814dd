"""
Subscription Tests

Tests for the bookAdded subscription:
- Events published by addBook (and only by successful ones)
- End-to-end delivery over the graphql-transport-ws protocol
- Subscriber cleanup when the client completes
- Open subscriptions leaving store connections free
"""

import time
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from library_api.database import Base, get_db
from library_api.main import app
from library_api.models import Author
from library_api.models.user import User
from library_api.services.pubsub import BOOK_ADDED
from library_api.services.security import create_access_token, hash_password

WS_PROTOCOLS = ["graphql-transport-ws"]

ADD_BOOK = """
mutation($title: String!, $author: String!, $published: Int!, $genres: [String!]) {
    addBook(title: $title, author: $author, published: $published, genres: $genres) {
        title
    }
}
"""

BOOK_ADDED_SUBSCRIPTION = """
subscription {
    bookAdded {
        title
        published
        genres
        author {
            name
            bookCount
        }
    }
}
"""


def add_book(client: TestClient, token: str | None, **variables):
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    response = client.post(
        "/graphql",
        json={"query": ADD_BOOK, "variables": variables},
        headers=headers,
    )
    return response.json()


def wait_for_subscribers(expected: int, timeout: float = 5.0) -> None:
    """Block until the hub reports the expected number of subscribers."""
    deadline = time.monotonic() + timeout
    while app.state.pubsub.subscriber_count(BOOK_ADDED) != expected:
        if time.monotonic() > deadline:
            raise AssertionError(
                f"Expected {expected} subscribers, "
                f"got {app.state.pubsub.subscriber_count(BOOK_ADDED)}"
            )
        time.sleep(0.01)


@pytest.fixture
def published(monkeypatch) -> list:
    """Record every event handed to the hub."""
    events = []

    def record(topic, payload):
        events.append((topic, payload))
        return 0

    monkeypatch.setattr(app.state.pubsub, "publish", record)
    return events


class TestBookAddedPublishing:
    """Tests for which mutations publish bookAdded events."""

    def test_successful_add_publishes_once(
        self, client: TestClient, auth_token: str, published: list
    ):
        data = add_book(
            client,
            auth_token,
            title="Refactoring to patterns",
            author="Joshua Kerievsky",
            published=2008,
            genres=["refactoring", "patterns"],
        )

        assert "errors" not in data
        assert len(published) == 1
        topic, book = published[0]
        assert topic == BOOK_ADDED
        assert book.title == "Refactoring to patterns"
        assert book.author.name == "Joshua Kerievsky"
        assert book.genres == ["refactoring", "patterns"]

    def test_unauthenticated_add_publishes_nothing(
        self, client: TestClient, published: list
    ):
        data = add_book(
            client,
            None,
            title="Refactoring to patterns",
            author="Joshua Kerievsky",
            published=2008,
        )

        assert data["errors"][0]["message"] == "not logged in"
        assert published == []

    def test_invalid_add_publishes_nothing(
        self, client: TestClient, auth_token: str, published: list
    ):
        data = add_book(
            client,
            auth_token,
            title="X",
            author="Joshua Kerievsky",
            published=2008,
        )

        assert data["errors"][0]["message"] == "title too short"
        assert published == []


class TestBookAddedOverWebSocket:
    """End-to-end tests using the graphql-transport-ws protocol."""

    def test_subscriber_receives_added_book(
        self,
        client: TestClient,
        sample_author: Author,
        sample_user: User,
        auth_token: str,
    ):
        with client.websocket_connect(
            "/graphql", subprotocols=WS_PROTOCOLS
        ) as ws:
            ws.send_json({"type": "connection_init"})
            assert ws.receive_json()["type"] == "connection_ack"

            ws.send_json(
                {
                    "id": "sub1",
                    "type": "subscribe",
                    "payload": {"query": BOOK_ADDED_SUBSCRIPTION},
                }
            )
            wait_for_subscribers(1)

            data = add_book(
                client,
                auth_token,
                title="The Clean Coder",
                author="Robert Martin",
                published=2011,
                genres=["career"],
            )
            assert "errors" not in data

            message = ws.receive_json()
            assert message["type"] == "next"
            assert message["id"] == "sub1"
            assert message["payload"]["data"]["bookAdded"] == {
                "title": "The Clean Coder",
                "published": 2011,
                "genres": ["career"],
                "author": {"name": "Robert Martin", "bookCount": 1},
            }

            ws.send_json({"id": "sub1", "type": "complete"})
            wait_for_subscribers(0)

    def test_subscription_sees_new_author(
        self, client: TestClient, sample_user: User, auth_token: str
    ):
        """Test an author created by addBook is populated in the event."""
        with client.websocket_connect(
            "/graphql", subprotocols=WS_PROTOCOLS
        ) as ws:
            ws.send_json({"type": "connection_init"})
            assert ws.receive_json()["type"] == "connection_ack"

            ws.send_json(
                {
                    "id": "sub1",
                    "type": "subscribe",
                    "payload": {"query": BOOK_ADDED_SUBSCRIPTION},
                }
            )
            wait_for_subscribers(1)

            add_book(
                client,
                auth_token,
                title="99 Bottles of OOP",
                author="Sandi Metz",
                published=2016,
            )

            payload = ws.receive_json()["payload"]["data"]["bookAdded"]
            assert payload["author"] == {"name": "Sandi Metz", "bookCount": 1}
            assert payload["genres"] == []

            ws.send_json({"id": "sub1", "type": "complete"})
            wait_for_subscribers(0)

    def test_authenticated_subscriber_receives_added_book(
        self, client: TestClient, sample_user: User, auth_token: str
    ):
        """Test a socket opened with a login token still gets events."""
        with client.websocket_connect(
            "/graphql",
            subprotocols=WS_PROTOCOLS,
            headers={"Authorization": f"Bearer {auth_token}"},
        ) as ws:
            ws.send_json({"type": "connection_init"})
            assert ws.receive_json()["type"] == "connection_ack"

            ws.send_json(
                {
                    "id": "sub1",
                    "type": "subscribe",
                    "payload": {"query": BOOK_ADDED_SUBSCRIPTION},
                }
            )
            wait_for_subscribers(1)

            health = client.get("/health").json()
            assert health["subscriptions"]["topics"] == {BOOK_ADDED: 1}

            add_book(
                client,
                auth_token,
                title="Working Effectively with Legacy Code",
                author="Michael Feathers",
                published=2004,
                genres=["refactoring"],
            )

            payload = ws.receive_json()["payload"]["data"]["bookAdded"]
            assert payload["title"] == "Working Effectively with Legacy Code"
            assert payload["author"] == {"name": "Michael Feathers", "bookCount": 1}

            ws.send_json({"id": "sub1", "type": "complete"})
            wait_for_subscribers(0)


@pytest.fixture
def single_connection_client(tmp_path) -> Generator[tuple[TestClient, str], None, None]:
    """
    Client whose store allows exactly one pooled connection.

    Each request gets its own session, closed when the request ends, as
    with the real get_db. Yields the client and a login token.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'library.db'}",
        connect_args={"check_same_thread": False},
        pool_size=1,
        max_overflow=0,
        pool_timeout=2,
    )
    Base.metadata.create_all(bind=engine)
    SmallPoolSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with SmallPoolSession() as db:
        user = User(
            username="alice",
            favorite_genre="fantasy",
            hashed_password=hash_password("secret"),
        )
        db.add(user)
        db.commit()
        token = create_access_token({"username": user.username, "id": user.id})

    def override_get_db():
        db = SmallPoolSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client, token

    app.dependency_overrides.clear()
    engine.dispose()


class TestSubscriptionConnectionUsage:
    """Tests that open subscriptions do not hold store connections."""

    def test_http_queries_work_while_subscribed(self, single_connection_client):
        client, token = single_connection_client

        with client.websocket_connect(
            "/graphql",
            subprotocols=WS_PROTOCOLS,
            headers={"Authorization": f"Bearer {token}"},
        ) as ws:
            ws.send_json({"type": "connection_init"})
            assert ws.receive_json()["type"] == "connection_ack"

            ws.send_json(
                {
                    "id": "sub1",
                    "type": "subscribe",
                    "payload": {"query": BOOK_ADDED_SUBSCRIPTION},
                }
            )
            wait_for_subscribers(1)

            response = client.post("/graphql", json={"query": "{ bookCount authorCount }"})
            assert response.json() == {"data": {"bookCount": 0, "authorCount": 0}}

            ws.send_json({"id": "sub1", "type": "complete"})
            wait_for_subscribers(0)
