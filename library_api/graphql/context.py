"""
GraphQL Context

Provides request context to all GraphQL resolvers including:
- Database session for queries
- Current authenticated user (if any)
- The pub/sub hub used by mutations and subscriptions
- Per-request DataLoaders

The context is created fresh for each GraphQL request (or WebSocket
connection) and passed to all resolvers via the `info` parameter.
"""

import logging
from typing import TYPE_CHECKING

from fastapi import Depends, HTTPException, WebSocketException, status
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection
from starlette.websockets import WebSocket
from strawberry.dataloader import DataLoader
from strawberry.fastapi import BaseContext

from library_api.database import get_db
from library_api.graphql.loaders import create_book_count_loader
from library_api.services.pubsub import PubSub
from library_api.services.security import decode_token

if TYPE_CHECKING:
    from library_api.models.user import User

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


class GraphQLContext(BaseContext):
    """
    Context object available to all GraphQL resolvers.

    Attributes:
        db: SQLAlchemy database session
        pubsub: Application-wide publish/subscribe hub
        user: Currently authenticated user (None if not authenticated)
        book_count_loader: Batches Author.bookCount lookups
        connection_scoped: True for WebSocket contexts, which live as long
            as the socket; the session then gives its pooled connection
            back after every use
    """

    def __init__(
        self,
        db: Session,
        pubsub: PubSub,
        user: "User | None" = None,
        connection_scoped: bool = False,
    ):
        super().__init__()
        self.db = db
        self.pubsub = pubsub
        self.user = user
        self.connection_scoped = connection_scoped
        self.book_count_loader: DataLoader[int, int] = create_book_count_loader(
            db, release_connection=connection_scoped
        )


class InvalidTokenError(Exception):
    """Raised when a bearer token cannot be turned into a user."""

    pass


def extract_bearer_token(authorization: str | None) -> str | None:
    """
    Return the token part of an Authorization header.

    The scheme is matched case-insensitively; any other scheme (or no
    header) yields None.
    """
    if authorization and authorization.lower().startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):]
    return None


def get_user_from_token(db: Session, token: str) -> "User":
    """
    Verify a login token and load the user it names.

    Args:
        db: Database session
        token: JWT access token (without 'Bearer ' prefix)

    Returns:
        The User whose id is carried by the token

    Raises:
        InvalidTokenError: If the token is invalid, expired, carries no id
            or names a user that does not exist
    """
    from library_api.models.user import User

    payload = decode_token(token)
    if payload is None:
        raise InvalidTokenError("invalid token")

    user_id = payload.get("id")
    if user_id is None:
        raise InvalidTokenError("token carries no user id")

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise InvalidTokenError(f"token carries a malformed user id {user_id!r}")

    stmt = select(User).where(User.id == user_id)
    user = db.execute(stmt).scalar_one_or_none()
    if user is None:
        raise InvalidTokenError(f"user {user_id} from token does not exist")

    return user


def get_pubsub(connection: HTTPConnection) -> PubSub:
    """Return the hub created by the application factory."""
    return connection.app.state.pubsub


async def get_context(
    connection: HTTPConnection,
    db: Session = Depends(get_db),
    pubsub: PubSub = Depends(get_pubsub),
) -> GraphQLContext:
    """
    Create GraphQL context for each request.

    This function is called by Strawberry for every GraphQL request and for
    every subscription WebSocket. It reads the Authorization header and, if
    it carries a bearer token, resolves the current user.

    A bearer token that does not verify fails the request instead of
    silently continuing as anonymous.

    Raises:
        HTTPException: 401 for HTTP requests with an invalid token
        WebSocketException: policy violation for WebSockets with an
            invalid token
    """
    connection_scoped = isinstance(connection, WebSocket)
    token = extract_bearer_token(connection.headers.get("Authorization"))
    if token is None:
        return GraphQLContext(db=db, pubsub=pubsub, connection_scoped=connection_scoped)

    try:
        user = get_user_from_token(db, token)
    except InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {e}")
        if connection_scoped:
            raise WebSocketException(
                code=status.WS_1008_POLICY_VIOLATION,
                reason="Could not validate credentials",
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if connection_scoped:
        # The socket may stay open for hours; do not pin a pooled connection
        db.close()

    return GraphQLContext(
        db=db,
        pubsub=pubsub,
        user=user,
        connection_scoped=connection_scoped,
    )
