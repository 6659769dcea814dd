"""
GraphQL Mutation Resolvers

Defines all write operations (mutations) for the GraphQL API.
Catalog mutations require authentication; user creation and login do not.
"""

import logging
from typing import Any

import strawberry
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from strawberry.types import Info

from library_api.config import get_settings
from library_api.database import Base
from library_api.graphql.context import GraphQLContext
from library_api.graphql.queries import (
    author_to_graphql,
    book_to_graphql,
    find_author_by_name,
    user_to_graphql,
)
from library_api.graphql.types.author import AuthorType
from library_api.graphql.types.book import BookType
from library_api.graphql.types.user import TokenType, UserType
from library_api.models import Author, Book
from library_api.models.user import User
from library_api.services.pubsub import BOOK_ADDED
from library_api.services.security import (
    create_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)
settings = get_settings()

MIN_TITLE_LENGTH = 2
MIN_AUTHOR_NAME_LENGTH = 4


# =============================================================================
# Error classes for GraphQL
# =============================================================================
# graphql-core copies an exception's `extensions` mapping onto the error
# returned to the client, so clients can branch on extensions.code.


class LibraryError(Exception):
    """Base class for errors reported to GraphQL clients."""

    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, extensions: dict[str, Any] | None = None):
        super().__init__(message)
        self.extensions = {"code": self.code, **(extensions or {})}


class AuthenticationError(LibraryError):
    """Raised when authentication is required but not provided."""

    code = "UNAUTHENTICATED"


class ValidationError(LibraryError):
    """
    Raised when input is invalid, a lookup finds nothing or the store
    rejects a write. The offending argument value(s) are echoed back.
    """

    code = "BAD_USER_INPUT"

    def __init__(self, message: str, invalid_args: Any = None):
        extensions = {}
        if invalid_args is not None:
            extensions["invalidArgs"] = invalid_args
        super().__init__(message, extensions)
        self.invalid_args = invalid_args


def require_auth(info: Info[GraphQLContext, None]) -> User:
    """Helper to require authentication and return the user."""
    user = info.context.user
    if user is None:
        raise AuthenticationError("not logged in")
    return user


def save(db: Session, instance: Base, args: dict[str, Any]) -> None:
    """
    Persist one object, turning store failures into ValidationError.

    The session is rolled back on failure so it stays usable.
    """
    db.add(instance)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        message = str(getattr(e, "orig", None) or e)
        logger.warning(f"Store rejected {type(instance).__name__}: {message}")
        raise ValidationError(message, invalid_args=args) from e
    db.refresh(instance)


# =============================================================================
# Mutation Type
# =============================================================================


@strawberry.type
class Mutation:
    """
    GraphQL Mutation type containing all write operations.

    Catalog mutations require a login token.
    """

    # =========================================================================
    # Catalog Mutations
    # =========================================================================

    @strawberry.mutation(description="Add a book, creating its author if needed")
    def add_book(
        self,
        info: Info[GraphQLContext, None],
        title: str,
        author: str,
        published: int,
        genres: list[str] | None = None,
    ) -> BookType | None:
        """
        Create a book by author name.

        Requires authentication. An author that does not exist yet is
        created first. Subscribers to bookAdded are notified once the book
        is stored.
        """
        require_auth(info)
        db = info.context.db
        args = {
            "title": title,
            "author": author,
            "published": published,
            "genres": genres,
        }

        if len(title) < MIN_TITLE_LENGTH:
            raise ValidationError("title too short", invalid_args=title)

        author_row = find_author_by_name(db, author)
        if author_row is None:
            if len(author) < MIN_AUTHOR_NAME_LENGTH:
                raise ValidationError("author name too short", invalid_args=author)
            author_row = Author(name=author)
            save(db, author_row, args)
            logger.info(f"Created author '{author_row.name}' (id={author_row.id})")

        book = Book(
            title=title,
            published=published,
            author=author_row,
            genres=genres or [],
        )
        save(db, book, args)
        logger.info(f"Created book '{book.title}' (id={book.id})")

        result = book_to_graphql(book)
        info.context.pubsub.publish(BOOK_ADDED, result)
        return result

    @strawberry.mutation(description="Set an author's year of birth")
    def edit_author(
        self,
        info: Info[GraphQLContext, None],
        name: str,
        set_born_to: int,
    ) -> AuthorType | None:
        """
        Update the birth year of the author with the given name.

        Requires authentication.
        """
        require_auth(info)
        db = info.context.db

        author_row = find_author_by_name(db, name)
        if author_row is None:
            raise ValidationError("Author not found", invalid_args=name)

        author_row.born = set_born_to
        save(db, author_row, {"name": name, "setBornTo": set_born_to})

        return author_to_graphql(author_row)

    # =========================================================================
    # User Mutations
    # =========================================================================

    @strawberry.mutation(description="Register a new user")
    def create_user(
        self,
        info: Info[GraphQLContext, None],
        username: str,
        favorite_genre: str,
        password: str | None = None,
    ) -> UserType:
        """
        Create a user account.

        Users created without a password get the configured default one.
        The password is hashed and never echoed back in errors.
        """
        db = info.context.db

        user = User(
            username=username,
            favorite_genre=favorite_genre,
            hashed_password=hash_password(password or settings.default_user_password),
        )
        save(db, user, {"username": username, "favoriteGenre": favorite_genre})
        logger.info(f"Created user '{user.username}' (id={user.id})")

        return user_to_graphql(user)

    @strawberry.mutation(description="Login with username and password")
    def login(
        self,
        info: Info[GraphQLContext, None],
        username: str,
        password: str,
    ) -> TokenType:
        """
        Authenticate with username and password.

        An unknown username and a wrong password produce the same error.
        """
        db = info.context.db

        stmt = select(User).where(User.username == username)
        user = db.execute(stmt).scalar_one_or_none()

        if user is None or not verify_password(password, user.hashed_password):
            raise ValidationError("wrong credentials")

        token = create_access_token({"username": user.username, "id": user.id})
        return TokenType(value=token)
