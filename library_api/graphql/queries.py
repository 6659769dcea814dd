"""
GraphQL Query Resolvers

Defines all read operations (queries) for the GraphQL API.
Each resolver fetches data from the database using the context.
"""

import strawberry
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, selectinload
from strawberry.types import Info

from library_api.graphql.context import GraphQLContext
from library_api.graphql.types.author import AuthorType
from library_api.graphql.types.book import BookType
from library_api.graphql.types.user import UserType
from library_api.models import Author, Book, BookGenre
from library_api.models.user import User


def author_to_graphql(author: Author) -> AuthorType:
    """Convert SQLAlchemy Author model to GraphQL AuthorType."""
    return AuthorType(
        id=strawberry.ID(str(author.id)),
        name=author.name,
        born=author.born,
    )


def book_to_graphql(book: Book) -> BookType:
    """Convert SQLAlchemy Book model to GraphQL BookType with its author."""
    return BookType(
        id=strawberry.ID(str(book.id)),
        title=book.title,
        published=book.published,
        author=author_to_graphql(book.author),
        genres=list(book.genres),
    )


def user_to_graphql(user: User) -> UserType:
    """Convert SQLAlchemy User model to GraphQL UserType."""
    return UserType(
        id=strawberry.ID(str(user.id)),
        username=user.username,
        favorite_genre=user.favorite_genre,
    )


def find_author_by_name(db: Session, name: str) -> Author | None:
    """Look up an author by exact name. Names are unique in the store."""
    stmt = select(Author).where(Author.name == name)
    return db.execute(stmt).scalar_one_or_none()


def books_query(author: Author | None = None, genre: str | None = None) -> Select:
    """
    Build the SELECT for books, optionally narrowed by author and genre.

    The author and genre rows are loaded eagerly so the converted
    BookType has everything it needs.
    """
    stmt = select(Book).options(
        selectinload(Book.author), selectinload(Book.genre_entries)
    )

    if author is not None:
        stmt = stmt.where(Book.author_id == author.id)

    if genre is not None:
        stmt = stmt.where(Book.genre_entries.any(BookGenre.name == genre))

    return stmt.order_by(Book.id)


@strawberry.type
class Query:
    """
    GraphQL Query type containing all read operations.

    All resolvers receive an `info` parameter that contains the
    GraphQL context with database session and current user.
    """

    @strawberry.field(description="Total number of books")
    def book_count(self, info: Info[GraphQLContext, None]) -> int:
        db = info.context.db
        return db.execute(select(func.count(Book.id))).scalar() or 0

    @strawberry.field(description="Total number of authors")
    def author_count(self, info: Info[GraphQLContext, None]) -> int:
        db = info.context.db
        return db.execute(select(func.count(Author.id))).scalar() or 0

    @strawberry.field(description="List books, optionally filtered by author name and genre")
    def all_books(
        self,
        info: Info[GraphQLContext, None],
        author: str | None = None,
        genre: str | None = None,
    ) -> list[BookType]:
        """
        Get books with optional filtering.

        Args:
            author: Exact author name. An unknown name yields no books.
            genre: Genre label the book must carry (case-sensitive)

        Empty strings count as "not supplied".

        Returns:
            Matching books, each with its author populated
        """
        db = info.context.db

        author_row = None
        if author:
            author_row = find_author_by_name(db, author)
            if author_row is None:
                return []

        books = db.execute(books_query(author_row, genre or None)).scalars().all()
        return [book_to_graphql(b) for b in books]

    @strawberry.field(description="List all authors")
    def all_authors(self, info: Info[GraphQLContext, None]) -> list[AuthorType]:
        db = info.context.db
        authors = db.execute(select(Author).order_by(Author.id)).scalars().all()
        return [author_to_graphql(a) for a in authors]

    @strawberry.field(description="Get the currently authenticated user")
    def me(self, info: Info[GraphQLContext, None]) -> UserType | None:
        """
        Get the current authenticated user.

        Returns None if not authenticated.
        """
        user = info.context.user

        if user is None:
            return None

        return user_to_graphql(user)
