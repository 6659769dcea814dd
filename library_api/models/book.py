"""
Book Model

The central model of the Library API, representing books in the catalog.

This file also contains BookGenre, the rows holding a book's genre labels.

WHY a child table for genres?
=============================
Genres are free-form, ordered string labels owned by a single book, not
shared entities. Storing them as ordered child rows lets the store answer
"books tagged with X" with an indexed EXISTS query while the Python side
still sees a plain ``list[str]`` through ``Book.genres``.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.ext.associationproxy import AssociationProxy, association_proxy
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_api.database import Base

if TYPE_CHECKING:
    from library_api.models.author import Author


class BookGenre(Base):
    """
    A single genre label attached to a book.

    Table: book_genres

    (book_id, position) is the primary key; position keeps the labels in
    the order they were supplied.
    """

    __tablename__ = "book_genres"

    book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE"),
        primary_key=True,
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(
        String(100),
        index=True,
        nullable=False,
        comment="Genre label, matched case-sensitively"
    )

    def __init__(self, name: str, **kwargs):
        super().__init__(name=name, **kwargs)

    def __repr__(self) -> str:
        return f"BookGenre(book_id={self.book_id}, position={self.position}, name='{self.name}')"


class Book(Base):
    """
    Book model representing books in the catalog.

    Table: books

    Fields:
    - title: Book title (required)
    - published: Year of publication (required)
    - author_id: The single author of the book (required)

    Relationships:
    - author: Many-to-One
    - genre_entries: One-to-Many ordered BookGenre rows
    - genres: list[str] view over genre_entries

    Example:
        book = Book(
            title="Clean Code",
            published=2008,
            author=author,
            genres=["refactoring"],
        )
    """

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # Basic Fields
    # -------------------------------------------------------------------------
    title: Mapped[str] = mapped_column(
        String(500),
        index=True,
        nullable=False,
        comment="Book title"
    )

    published: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Year of publication"
    )

    author_id: Mapped[int] = mapped_column(
        ForeignKey("authors.id"),
        index=True,
        nullable=False,
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    author: Mapped["Author"] = relationship(
        "Author",
        back_populates="books",
    )

    # ordering_list renumbers position on every append/insert
    genre_entries: Mapped[list[BookGenre]] = relationship(
        BookGenre,
        order_by=BookGenre.position,
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )

    genres: AssociationProxy[list[str]] = association_proxy("genre_entries", "name")

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', published={self.published})"
