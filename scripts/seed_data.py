"""
Load a demo catalog into the configured store.

Wipes users, books and authors, then inserts five authors, seven books
and a "librarian" account that logs in with DEFAULT_USER_PASSWORD.

    python scripts/seed_data.py
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from library_api.config import get_settings
from library_api.database import SessionLocal, create_tables
from library_api.models import Author, Book, BookGenre, User
from library_api.services.security import hash_password

logger = logging.getLogger("seed_data")

# name -> year of birth (None when unknown)
AUTHORS = {
    "Robert Martin": 1952,
    "Martin Fowler": 1963,
    "Fyodor Dostoevsky": 1821,
    "Joshua Kerievsky": None,
    "Sandi Metz": None,
}

# (title, published, author, genres)
BOOKS = [
    ("Clean Code", 2008, "Robert Martin", ["refactoring"]),
    ("Agile software development", 2002, "Robert Martin", ["agile", "patterns", "design"]),
    ("Refactoring, edition 2", 2018, "Martin Fowler", ["refactoring"]),
    ("Refactoring to patterns", 2008, "Joshua Kerievsky", ["refactoring", "patterns"]),
    (
        "Practical Object-Oriented Design, An Agile Primer Using Ruby",
        2012,
        "Sandi Metz",
        ["refactoring", "design"],
    ),
    ("Crime and punishment", 1866, "Fyodor Dostoevsky", ["classic", "crime"]),
    ("The Demon", 1872, "Fyodor Dostoevsky", ["classic", "revolution"]),
]

DEMO_USER = {"username": "librarian", "favorite_genre": "refactoring"}


def clear_data(db: Session) -> None:
    # Children first so foreign keys hold on stores without ON DELETE CASCADE
    for model in (BookGenre, Book, Author, User):
        db.execute(delete(model))
    db.commit()
    logger.info("Existing catalog removed")


def seed_catalog(db: Session) -> tuple[int, int]:
    """Insert AUTHORS and BOOKS; returns (authors, books) inserted."""
    authors = {name: Author(name=name, born=born) for name, born in AUTHORS.items()}
    db.add_all(authors.values())

    db.add_all(
        Book(title=title, published=published, author=authors[author], genres=genres)
        for title, published, author, genres in BOOKS
    )

    db.add(
        User(
            **DEMO_USER,
            hashed_password=hash_password(get_settings().default_user_password),
        )
    )
    db.commit()
    return len(authors), len(BOOKS)


def seed_database(clear_existing: bool = True) -> None:
    create_tables()

    with SessionLocal() as db:
        try:
            if clear_existing:
                clear_data(db)
            author_count, book_count = seed_catalog(db)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Seeding failed")
            raise

    logger.info(f"Seeded {author_count} authors, {book_count} books")
    logger.info(
        f"Login as '{DEMO_USER['username']}' with the default password "
        f"at http://localhost:{get_settings().port}/graphql"
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    seed_database()
