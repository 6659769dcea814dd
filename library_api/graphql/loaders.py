"""
GraphQL DataLoaders

Batch per-object lookups made while resolving a single response.

Resolving ``bookCount`` for every author in ``allAuthors`` would otherwise
issue one COUNT query per author. The loader below collects the author ids
requested in the same event-loop tick and answers them with a single
grouped query.
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from strawberry.dataloader import DataLoader

from library_api.models import Book


def create_book_count_loader(
    db: Session,
    release_connection: bool = False,
) -> DataLoader[int, int]:
    """
    Create a loader mapping author id -> number of books by that author.

    Caching is disabled: a subscription keeps its context for the whole
    connection, and counts must reflect the store at the time they are read.

    Args:
        db: Session the counts are read with
        release_connection: Close the session after each batch so a
            long-lived (WebSocket) context does not hold a pooled connection
    """

    async def load_book_counts(author_ids: list[int]) -> list[int]:
        stmt = (
            select(Book.author_id, func.count(Book.id))
            .where(Book.author_id.in_(author_ids))
            .group_by(Book.author_id)
        )
        counts = dict(db.execute(stmt).all())
        if release_connection:
            db.close()
        return [counts.get(author_id, 0) for author_id in author_ids]

    return DataLoader(load_fn=load_book_counts, cache=False)
