"""
GraphQL Author Type

Defines the Author type for GraphQL queries.
"""

import strawberry
from strawberry.types import Info

from library_api.graphql.context import GraphQLContext


@strawberry.type(name="Author")
class AuthorType:
    """
    GraphQL type representing a book author.

    Maps to the Author SQLAlchemy model. bookCount is not a stored column:
    it is counted from the books table on every read.
    """

    id: strawberry.ID
    name: str
    born: int | None = None

    @strawberry.field(description="Number of books referencing this author")
    async def book_count(self, info: Info[GraphQLContext, None]) -> int:
        return await info.context.book_count_loader.load(int(self.id))
