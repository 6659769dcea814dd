"""
GraphQL Book Type

Defines the Book type for GraphQL queries.
"""

import strawberry

from library_api.graphql.types.author import AuthorType


@strawberry.type(name="Book")
class BookType:
    """
    GraphQL type representing a book.

    The author is always populated (never just an id) so nested author
    fields resolve without another lookup.
    """

    id: strawberry.ID
    title: str
    published: int
    author: AuthorType
    genres: list[str] = strawberry.field(default_factory=list)
