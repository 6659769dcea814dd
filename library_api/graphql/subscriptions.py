"""
GraphQL Subscription Resolvers

Defines the real-time operations of the GraphQL API, served over
WebSocket on the same /graphql endpoint.
"""

from collections.abc import AsyncGenerator

import strawberry
from strawberry.types import Info

from library_api.graphql.context import GraphQLContext
from library_api.graphql.types.book import BookType
from library_api.services.pubsub import BOOK_ADDED


@strawberry.type
class Subscription:
    """
    GraphQL Subscription type.

    Events are fanned out by the in-process hub on the context; a client
    only sees books added while it is subscribed.
    """

    @strawberry.subscription(description="Books added after subscribing")
    async def book_added(
        self,
        info: Info[GraphQLContext, None],
    ) -> AsyncGenerator[BookType, None]:
        async for book in info.context.pubsub.subscribe(BOOK_ADDED):
            yield book
