"""
GraphQL Package

This package provides the library catalog's GraphQL API using
Strawberry GraphQL.

Features:
- Author, Book, User and Token types
- Query resolvers with author/genre filtering
- Mutation resolvers for adding books, editing authors and logging in
- bookAdded subscription over WebSocket
- Authentication via JWT in context

Usage:
    The GraphQL endpoint is available at /graphql with an
    Apollo Sandbox IDE for development.

Example Query:
    query {
        allBooks(genre: "refactoring") {
            title
            published
            author { name bookCount }
        }
    }
"""

import strawberry
from strawberry.fastapi import GraphQLRouter

from library_api.graphql.context import get_context
from library_api.graphql.mutations import Mutation
from library_api.graphql.queries import Query
from library_api.graphql.subscriptions import Subscription

# Create the GraphQL schema
schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
    subscription=Subscription,
)


def create_graphql_router(graphql_ide_enabled: bool = True) -> GraphQLRouter:
    """
    Create the GraphQL router for FastAPI.

    The same route serves HTTP queries/mutations and WebSocket
    subscriptions (graphql-transport-ws and graphql-ws protocols).

    Returns:
        GraphQLRouter configured with schema and context
    """
    return GraphQLRouter(
        schema,
        context_getter=get_context,
        graphql_ide="apollo-sandbox" if graphql_ide_enabled else None,
    )


__all__ = ["schema", "create_graphql_router"]
