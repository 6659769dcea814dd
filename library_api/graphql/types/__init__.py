"""
GraphQL Types Package

This package contains all GraphQL type definitions that map to our
SQLAlchemy models. Types are defined using Strawberry's decorator syntax
and exposed under the catalog's wire names (Author, Book, User, Token).

Types defined here:
- AuthorType: Author with a computed book count
- BookType: Book with its author populated
- UserType: A registered user
- TokenType: Login token payload
"""

from library_api.graphql.types.author import AuthorType
from library_api.graphql.types.book import BookType
from library_api.graphql.types.user import TokenType, UserType

__all__ = [
    "AuthorType",
    "BookType",
    "UserType",
    "TokenType",
]
