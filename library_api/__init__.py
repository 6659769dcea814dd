"""
Library API Application Package

GraphQL API for a library catalog: authors, books and users with
token-based login, plus a "book added" subscription.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy engine, session factory and declarative base
- main.py: FastAPI application factory and configuration
- models/: SQLAlchemy ORM models (Author, Book, User)
- graphql/: Strawberry schema, context, queries, mutations, subscriptions
- services/: Password/token security and the in-process pub/sub hub
"""

__version__ = "0.1.0"
