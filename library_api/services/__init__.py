"""
Services Package

This package contains logic that is:
- Separate from GraphQL resolvers
- Reusable across different parts of the application
- Easier to test in isolation

Current services:
- pubsub.py: In-process publish/subscribe hub for subscriptions
- security.py: Password hashing and JWT utilities
"""
