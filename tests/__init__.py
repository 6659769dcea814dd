"""
Test Suite for Library API

Test Organization:
- conftest.py: Shared fixtures (test database, client, sample data)
- test_graphql.py: Queries and mutations over HTTP
- test_context.py: Bearer token handling in the GraphQL context
- test_security.py: Password hashing and login tokens
- test_pubsub.py: In-process publish/subscribe hub
- test_subscriptions.py: bookAdded events over WebSocket
- test_main.py: Health and root endpoints

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_graphql.py

    # Run with verbose output
    pytest -v
"""
