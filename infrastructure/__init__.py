"""
Infrastructure Package
======================

Provides abstraction layers for external dependencies following the Dependency Inversion Principle.

Modules:
    - notifications: Notification sink abstraction (database, mock)
    - events: Domain event bus (Redis pub/sub, in-memory)
    - container: Service locator wiring infrastructure into domain services

This package enables:
    - Easy testing with mock implementations
    - Switching between providers without code changes
    - Loose coupling between business logic and infrastructure
"""
