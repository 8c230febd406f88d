"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- mongo: Household persistence (MongoDB)
- storage: Focal point photo storage (S3)

These wrappers translate between external formats and our domain models.
"""
