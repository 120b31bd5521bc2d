"""
Infrastructure layer - external service integrations.

- storage: Object store adapters (GCS via the S3 API, in-memory mock)

These wrappers translate between external formats and our domain models.
"""
