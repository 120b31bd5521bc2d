"""
Core domain logic.

Nothing in here imports FastAPI or boto3. The object store is reached
through the protocols in core.storage.store.
"""
