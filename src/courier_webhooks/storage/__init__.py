"""
Package: storage
Description: Persistence layer for webhook records.

- backends: File and DynamoDB record backends
- webhook_store: WebhookStore, the in-memory index and sole writer
"""

from .backends import DynamoDBRecordBackend, FileRecordBackend, RecordBackend, build_backend
from .webhook_store import WebhookStore, generate_webhook_id

__all__ = [
    "DynamoDBRecordBackend",
    "FileRecordBackend",
    "RecordBackend",
    "WebhookStore",
    "build_backend",
    "generate_webhook_id",
]
