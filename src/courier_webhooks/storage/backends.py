"""
Module: backends.py
Description: Durable backends for webhook records.

A backend stores one JSON document per webhook record, keyed by record
id, and supports write, read-by-id, read-all, overwrite and delete.
WebhookStore keeps the in-memory index; backends only persist.

Key Components:
- RecordBackend: Abstract backend interface
- FileRecordBackend: One `<id>.json` file per record
- DynamoDBRecordBackend: One DynamoDB item per record
- build_backend(): Backend selection from settings

Dependencies: boto3, botocore, json, pathlib
Author: Courier Webhooks Team
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from courier_webhooks.utils.logger import get_logger

logger = get_logger(__name__)

Document = Dict[str, Any]


class RecordBackend(ABC):
    """Key/document store for webhook records."""

    @abstractmethod
    def put(self, record_id: str, document: Document) -> None:
        """Write or overwrite the document stored under record_id."""

    @abstractmethod
    def get(self, record_id: str) -> Optional[Document]:
        """Read one document, or None if absent."""

    @abstractmethod
    def list_all(self) -> List[Document]:
        """Read every stored document."""

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        """Delete a document; returns whether it existed."""


class FileRecordBackend(RecordBackend):
    """
    File-per-record backend.

    Each record lives in `<storage_path>/<id>.json`. Writes go to a
    temporary file in the same directory and are renamed into place, so a
    crash never leaves a half-written record behind.

    Example:
        >>> backend = FileRecordBackend("data/webhooks")
        >>> backend.put("whk_0123456789abcdef", record.model_dump(mode="json"))
    """

    def __init__(self, storage_path: str):
        if not storage_path or not isinstance(storage_path, str):
            raise ValueError("storage_path must be a non-empty string")

        self.storage_path = Path(storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)

        logger.info("File record backend initialized", storage_path=str(self.storage_path))

    def _path(self, record_id: str) -> Path:
        return self.storage_path / f"{record_id}.json"

    def put(self, record_id: str, document: Document) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self.storage_path, prefix=f".{record_id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2)
            os.replace(tmp_name, self._path(record_id))
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, record_id: str) -> Optional[Document]:
        path = self._path(record_id)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def list_all(self) -> List[Document]:
        documents = []
        for path in sorted(self.storage_path.glob("*.json")):
            try:
                with path.open("r", encoding="utf-8") as handle:
                    documents.append(json.load(handle))
            except (OSError, ValueError) as e:
                logger.error(
                    "Skipping unreadable webhook record file",
                    path=str(path),
                    error=str(e)
                )
        return documents

    def delete(self, record_id: str) -> bool:
        path = self._path(record_id)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False


class DynamoDBRecordBackend(RecordBackend):
    """
    DynamoDB backend.

    Items are keyed by `webhook_id`; the full record is kept as a JSON
    string in `document` so nested payloads keep their JSON types.
    `provider` and `status` are copied to top-level attributes for
    console filtering.

    Attributes:
        table_name: Name of the DynamoDB webhooks table
        dynamodb: boto3 DynamoDB resource
        table: boto3 DynamoDB table resource
    """

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        if not table_name or not isinstance(table_name, str):
            raise ValueError("table_name must be a non-empty string")

        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)

        logger.info(
            "DynamoDB record backend initialized",
            table_name=table_name
        )

    def put(self, record_id: str, document: Document) -> None:
        item = {
            'webhook_id': record_id,
            'provider': document.get('provider'),
            'status': document.get('status'),
            'document': json.dumps(document),
        }
        # DynamoDB doesn't allow None attribute values
        item = {k: v for k, v in item.items() if v is not None}

        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(
                "Failed to store webhook record in DynamoDB",
                webhook_id=record_id,
                table_name=self.table_name,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

    def get(self, record_id: str) -> Optional[Document]:
        try:
            response = self.table.get_item(Key={'webhook_id': record_id})
        except ClientError as e:
            logger.error(
                "Failed to retrieve webhook record from DynamoDB",
                webhook_id=record_id,
                table_name=self.table_name,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

        item = response.get('Item')
        if not item:
            return None
        return json.loads(item['document'])

    def list_all(self) -> List[Document]:
        documents = []
        kwargs: Dict[str, Any] = {}
        while True:
            try:
                response = self.table.scan(**kwargs)
            except ClientError as e:
                logger.error(
                    "Failed to scan webhook records in DynamoDB",
                    table_name=self.table_name,
                    error_code=e.response['Error']['Code'],
                    error_message=e.response['Error']['Message']
                )
                raise

            for item in response.get('Items', []):
                try:
                    documents.append(json.loads(item['document']))
                except (KeyError, ValueError) as e:
                    logger.error(
                        "Skipping unreadable webhook record item",
                        webhook_id=item.get('webhook_id'),
                        error=str(e)
                    )

            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return documents
            kwargs['ExclusiveStartKey'] = last_key

    def delete(self, record_id: str) -> bool:
        try:
            response = self.table.delete_item(
                Key={'webhook_id': record_id},
                ReturnValues='ALL_OLD'
            )
        except ClientError as e:
            logger.error(
                "Failed to delete webhook record from DynamoDB",
                webhook_id=record_id,
                table_name=self.table_name,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise
        return 'Attributes' in response


def build_backend(settings) -> RecordBackend:
    """Create the backend selected by `webhook_storage_backend`."""
    if settings.webhook_storage_backend == "dynamodb":
        return DynamoDBRecordBackend(
            table_name=settings.webhooks_table_name,
            region_name=settings.aws_region
        )
    return FileRecordBackend(settings.webhook_storage_path)
