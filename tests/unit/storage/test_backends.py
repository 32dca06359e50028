"""
Module: test_backends.py
Description: Unit tests for record backends.

Tests the file backend against a temporary directory and the DynamoDB
backend against a moto-mocked table.
"""

import json
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from courier_webhooks.models.webhook import ProcessingResult, WebhookProvider, WebhookStatus
from courier_webhooks.storage.backends import (
    DynamoDBRecordBackend,
    FileRecordBackend,
    build_backend,
)
from courier_webhooks.storage.webhook_store import WebhookStore

DOCUMENT = {"webhook_id": "whk_0123456789abcdef", "provider": "uber", "status": "pending"}


class TestFileRecordBackend:
    """Test cases for FileRecordBackend."""

    def test_initialization_creates_directory(self, tmp_path):
        backend = FileRecordBackend(str(tmp_path / "nested" / "records"))

        assert backend.storage_path.is_dir()

    def test_initialization_invalid_path(self):
        with pytest.raises(ValueError, match="storage_path must be a non-empty string"):
            FileRecordBackend("")

    def test_put_get_overwrite(self, file_backend):
        file_backend.put("whk_0123456789abcdef", DOCUMENT)
        assert file_backend.get("whk_0123456789abcdef") == DOCUMENT

        file_backend.put("whk_0123456789abcdef", {**DOCUMENT, "status": "processed"})
        assert file_backend.get("whk_0123456789abcdef")["status"] == "processed"

    def test_one_file_per_record_without_temp_leftovers(self, file_backend):
        file_backend.put("whk_0123456789abcdef", DOCUMENT)
        file_backend.put("whk_fedcba9876543210", DOCUMENT)

        names = sorted(p.name for p in file_backend.storage_path.iterdir())
        assert names == ["whk_0123456789abcdef.json", "whk_fedcba9876543210.json"]

    def test_failed_write_keeps_previous_document(self, file_backend):
        file_backend.put("whk_0123456789abcdef", DOCUMENT)

        with patch("courier_webhooks.storage.backends.json.dump", side_effect=TypeError("not serializable")):
            with pytest.raises(TypeError):
                file_backend.put("whk_0123456789abcdef", {"status": "processed"})

        assert file_backend.get("whk_0123456789abcdef") == DOCUMENT
        assert len(list(file_backend.storage_path.iterdir())) == 1

    def test_get_missing(self, file_backend):
        assert file_backend.get("whk_0000000000000000") is None

    def test_list_all_skips_corrupt_files(self, file_backend):
        file_backend.put("whk_0123456789abcdef", DOCUMENT)
        (file_backend.storage_path / "whk_corrupt.json").write_text("{", encoding="utf-8")

        assert file_backend.list_all() == [DOCUMENT]

    def test_delete(self, file_backend):
        file_backend.put("whk_0123456789abcdef", DOCUMENT)

        assert file_backend.delete("whk_0123456789abcdef") is True
        assert file_backend.delete("whk_0123456789abcdef") is False
        assert file_backend.list_all() == []


class TestDynamoDBRecordBackend:
    """Test cases for DynamoDBRecordBackend."""

    def test_initialization_invalid_table_name(self):
        with pytest.raises(ValueError, match="table_name must be a non-empty string"):
            DynamoDBRecordBackend(table_name="")

    def test_put_stores_document_and_filter_attributes(self, mock_webhooks_table):
        backend = DynamoDBRecordBackend(mock_webhooks_table.name, region_name="us-east-1")

        backend.put("whk_0123456789abcdef", DOCUMENT)

        item = mock_webhooks_table.get_item(Key={"webhook_id": "whk_0123456789abcdef"})["Item"]
        assert item["provider"] == "uber"
        assert item["status"] == "pending"
        assert json.loads(item["document"]) == DOCUMENT

    def test_get_list_delete(self, mock_webhooks_table):
        backend = DynamoDBRecordBackend(mock_webhooks_table.name, region_name="us-east-1")
        other = {**DOCUMENT, "webhook_id": "whk_fedcba9876543210"}
        backend.put(DOCUMENT["webhook_id"], DOCUMENT)
        backend.put(other["webhook_id"], other)

        assert backend.get(DOCUMENT["webhook_id"]) == DOCUMENT
        assert backend.get("whk_0000000000000000") is None
        assert sorted(d["webhook_id"] for d in backend.list_all()) == [
            DOCUMENT["webhook_id"], other["webhook_id"]
        ]

        assert backend.delete(DOCUMENT["webhook_id"]) is True
        assert backend.delete(DOCUMENT["webhook_id"]) is False
        assert backend.list_all() == [other]

    def test_put_client_error_propagates(self, mock_webhooks_table):
        backend = DynamoDBRecordBackend(mock_webhooks_table.name, region_name="us-east-1")
        error = ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
            "PutItem"
        )

        with patch.object(backend.table, "put_item", side_effect=error):
            with pytest.raises(ClientError):
                backend.put(DOCUMENT["webhook_id"], DOCUMENT)

    @pytest.mark.asyncio
    async def test_store_round_trip(self, mock_webhooks_table):
        backend = DynamoDBRecordBackend(mock_webhooks_table.name, region_name="us-east-1")
        store = WebhookStore(backend)
        record = await store.store_webhook(
            WebhookProvider.DOORDASH,
            {"event_type": "delivery_created", "data": {"delivery_id": "d1", "fee": 9.75}}
        )
        await store.update_webhook(record.webhook_id, ProcessingResult(success=True, message="ok"))

        restarted = WebhookStore(backend)
        assert restarted.load() == 1

        restored = restarted.get_webhook(record.webhook_id)
        assert restored.status == WebhookStatus.PROCESSED
        assert restored.raw_payload["data"]["fee"] == 9.75


def test_build_backend_selects_by_setting(test_settings, mock_webhooks_table):
    assert isinstance(build_backend(test_settings), FileRecordBackend)

    dynamo_settings = test_settings.model_copy(update={"webhook_storage_backend": "dynamodb"})
    backend = build_backend(dynamo_settings)

    assert isinstance(backend, DynamoDBRecordBackend)
    assert backend.table_name == mock_webhooks_table.name
