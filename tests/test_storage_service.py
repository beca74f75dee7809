"""Tests for the MinIO-backed study history store."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from minio.error import S3Error

from pagewise.services.study_history import (
    MinioStudyHistoryStore,
    RecordNotFoundError,
    StoreUnavailableError,
)


def _s3_error(code: str) -> S3Error:
    return S3Error(code, "message", "resource", "request_id", "host_id", MagicMock(), "study-history")


def _object_response(document: dict) -> MagicMock:
    response = MagicMock()
    response.read.return_value = json.dumps(document).encode("utf-8")
    return response


def _put_json(minio_client: MagicMock, index: int) -> tuple[str, dict]:
    args = minio_client.put_object.call_args_list[index].args
    return args[1], json.loads(args[2].getvalue().decode("utf-8"))


@pytest.fixture
def minio_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def history_store(settings, minio_client) -> MinioStudyHistoryStore:
    return MinioStudyHistoryStore(settings=settings, minio_client=minio_client)


@pytest.mark.asyncio
async def test_create_writes_record_and_owner_index(history_store, minio_client):
    payload = {"keyPoints": ["a"], "pageNumbers": [1]}
    metadata = {"fileName": "history.pdf", "fileSize": 10}

    record_id = await history_store.create_record("student-1", "analysis", payload, metadata)

    assert len(record_id) == 32
    assert minio_client.put_object.call_count == 2
    record_path, record = _put_json(minio_client, 0)
    index_path, index = _put_json(minio_client, 1)
    assert record_path == f"records/{record_id}.json"
    assert record["owner"] == "student-1"
    assert record["kind"] == "analysis"
    assert record["analysis_results"] == [payload]
    assert record["metadata"] == metadata
    assert index_path == f"owners/student-1/{record_id}.json"
    assert index["fileName"] == "history.pdf"
    assert minio_client.put_object.call_args_list[0].args[0] == "study-history"


@pytest.mark.asyncio
async def test_update_replaces_results(history_store, minio_client):
    minio_client.get_object.return_value = _object_response(
        {"id": "abc", "analysis_results": [{"pageNumbers": [1]}], "metadata": {}, "created_at": "t0"}
    )

    await history_store.update_record("abc", {"pageNumbers": [1, 2]}, {"totalPages": 2})

    path, document = _put_json(minio_client, 0)
    assert path == "records/abc.json"
    assert document["analysis_results"] == [{"pageNumbers": [1, 2]}]
    assert document["metadata"] == {"totalPages": 2}
    assert document["created_at"] == "t0"
    assert document["updated_at"] != "t0"


@pytest.mark.asyncio
async def test_update_unknown_record(history_store, minio_client):
    minio_client.get_object.side_effect = _s3_error("NoSuchKey")

    with pytest.raises(RecordNotFoundError):
        await history_store.update_record("missing", {}, {})
    minio_client.put_object.assert_not_called()


@pytest.mark.asyncio
async def test_create_failure_maps_to_store_unavailable(history_store, minio_client):
    minio_client.put_object.side_effect = _s3_error("AccessDenied")

    with pytest.raises(StoreUnavailableError) as exc_info:
        await history_store.create_record("student-1", "analysis", {}, {})
    assert exc_info.value.operation == "create"


@pytest.mark.asyncio
async def test_connection_failure_maps_to_store_unavailable(history_store, minio_client):
    minio_client.get_object.side_effect = OSError("connection refused")

    with pytest.raises(StoreUnavailableError):
        await history_store.update_record("abc", {}, {})


@pytest.mark.asyncio
async def test_get_record(history_store, minio_client):
    minio_client.get_object.return_value = _object_response({"id": "abc"})

    assert await history_store.get_record("abc") == {"id": "abc"}

    minio_client.get_object.side_effect = _s3_error("NoSuchKey")
    assert await history_store.get_record("abc") is None
