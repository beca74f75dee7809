"""Persistent record store for study history documents.

Storage layout (study-history bucket):
    records/
        {record_id}.json    <- record document (payload + metadata)
    owners/
        {owner}/
            {record_id}.json    <- small index entry per owned record
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from io import BytesIO
from typing import TYPE_CHECKING, Any

from minio.error import S3Error
from urllib3.exceptions import HTTPError

from pagewise.core.config import get_settings
from pagewise.services.minio import get_minio_client
from pagewise.services.study_history.models import RecordNotFoundError, StoreUnavailableError

if TYPE_CHECKING:
    from minio import Minio

    from pagewise.core.config import Settings

logger = logging.getLogger(__name__)


class StudyHistoryStore(ABC):
    """Abstract record store consumed by the history consolidator."""

    @abstractmethod
    async def create_record(
        self,
        owner: str,
        kind: str,
        payload: dict[str, Any],
        metadata: dict[str, Any],
    ) -> str:
        """
        Create a new record.

        Returns:
            The new record id.

        Raises:
            StoreUnavailableError: If the store cannot be written.
        """
        ...

    @abstractmethod
    async def update_record(
        self,
        record_id: str,
        payload: dict[str, Any],
        metadata: dict[str, Any],
    ) -> None:
        """
        Replace payload and metadata of an existing record.

        Raises:
            RecordNotFoundError: If the record does not exist.
            StoreUnavailableError: If the store cannot be written.
        """
        ...

    @abstractmethod
    async def get_record(self, record_id: str) -> dict[str, Any] | None:
        """Return the stored record document, or None if it does not exist."""
        ...


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MinioStudyHistoryStore(StudyHistoryStore):
    """Study history store backed by a MinIO bucket of JSON documents."""

    def __init__(
        self,
        settings: Settings | None = None,
        minio_client: Minio | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            settings: Application settings.
            minio_client: Optional MinIO client.
        """
        self.settings = settings or get_settings()
        self._client = minio_client

    @property
    def client(self) -> Minio:
        """Get MinIO client."""
        if self._client is None:
            self._client = get_minio_client(self.settings)
        return self._client

    @property
    def bucket(self) -> str:
        return self.settings.minio_study_history_bucket

    def _record_path(self, record_id: str) -> str:
        return f"records/{record_id}.json"

    def _owner_index_path(self, owner: str, record_id: str) -> str:
        return f"owners/{owner}/{record_id}.json"

    def _save_json(self, path: str, data: dict[str, Any]) -> None:
        content = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
        self.client.put_object(
            self.bucket,
            path,
            BytesIO(content),
            len(content),
            content_type="application/json; charset=utf-8",
        )

    def _load_json(self, path: str) -> dict[str, Any] | None:
        try:
            response = self.client.get_object(self.bucket, path)
        except S3Error as e:
            if e.code == "NoSuchKey":
                return None
            raise
        try:
            data = response.read()
        finally:
            response.close()
            response.release_conn()
        return json.loads(data.decode("utf-8"))

    def _create_sync(
        self,
        owner: str,
        kind: str,
        payload: dict[str, Any],
        metadata: dict[str, Any],
    ) -> str:
        record_id = uuid.uuid4().hex
        now = _utc_now_iso()
        document = {
            "id": record_id,
            "owner": owner,
            "kind": kind,
            "created_at": now,
            "updated_at": now,
            "analysis_results": [payload],
            "metadata": metadata,
        }
        self._save_json(self._record_path(record_id), document)
        self._save_json(
            self._owner_index_path(owner, record_id),
            {"id": record_id, "kind": kind, "created_at": now, "fileName": metadata.get("fileName")},
        )
        return record_id

    def _update_sync(
        self,
        record_id: str,
        payload: dict[str, Any],
        metadata: dict[str, Any],
    ) -> None:
        path = self._record_path(record_id)
        document = self._load_json(path)
        if document is None:
            raise RecordNotFoundError(record_id)

        document["analysis_results"] = [payload]
        document["metadata"] = metadata
        document["updated_at"] = _utc_now_iso()
        self._save_json(path, document)

    async def create_record(
        self,
        owner: str,
        kind: str,
        payload: dict[str, Any],
        metadata: dict[str, Any],
    ) -> str:
        try:
            record_id = await asyncio.to_thread(self._create_sync, owner, kind, payload, metadata)
        except (S3Error, HTTPError, OSError) as e:
            logger.error("Failed to create study history for %s: %s", owner, e)
            raise StoreUnavailableError("create", str(e), {"owner": owner}) from e

        logger.info("Created study history %s for owner %s", record_id, owner)
        return record_id

    async def update_record(
        self,
        record_id: str,
        payload: dict[str, Any],
        metadata: dict[str, Any],
    ) -> None:
        try:
            await asyncio.to_thread(self._update_sync, record_id, payload, metadata)
        except (S3Error, HTTPError, OSError) as e:
            logger.error("Failed to update study history %s: %s", record_id, e)
            raise StoreUnavailableError("update", str(e), {"record_id": record_id}) from e

        logger.info("Updated study history %s", record_id)

    async def get_record(self, record_id: str) -> dict[str, Any] | None:
        try:
            return await asyncio.to_thread(self._load_json, self._record_path(record_id))
        except (S3Error, HTTPError, OSError) as e:
            raise StoreUnavailableError("read", str(e), {"record_id": record_id}) from e


# Module-level singleton
_store: MinioStudyHistoryStore | None = None


def get_study_history_store() -> MinioStudyHistoryStore:
    """Get or create the study history store singleton."""
    global _store
    if _store is None:
        _store = MinioStudyHistoryStore()
    return _store
