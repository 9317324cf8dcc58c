from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from casebrief.config import Settings
from casebrief.documents import Document, document_from_record

logger = logging.getLogger("casebrief.repository")

Snapshot = dict[str, list[dict[str, Any]]]


class StorageError(RuntimeError):
    """Raised when the document snapshot cannot be read or written."""


class StoragePort(Protocol):
    def load(self) -> Snapshot:
        ...

    def save(self, snapshot: Snapshot) -> None:
        ...


class InMemoryStorage:
    def __init__(self, initial: Snapshot | None = None) -> None:
        self.snapshot: Snapshot = json.loads(json.dumps(initial or {}))
        self.save_count = 0

    def load(self) -> Snapshot:
        return json.loads(json.dumps(self.snapshot))

    def save(self, snapshot: Snapshot) -> None:
        self.snapshot = json.loads(json.dumps(snapshot))
        self.save_count += 1


class LocalJsonStorage:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load(self) -> Snapshot:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Failed to read document snapshot at '{self._path}': {exc}") from exc
        return _coerce_snapshot(payload)

    def save(self, snapshot: Snapshot) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            staging = self._path.with_suffix(self._path.suffix + ".tmp")
            staging.write_text(json.dumps(snapshot, ensure_ascii=True), encoding="utf-8")
            staging.replace(self._path)
        except OSError as exc:
            raise StorageError(f"Failed to write document snapshot at '{self._path}': {exc}") from exc


class S3Storage:
    def __init__(self, *, bucket: str, key: str, region: str, client: Any | None = None) -> None:
        if not bucket.strip():
            raise StorageError("S3 storage backend selected but S3_BUCKET is not configured.")
        self._bucket = bucket.strip()
        self._key = key.strip().lstrip("/")
        self._client = client or self._create_client(region)

    @staticmethod
    def _create_client(region: str) -> Any:
        try:
            import boto3  # type: ignore
        except ImportError as exc:
            raise StorageError("boto3 is required for S3 storage backend.") from exc
        return boto3.client("s3", region_name=region)

    def load(self) -> Snapshot:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=self._key)
        except Exception as exc:
            if _is_missing_key(exc):
                return {}
            raise StorageError(
                f"Failed to read document snapshot from S3 (bucket={self._bucket}, key={self._key}): {exc}"
            ) from exc
        body = response.get("Body")
        if body is None:
            raise StorageError(f"S3 get_object returned no body (bucket={self._bucket}, key={self._key}).")
        try:
            return _coerce_snapshot(json.loads(body.read()))
        except json.JSONDecodeError as exc:
            raise StorageError(f"Document snapshot in S3 is not valid JSON: {exc}") from exc

    def save(self, snapshot: Snapshot) -> None:
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=self._key,
                Body=json.dumps(snapshot, ensure_ascii=True).encode("utf-8"),
                ContentType="application/json",
            )
        except Exception as exc:  # pragma: no cover - depends on AWS runtime integration
            raise StorageError(
                f"Failed to write document snapshot to S3 (bucket={self._bucket}, key={self._key}): {exc}"
            ) from exc


def _is_missing_key(exc: Exception) -> bool:
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        code = str(response.get("Error", {}).get("Code", ""))
        return code in {"NoSuchKey", "404"}
    return False


def _coerce_snapshot(payload: Any) -> Snapshot:
    if not isinstance(payload, dict):
        raise StorageError("Document snapshot must be a JSON object keyed by item key.")
    snapshot: Snapshot = {}
    for item_key, records in payload.items():
        if not isinstance(records, list):
            continue
        snapshot[str(item_key)] = [record for record in records if isinstance(record, dict)]
    return snapshot


def build_storage(settings: Settings) -> StoragePort:
    backend = (settings.storage_backend or "").strip().lower()
    if backend == "memory":
        return InMemoryStorage()
    if backend in {"local", "filesystem", "fs"}:
        return LocalJsonStorage(settings.storage_path)
    if backend == "s3":
        return S3Storage(bucket=settings.s3_bucket, key=settings.s3_key, region=settings.aws_region)
    raise StorageError(f"Unsupported STORAGE_BACKEND '{settings.storage_backend}'. Use 'memory', 'local' or 's3'.")


class DocumentRepository:
    """Documents grouped by item key, snapshotted to a storage port on every change.

    Each mutation replaces the tuple held for one item key, so a write to one
    key never touches the documents filed under another.
    """

    def __init__(self, storage: StoragePort) -> None:
        self._storage = storage
        self._items: dict[str, tuple[Document, ...]] = {}
        for item_key, records in storage.load().items():
            self._items[item_key] = tuple(document_from_record(record) for record in records)
        logger.info(
            "repository_loaded",
            extra={
                "event": "repository_loaded",
                "item_keys": len(self._items),
                "documents": sum(len(documents) for documents in self._items.values()),
            },
        )

    def list(self, item_key: str) -> list[Document]:
        return list(self._items.get(item_key, ()))

    def item_keys(self) -> list[str]:
        return list(self._items)

    def get(self, item_key: str, index: int) -> Document:
        documents = self._items.get(item_key, ())
        if index < 0 or index >= len(documents):
            raise IndexError(f"No document at index {index} for item '{item_key}'.")
        return documents[index]

    def find(self, item_key: str, document_id: str) -> tuple[int, Document] | None:
        for index, document in enumerate(self._items.get(item_key, ())):
            if document.id == document_id:
                return index, document
        return None

    def append(self, item_key: str, document: Document) -> int:
        documents = self._items.get(item_key, ())
        self._items = {**self._items, item_key: (*documents, document)}
        self._persist()
        return len(documents)

    def upsert(self, item_key: str, index: int, document: Document) -> None:
        documents = self._items.get(item_key, ())
        if index == len(documents):
            self.append(item_key, document)
            return
        if index < 0 or index > len(documents):
            raise IndexError(f"No document at index {index} for item '{item_key}'.")
        replaced = (*documents[:index], document, *documents[index + 1 :])
        self._items = {**self._items, item_key: replaced}
        self._persist()

    def remove(self, item_key: str, index: int) -> Document:
        documents = self._items.get(item_key, ())
        if index < 0 or index >= len(documents):
            raise IndexError(f"No document at index {index} for item '{item_key}'.")
        removed = documents[index]
        self._items = {**self._items, item_key: (*documents[:index], *documents[index + 1 :])}
        self._persist()
        return removed

    def _persist(self) -> None:
        snapshot: Snapshot = {
            item_key: [document.to_record() for document in documents]
            for item_key, documents in self._items.items()
        }
        self._storage.save(snapshot)
