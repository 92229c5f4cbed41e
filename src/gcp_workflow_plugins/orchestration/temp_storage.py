"""
Workflow-Scoped Temp Storage

Where materialized objects are kept for the execution they trigger. Files are
grouped by execution id and by the trigger that produced them, either on the
local filesystem or under a GCS scratch prefix.
"""

import logging
import os
import shutil
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Protocol, Tuple

from google.cloud import storage

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "airflow-scratch"


class TempStorage(Protocol):
    def put(self, stream: BinaryIO, execution_id: str, owner_id: str, filename: str) -> str:
        """Store a stream and return a URI the execution can read it from."""
        ...

    def discard(self, execution_id: str, owner_id: str) -> int:
        """Delete everything stored for one execution and owner; return the count."""
        ...


def _check_segment(value: str, label: str) -> str:
    if not value or "/" in value or value in (".", ".."):
        raise ConfigurationError(f"Invalid {label} for temp storage: {value!r}")
    return value


def _unique_name(filename: str) -> str:
    safe = os.path.basename(filename) or "object"
    return f"{uuid.uuid4().hex}-{safe}"


class LocalTempStorage:
    """
    Temp storage on the local filesystem.

    Layout: ``<base_dir>/<execution_id>/<owner_id>/<uuid>-<filename>``
    """

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or os.path.join(tempfile.gettempdir(), "gcp-workflow-plugins"))

    def put(self, stream: BinaryIO, execution_id: str, owner_id: str, filename: str) -> str:
        directory = self.base_dir / _check_segment(execution_id, "execution id") / _check_segment(owner_id, "owner id")
        directory.mkdir(parents=True, exist_ok=True)

        path = directory / _unique_name(filename)
        with open(path, "wb") as out:
            shutil.copyfileobj(stream, out)

        return path.resolve().as_uri()

    def discard(self, execution_id: str, owner_id: str) -> int:
        directory = self.base_dir / _check_segment(execution_id, "execution id") / _check_segment(owner_id, "owner id")
        if not directory.exists():
            return 0

        count = sum(1 for p in directory.rglob("*") if p.is_file())
        shutil.rmtree(directory)
        logger.info(f"Discarded {count} temp files in {directory}")
        return count

    def list_files(self, execution_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List stored files, optionally for a single execution.

        Returns:
            List of dicts with file metadata: {name, size, created, uri}
        """
        root = self.base_dir / execution_id if execution_id else self.base_dir
        if not root.exists():
            return []

        files = []
        for path in sorted(p for p in root.rglob("*") if p.is_file()):
            stat = path.stat()
            files.append({
                "name": str(path.relative_to(self.base_dir)),
                "size": stat.st_size,
                "created": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                "uri": path.resolve().as_uri(),
            })
        return files

    def cleanup_old_files(self, days_to_keep: int = 7) -> Tuple[int, int]:
        """
        Delete files older than the retention period.

        Returns:
            Tuple of (files_deleted, files_failed) counts
        """
        cutoff = (datetime.now(timezone.utc) - timedelta(days=days_to_keep)).timestamp()
        files_deleted = 0
        files_failed = 0

        if not self.base_dir.exists():
            return (0, 0)

        for path in self.base_dir.rglob("*"):
            if not path.is_file():
                continue
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    files_deleted += 1
            except OSError as e:
                logger.warning(f"Failed to delete {path}: {e}")
                files_failed += 1

        logger.info(f"Temp file cleanup complete: {files_deleted} deleted, {files_failed} failed")
        return (files_deleted, files_failed)


class GcsScratchStorage:
    """
    Temp storage under a GCS scratch prefix.

    Layout: ``gs://<bucket>/airflow-scratch/<execution_id>/<owner_id>/<uuid>-<filename>``
    """

    def __init__(self, bucket: str, client: storage.Client):
        self.bucket = bucket
        self.client = client

    def put(self, stream: BinaryIO, execution_id: str, owner_id: str, filename: str) -> str:
        blob_path = "/".join([
            SCRATCH_PREFIX,
            _check_segment(execution_id, "execution id"),
            _check_segment(owner_id, "owner id"),
            _unique_name(filename),
        ])

        blob = self.client.bucket(self.bucket).blob(blob_path)
        blob.upload_from_file(stream)

        gcs_path = f"gs://{self.bucket}/{blob_path}"
        logger.debug(f"Wrote scratch file {gcs_path}")
        return gcs_path

    def discard(self, execution_id: str, owner_id: str) -> int:
        prefix = "/".join([
            SCRATCH_PREFIX,
            _check_segment(execution_id, "execution id"),
            _check_segment(owner_id, "owner id"),
        ]) + "/"

        files_deleted = 0
        for blob in self.client.bucket(self.bucket).list_blobs(prefix=prefix):
            blob.delete()
            files_deleted += 1

        logger.info(f"Discarded {files_deleted} scratch files in gs://{self.bucket}/{prefix}")
        return files_deleted

    def list_files(self, execution_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List scratch files, optionally for a single execution.

        Returns:
            List of dicts with file metadata: {name, size, created, uri}
        """
        prefix = f"{SCRATCH_PREFIX}/{execution_id}/" if execution_id else f"{SCRATCH_PREFIX}/"

        try:
            blobs = self.client.bucket(self.bucket).list_blobs(prefix=prefix)

            files = []
            for blob in blobs:
                files.append({
                    "name": blob.name,
                    "size": blob.size,
                    "created": blob.time_created.isoformat() if blob.time_created else None,
                    "uri": f"gs://{self.bucket}/{blob.name}",
                })

            logger.info(f"Found {len(files)} scratch files in gs://{self.bucket}/{prefix}")
            return files

        except Exception as e:
            logger.error(f"Failed to list scratch files in gs://{self.bucket}/{prefix}: {e}")
            raise

    def cleanup_old_files(self, days_to_keep: int = 7) -> Tuple[int, int]:
        """
        Delete scratch files older than the retention period.

        Returns:
            Tuple of (files_deleted, files_failed) counts
        """
        cutoff_time = datetime.now(timezone.utc) - timedelta(days=days_to_keep)
        files_deleted = 0
        files_failed = 0

        logger.info(f"Deleting scratch files in gs://{self.bucket}/{SCRATCH_PREFIX}/ older than {cutoff_time.isoformat()}")

        for blob in self.client.bucket(self.bucket).list_blobs(prefix=f"{SCRATCH_PREFIX}/"):
            try:
                if blob.time_created and blob.time_created < cutoff_time:
                    blob.delete()
                    files_deleted += 1

                    if files_deleted % 100 == 0:
                        logger.info(f"Deleted {files_deleted} old scratch files...")

            except Exception as e:
                logger.warning(f"Failed to delete gs://{self.bucket}/{blob.name}: {e}")
                files_failed += 1

        logger.info(f"Scratch file cleanup complete: {files_deleted} deleted, {files_failed} failed")
        return (files_deleted, files_failed)


def build_temp_storage(
    temp_storage_bucket: Optional[str] = None,
    temp_storage_dir: Optional[str] = None,
    client: Optional[storage.Client] = None,
):
    """
    Pick the temp storage backend: GCS scratch when a bucket is configured,
    the local filesystem otherwise.
    """
    if temp_storage_bucket:
        if client is None:
            raise ConfigurationError("A storage client is required for GCS scratch storage")
        return GcsScratchStorage(bucket=temp_storage_bucket, client=client)
    return LocalTempStorage(base_dir=temp_storage_dir)
