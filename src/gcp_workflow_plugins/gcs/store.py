"""
Object Store

The remote operations a poll cycle needs, and their Google Cloud Storage
implementation. Errors from the client library propagate untouched; the
listing, materializer and action components wrap them.
"""

import logging
from typing import BinaryIO, List, Protocol

from google.cloud import storage

from ..models.storage import ObjectRef

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    """Remote object store consumed by the trigger."""

    def list(self, container: str, prefix: str, recursive: bool) -> List[ObjectRef]:
        ...

    def download(self, container: str, name: str, file_obj: BinaryIO) -> None:
        ...

    def copy(self, src_container: str, src_name: str, dst_container: str, dst_name: str) -> None:
        ...

    def delete(self, container: str, name: str) -> None:
        ...

    def exists(self, container: str, name: str) -> bool:
        ...


class GcsObjectStore:
    """
    ObjectStore backed by a ``google.cloud.storage.Client``.

    The client is injected so its lifetime stays with the caller (one poll
    cycle or one task invocation).
    """

    def __init__(self, client: storage.Client):
        self.client = client

    def list(self, container: str, prefix: str, recursive: bool) -> List[ObjectRef]:
        """
        List objects under a prefix.

        Non-recursive listings use the ``/`` delimiter; the sub-prefixes GCS
        reports are returned as directory entries after the objects.
        """
        iterator = self.client.list_blobs(
            container,
            prefix=prefix or None,
            delimiter=None if recursive else "/",
        )

        refs = [
            ObjectRef(
                container=container,
                name=blob.name,
                is_directory=blob.name.endswith("/"),
                size=blob.size,
                content_type=blob.content_type,
                updated=blob.updated,
            )
            for blob in iterator
        ]

        # Only populated once the pages have been consumed
        if not recursive:
            known = {ref.name for ref in refs}
            for sub_prefix in sorted(iterator.prefixes):
                if sub_prefix not in known:
                    refs.append(ObjectRef(container=container, name=sub_prefix, is_directory=True))

        logger.debug(f"Listed {len(refs)} entries under gs://{container}/{prefix}")
        return refs

    def download(self, container: str, name: str, file_obj: BinaryIO) -> None:
        blob = self.client.bucket(container).blob(name)
        blob.download_to_file(file_obj)

    def copy(self, src_container: str, src_name: str, dst_container: str, dst_name: str) -> None:
        src_bucket = self.client.bucket(src_container)
        dst_bucket = self.client.bucket(dst_container)
        src_bucket.copy_blob(src_bucket.blob(src_name), dst_bucket, dst_name)

    def delete(self, container: str, name: str) -> None:
        self.client.bucket(container).delete_blob(name)

    def exists(self, container: str, name: str) -> bool:
        return self.client.bucket(container).blob(name).exists()
