"""
Object Materializer

Downloads detected objects into workflow-scoped temp storage so the execution
they trigger can read them.
"""

import logging
import tempfile
from typing import List, Optional, Sequence

from google.api_core.exceptions import GoogleAPIError

from ..errors import RemoteDownloadError
from ..models.storage import ObjectRef
from ..orchestration.temp_storage import TempStorage
from ..utils.concurrency import map_all_or_nothing
from .store import ObjectStore

logger = logging.getLogger(__name__)

# Objects up to this size stay in memory while being copied
SPOOL_MAX_BYTES = 8 * 1024 * 1024


def materialize(
    store: ObjectStore,
    temp_storage: TempStorage,
    ref: ObjectRef,
    execution_id: str,
    owner_id: str,
) -> ObjectRef:
    """
    Copy one remote object into temp storage.

    Each call produces its own copy; nothing is cached between calls.

    Returns:
        A new ObjectRef whose ``uri`` points at the local copy

    Raises:
        RemoteDownloadError: If the download or the temp storage write fails
    """
    try:
        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES) as buffer:
            store.download(ref.container, ref.name, buffer)
            buffer.seek(0)
            uri = temp_storage.put(buffer, execution_id, owner_id, ref.basename)
    except (GoogleAPIError, OSError) as e:
        logger.error(f"Failed to materialize {ref.gcs_uri}: {e}")
        raise RemoteDownloadError(
            f"Failed to download {ref.gcs_uri}: {e}",
            container=ref.container,
            name=ref.name,
            cause=e,
        ) from e

    logger.debug(f"Materialized {ref.gcs_uri} to {uri}")
    return ref.with_uri(uri)


def materialize_all(
    store: ObjectStore,
    temp_storage: TempStorage,
    refs: Sequence[ObjectRef],
    execution_id: str,
    owner_id: str,
    max_workers: int = 4,
    timeout: Optional[float] = None,
) -> List[ObjectRef]:
    """
    Materialize every ref, or fail as a whole.

    Returns:
        Materialized refs in the same order as ``refs``
    """
    materialized = map_all_or_nothing(
        lambda ref: materialize(store, temp_storage, ref, execution_id, owner_id),
        refs,
        max_workers=max_workers,
        timeout=timeout,
    )
    logger.info(f"Materialized {len(materialized)} objects for execution {execution_id}")
    return materialized
