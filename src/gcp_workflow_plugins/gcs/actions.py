"""
Post-Detection Actions

Moving or deleting detected objects is what keeps them from being detected
again on the next poll. With ``Action.NONE`` the same objects are listed every
cycle until something else removes them.

MOVE never overwrites: every destination of a batch is checked before the
first copy, and a batch with clashing or already existing destinations fails
without touching the bucket.
"""

import logging
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from google.api_core.exceptions import GoogleAPIError

from ..errors import RemoteActionError
from ..models.storage import Action, ActionSpec, ObjectRef, parse_location
from ..utils.concurrency import map_all_or_nothing
from .store import ObjectStore

logger = logging.getLogger(__name__)


def move_destination(
    ref: ObjectRef,
    move_directory: str,
    source_location: Optional[str] = None,
) -> Tuple[str, str]:
    """
    Where MOVE puts an object: the move directory plus the object's name
    relative to the watched location.

    Watching ``gs://b/a/``, ``gs://b/a/b.txt`` moved to ``gs://b/archive/``
    lands at ``gs://b/archive/b.txt`` and ``gs://b/a/x/b.txt`` at
    ``gs://b/archive/x/b.txt``. Objects outside the watched location, or
    when no location is given, keep only their basename.
    """
    container, prefix = parse_location(move_directory)
    prefix = prefix.rstrip("/")

    relative = ref.basename
    if source_location is not None:
        source_container, source_prefix = parse_location(source_location)
        if source_prefix and not source_prefix.endswith("/"):
            source_prefix += "/"
        if ref.container == source_container and ref.name.startswith(source_prefix) and ref.name != source_prefix:
            relative = ref.name[len(source_prefix):]

    name = f"{prefix}/{relative}" if prefix else relative
    return container, name


def apply_action(
    store: ObjectStore,
    refs: Sequence[ObjectRef],
    spec: ActionSpec,
    max_workers: int = 4,
    timeout: Optional[float] = None,
) -> None:
    """
    Apply the post-detection action to each remote object.

    Args:
        store: Object store holding the objects
        refs: Remote originals, as listed
        spec: Action to apply
        max_workers: Concurrent remote calls
        timeout: Seconds allowed for the whole batch

    Raises:
        RemoteActionError: On the first failed copy or delete, or before any
            copy when MOVE destinations clash or already exist
    """
    if spec.action == Action.NONE or not refs:
        return

    if spec.action == Action.DELETE:
        map_all_or_nothing(lambda ref: _delete(store, ref), refs, max_workers, timeout)
    elif spec.action == Action.MOVE:
        moves = _plan_moves(store, refs, spec, max_workers, timeout)
        map_all_or_nothing(lambda move: _move(store, *move), moves, max_workers, timeout)

    logger.info(f"Applied {spec.action.value} to {len(refs)} objects")


def _plan_moves(
    store: ObjectStore,
    refs: Sequence[ObjectRef],
    spec: ActionSpec,
    max_workers: int,
    timeout: Optional[float],
) -> List[Tuple[ObjectRef, str, str]]:
    moves = []
    for ref in refs:
        dst_container, dst_name = move_destination(ref, spec.move_directory, spec.source_location)
        if (dst_container, dst_name) == (ref.container, ref.name):
            logger.warning(f"Not moving {ref.gcs_uri} onto itself")
            continue
        moves.append((ref, dst_container, dst_name))

    counts = Counter((dst_container, dst_name) for _, dst_container, dst_name in moves)
    for ref, dst_container, dst_name in moves:
        if counts[(dst_container, dst_name)] > 1:
            raise RemoteActionError(
                f"Several objects would be moved to gs://{dst_container}/{dst_name}, including {ref.gcs_uri}",
                container=ref.container,
                name=ref.name,
            )

    map_all_or_nothing(lambda move: _check_free(store, *move), moves, max_workers, timeout)
    return moves


def _check_free(store: ObjectStore, ref: ObjectRef, dst_container: str, dst_name: str) -> None:
    target = f"gs://{dst_container}/{dst_name}"
    try:
        taken = store.exists(dst_container, dst_name)
    except GoogleAPIError as e:
        logger.error(f"Failed to check {target} before moving {ref.gcs_uri}: {e}")
        raise RemoteActionError(
            f"Failed to check {target} before moving {ref.gcs_uri}: {e}",
            container=ref.container,
            name=ref.name,
            cause=e,
        ) from e

    if taken:
        raise RemoteActionError(
            f"Not moving {ref.gcs_uri}: {target} already exists",
            container=ref.container,
            name=ref.name,
        )


def _delete(store: ObjectStore, ref: ObjectRef) -> None:
    try:
        store.delete(ref.container, ref.name)
    except GoogleAPIError as e:
        logger.error(f"Failed to delete {ref.gcs_uri}: {e}")
        raise RemoteActionError(
            f"Failed to delete {ref.gcs_uri}: {e}",
            container=ref.container,
            name=ref.name,
            cause=e,
        ) from e
    logger.debug(f"Deleted {ref.gcs_uri}")


def _move(store: ObjectStore, ref: ObjectRef, dst_container: str, dst_name: str) -> None:
    target = f"gs://{dst_container}/{dst_name}"

    try:
        store.copy(ref.container, ref.name, dst_container, dst_name)
    except GoogleAPIError as e:
        logger.error(f"Failed to copy {ref.gcs_uri} to {target}: {e}")
        raise RemoteActionError(
            f"Failed to copy {ref.gcs_uri} to {target}: {e}",
            container=ref.container,
            name=ref.name,
            cause=e,
        ) from e

    # The copy stays in place if this fails: a duplicate beats a lost object
    try:
        store.delete(ref.container, ref.name)
    except GoogleAPIError as e:
        logger.error(f"Copied {ref.gcs_uri} to {target} but failed to delete the source: {e}")
        raise RemoteActionError(
            f"Failed to delete {ref.gcs_uri} after copying it to {target}: {e}",
            container=ref.container,
            name=ref.name,
            cause=e,
        ) from e

    logger.debug(f"Moved {ref.gcs_uri} to {target}")
