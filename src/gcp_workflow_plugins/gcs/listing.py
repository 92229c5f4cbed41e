"""
Listing

Enumerates the objects at a storage location, then narrows them down by name
pattern and entry type.
"""

import logging
import re
from typing import List

from google.api_core.exceptions import GoogleAPIError

from ..errors import RemoteListError
from ..models.storage import ListingFilter, ListingRequest, ObjectRef, parse_location
from .store import ObjectStore

logger = logging.getLogger(__name__)


def list_objects(store: ObjectStore, request: ListingRequest) -> List[ObjectRef]:
    """
    List the objects matching a request.

    The name pattern must match the whole object name (``re.fullmatch``), so
    ``.*\\.csv`` keeps ``in/a.csv`` but ``\\.csv`` keeps nothing.

    Args:
        store: Object store to list from
        request: Location, pattern, listing type and filter

    Returns:
        Matching objects in store order (possibly empty)

    Raises:
        ConfigurationError: If the location is malformed (no remote call made)
        RemoteListError: If the store fails
    """
    container, prefix = parse_location(request.location)
    pattern = re.compile(request.name_pattern) if request.name_pattern else None

    try:
        candidates = store.list(container, prefix, request.recursive)
    except GoogleAPIError as e:
        logger.error(f"Failed to list gs://{container}/{prefix}: {e}")
        raise RemoteListError(
            f"Failed to list gs://{container}/{prefix}: {e}",
            container=container,
            cause=e,
        ) from e

    refs = [
        ref for ref in candidates
        if ref.name != prefix
        and (pattern is None or pattern.fullmatch(ref.name))
        and _keep(ref, request.filter)
    ]

    logger.info(f"Found {len(refs)} of {len(candidates)} entries matching in gs://{container}/{prefix}")
    return refs


def _keep(ref: ObjectRef, listing_filter: ListingFilter) -> bool:
    if listing_filter == ListingFilter.FILES:
        return not ref.is_directory
    if listing_filter == ListingFilter.DIRS:
        return ref.is_directory
    return True
