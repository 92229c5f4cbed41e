"""
Google Cloud Storage bucket-watch components.
"""

from .actions import apply_action, move_destination
from .listing import list_objects
from .materializer import materialize, materialize_all
from .store import GcsObjectStore, ObjectStore
from .trigger import BucketWatchTrigger, CycleState

__all__ = [
    "BucketWatchTrigger",
    "CycleState",
    "GcsObjectStore",
    "ObjectStore",
    "apply_action",
    "list_objects",
    "materialize",
    "materialize_all",
    "move_destination",
]
