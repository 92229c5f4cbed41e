"""
Data models shared by the trigger, its components and the scheduler.
"""

from .execution import Execution, ExecutionState, ExecutionTrigger
from .storage import (
    Action,
    ActionSpec,
    ListingFilter,
    ListingRequest,
    ListingType,
    ObjectRef,
    PollResult,
    parse_location,
)

__all__ = [
    "Action",
    "ActionSpec",
    "Execution",
    "ExecutionState",
    "ExecutionTrigger",
    "ListingFilter",
    "ListingRequest",
    "ListingType",
    "ObjectRef",
    "PollResult",
    "parse_location",
]
