"""
Execution Models

What the scheduler hands to the workflow engine when a poll cycle detects
new objects.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field

from .storage import PollResult


class ExecutionState(str, Enum):
    CREATED = "CREATED"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class ExecutionTrigger(BaseModel):
    """Identifies the trigger that created an execution and carries its output."""

    id: str = Field(..., description="Trigger id")
    type: str = Field(..., description="Trigger type")
    variables: Dict[str, Any] = Field(default_factory=dict)


class Execution(BaseModel):
    """A new workflow run created from a poll result."""

    id: str = Field(..., description="Trigger execution id")
    namespace: str
    flow_id: str
    flow_revision: int = 1
    state: ExecutionState = ExecutionState.CREATED
    created: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    trigger: ExecutionTrigger

    @classmethod
    def from_poll_result(
        cls,
        execution_id: str,
        namespace: str,
        flow_id: str,
        trigger_id: str,
        trigger_type: str,
        result: PollResult,
        flow_revision: int = 1,
    ) -> "Execution":
        return cls(
            id=execution_id,
            namespace=namespace,
            flow_id=flow_id,
            flow_revision=flow_revision,
            trigger=ExecutionTrigger(
                id=trigger_id,
                type=trigger_type,
                variables=result.model_dump(mode="json"),
            ),
        )
