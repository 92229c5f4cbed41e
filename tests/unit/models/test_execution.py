"""Unit tests for execution models."""

from __future__ import annotations

import pytest

from gcp_workflow_plugins.models.execution import Execution, ExecutionState
from gcp_workflow_plugins.models.storage import ObjectRef, PollResult


@pytest.mark.unit
class TestExecution:
    """Tests for Execution."""

    def test_from_poll_result(self) -> None:
        """Test that the poll result becomes the trigger variables."""
        result = PollResult(blobs=[
            ObjectRef(container="bucket", name="in/a.csv").with_uri("file:///tmp/a.csv"),
        ])

        execution = Execution.from_poll_result(
            execution_id="exec-1",
            namespace="io.test",
            flow_id="process-files",
            trigger_id="watch",
            trigger_type="gcp_workflow_plugins.gcs.Trigger",
            result=result,
        )

        assert execution.id == "exec-1"
        assert execution.state == ExecutionState.CREATED
        assert execution.flow_revision == 1
        assert execution.trigger.variables["blobs"][0]["uri"] == "file:///tmp/a.csv"
        assert execution.trigger.variables["blobs"][0]["name"] == "in/a.csv"
