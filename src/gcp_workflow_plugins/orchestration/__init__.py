"""
Orchestration Module

Workflow-engine glue: workflow-scoped temp storage, the interval scheduler and
the Airflow task functions (``orchestration.tasks``, ``orchestration.scheduler``).
"""

from gcp_workflow_plugins.orchestration.temp_storage import (
    GcsScratchStorage,
    LocalTempStorage,
    TempStorage,
    build_temp_storage,
)

__all__ = [
    "GcsScratchStorage",
    "LocalTempStorage",
    "TempStorage",
    "build_temp_storage",
]
