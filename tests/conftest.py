"""Shared pytest fixtures for all tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict
from unittest.mock import Mock

import pytest

from gcp_workflow_plugins.orchestration.temp_storage import LocalTempStorage
from tests.helpers.mock_gcp import InMemoryObjectStore

GCP_ENV_VARS = [
    "GCS_WATCH_ID",
    "GCS_WATCH_INTERVAL",
    "GCS_WATCH_FROM",
    "GCS_WATCH_ACTION",
    "GCS_WATCH_MOVE_DIRECTORY",
    "GCS_WATCH_LISTING_TYPE",
    "GCS_WATCH_REGEXP",
    "GCS_WATCH_MAX_WORKERS",
    "GCS_WATCH_CYCLE_TIMEOUT",
    "GCP_PROJECT_ID",
    "GCP_SERVICE_ACCOUNT",
    "GCP_SCOPES",
    "FLOW_NAMESPACE",
    "FLOW_ID",
    "TEMP_STORAGE_BUCKET",
    "TEMP_STORAGE_DIR",
    "LINEAGE_ENABLED",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep variables from a local .env file out of unit tests."""
    for var in GCP_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def mock_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Dict[str, str]:
    """
    Mock environment variables for unit tests.

    Returns:
        Dictionary of mocked environment variables
    """
    env_vars = {
        "GCP_PROJECT_ID": "test-project",
        "GCS_WATCH_ID": "watch",
        "GCS_WATCH_FROM": "gs://test-bucket/incoming/",
        "GCS_WATCH_ACTION": "MOVE",
        "GCS_WATCH_MOVE_DIRECTORY": "gs://test-bucket/archive/",
        "GCS_WATCH_INTERVAL": "30",
        "FLOW_NAMESPACE": "io.test",
        "FLOW_ID": "process-files",
        "TEMP_STORAGE_DIR": str(tmp_path / "temp-storage"),
        "LINEAGE_ENABLED": "false",
        "LOG_LEVEL": "INFO",
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    """In-memory object store with a few incoming files and one nested file."""
    store = InMemoryObjectStore()
    store.put("test-bucket", "incoming/", b"")
    store.put("test-bucket", "incoming/a.csv", b"a,b\n1,2\n")
    store.put("test-bucket", "incoming/b.csv", b"a,b\n3,4\n")
    store.put("test-bucket", "incoming/notes.txt", b"hello")
    store.put("test-bucket", "incoming/nested/c.csv", b"a,b\n5,6\n")
    store.put("test-bucket", "other/d.csv", b"a,b\n7,8\n")
    return store


@pytest.fixture
def temp_storage(tmp_path: Path) -> LocalTempStorage:
    """Local temp storage rooted in the pytest tmp dir."""
    return LocalTempStorage(base_dir=str(tmp_path / "temp-storage"))


@pytest.fixture
def mock_airflow_context() -> Dict[str, Any]:
    """
    Mock Airflow context for testing task functions.

    Returns:
        Dictionary with Airflow context structure
    """
    mock_ti = Mock()
    mock_ti.xcom_push = Mock()
    mock_ti.xcom_pull = Mock()

    mock_dag_run = Mock()
    mock_dag_run.conf = {}

    mock_dag = Mock()
    mock_dag.dag_id = "gcs_bucket_watch"

    mock_task = Mock()
    mock_task.task_id = "watch_bucket"

    return {
        "ti": mock_ti,
        "dag_run": mock_dag_run,
        "task": mock_task,
        "dag": mock_dag,
        "run_id": "scheduled__2025-01-01T00-00-00",
        "params": {},
    }
