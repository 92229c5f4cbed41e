"""Unit tests for the bucket-watch poll cycle."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest

from gcp_workflow_plugins.config import TriggerConfig
from gcp_workflow_plugins.errors import CycleTimeoutError, RemoteActionError, RemoteDownloadError, RemoteListError
from gcp_workflow_plugins.gcs.trigger import BucketWatchTrigger, CycleState
from gcp_workflow_plugins.orchestration.temp_storage import LocalTempStorage
from tests.helpers.mock_gcp import InMemoryObjectStore


def _config(**overrides: Any) -> TriggerConfig:
    values = {"id": "watch", "from": "gs://test-bucket/incoming/", "action": "NONE", "maxWorkers": 2}
    values.update(overrides)
    return TriggerConfig(**values)


@pytest.mark.unit
@pytest.mark.gcs
class TestBucketWatchTrigger:
    """Tests for BucketWatchTrigger.evaluate."""

    def test_empty_listing_produces_no_result(self, temp_storage: LocalTempStorage) -> None:
        """Test that nothing is downloaded or acted upon when nothing is listed."""
        store = InMemoryObjectStore()
        trigger = BucketWatchTrigger(_config(action="DELETE"), store, temp_storage)

        with patch("gcp_workflow_plugins.gcs.trigger.materialize_all") as mock_materialize, \
                patch("gcp_workflow_plugins.gcs.trigger.apply_action") as mock_action:
            result = trigger.evaluate()

        assert result is None
        assert trigger.state == CycleState.EMPTY
        assert not mock_materialize.called
        assert not mock_action.called

    def test_result_has_one_materialized_blob_per_listed_file(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that every listed file is in the result with a local uri."""
        trigger = BucketWatchTrigger(_config(), object_store, temp_storage)

        result = trigger.evaluate(execution_id="exec-1")

        assert result is not None
        assert sorted(blob.name for blob in result.blobs) == [
            "incoming/a.csv",
            "incoming/b.csv",
            "incoming/notes.txt",
        ]
        assert all(blob.uri and "/exec-1/watch/" in blob.uri for blob in result.blobs)
        assert trigger.state == CycleState.DONE

    def test_reg_exp_filters_detection(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that regExp limits what is detected."""
        trigger = BucketWatchTrigger(_config(regExp=r".*\.csv"), object_store, temp_storage)

        result = trigger.evaluate()

        assert sorted(blob.name for blob in result.blobs) == ["incoming/a.csv", "incoming/b.csv"]

    def test_recursive_listing_detects_nested_files(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that RECURSIVE detects nested files but never directory markers."""
        trigger = BucketWatchTrigger(_config(listingType="RECURSIVE"), object_store, temp_storage)

        result = trigger.evaluate()

        names = [blob.name for blob in result.blobs]
        assert "incoming/nested/c.csv" in names
        assert not any(name.endswith("/") for name in names)

    def test_delete_prevents_second_detection(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that DELETE makes the next cycle empty."""
        trigger = BucketWatchTrigger(_config(action="DELETE"), object_store, temp_storage)

        first = trigger.evaluate()
        second = trigger.evaluate()

        assert first is not None and len(first.blobs) == 3
        assert second is None

    def test_move_prevents_second_detection(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that MOVE archives the objects and makes the next cycle empty."""
        trigger = BucketWatchTrigger(
            _config(action="MOVE", moveDirectory="gs://test-bucket/archive/"),
            object_store,
            temp_storage,
        )

        first = trigger.evaluate()
        second = trigger.evaluate()

        assert first is not None and len(first.blobs) == 3
        assert second is None
        assert {"archive/a.csv", "archive/b.csv", "archive/notes.txt"} <= object_store.names("test-bucket")

    def test_none_detects_the_same_objects_again(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that NONE re-triggers on the same objects every cycle."""
        trigger = BucketWatchTrigger(_config(action="NONE"), object_store, temp_storage)

        first = trigger.evaluate()
        second = trigger.evaluate()

        assert [b.name for b in first.blobs] == [b.name for b in second.blobs]
        assert [b.uri for b in first.blobs] != [b.uri for b in second.blobs]

    def test_action_runs_after_all_downloads(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that no action starts before every object is materialized."""
        trigger = BucketWatchTrigger(_config(action="DELETE"), object_store, temp_storage)

        trigger.evaluate()

        operations = [call[0] for call in object_store.calls]
        last_download = max(i for i, op in enumerate(operations) if op == "download")
        first_delete = min(i for i, op in enumerate(operations) if op == "delete")
        assert last_download < first_delete

    def test_download_failure_skips_action(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that a failed download fails the cycle before any action."""
        object_store.fail_on("download", "incoming/b.csv")
        trigger = BucketWatchTrigger(_config(action="DELETE"), object_store, temp_storage)

        with pytest.raises(RemoteDownloadError):
            trigger.evaluate()

        assert trigger.state == CycleState.FAILED
        assert object_store.count("delete") == 0
        assert object_store.exists("test-bucket", "incoming/a.csv")

    def test_delete_failure_fails_cycle(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that one failed delete in a batch of three fails the whole cycle."""
        object_store.fail_on("delete", "incoming/b.csv")
        trigger = BucketWatchTrigger(_config(action="DELETE", maxWorkers=1), object_store, temp_storage)

        with pytest.raises(RemoteActionError):
            trigger.evaluate()

        assert trigger.state == CycleState.FAILED

    def test_list_failure_fails_cycle(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that listing errors are surfaced."""
        object_store.fail_on("list", "incoming/")
        trigger = BucketWatchTrigger(_config(), object_store, temp_storage)

        with pytest.raises(RemoteListError):
            trigger.evaluate()

        assert trigger.state == CycleState.FAILED

    def test_expired_deadline_fails_cycle(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that a cycle past its deadline fails before acting."""
        trigger = BucketWatchTrigger(_config(action="DELETE", cycleTimeout="5"), object_store, temp_storage)

        with patch("gcp_workflow_plugins.gcs.trigger.monotonic", side_effect=[0.0, 1.0, 10.0]):
            with pytest.raises(CycleTimeoutError):
                trigger.evaluate()

        assert trigger.state == CycleState.FAILED
        assert object_store.count("delete") == 0

    def test_recursive_move_keeps_every_object(self, temp_storage: LocalTempStorage) -> None:
        """Test that RECURSIVE MOVE of equal basenames loses no data."""
        store = InMemoryObjectStore()
        store.put("test-bucket", "incoming/x/a.csv", b"first")
        store.put("test-bucket", "incoming/y/a.csv", b"second")
        trigger = BucketWatchTrigger(
            _config(
                action="MOVE",
                moveDirectory="gs://test-bucket/archive/",
                listingType="RECURSIVE",
                maxWorkers=1,
            ),
            store,
            temp_storage,
        )

        result = trigger.evaluate()

        assert len(result.blobs) == 2
        assert {store.content("test-bucket", name) for name in store.names("test-bucket")} == {b"first", b"second"}
        assert store.names("test-bucket") == {"archive/x/a.csv", "archive/y/a.csv"}

    def test_download_failure_discards_materialized_files(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that copies made before a failed download are removed."""
        object_store.fail_on("download", "incoming/notes.txt")
        trigger = BucketWatchTrigger(_config(maxWorkers=1), object_store, temp_storage)

        with pytest.raises(RemoteDownloadError):
            trigger.evaluate(execution_id="exec-1")

        assert object_store.count("download") == 3
        assert temp_storage.list_files("exec-1") == []

    def test_action_failure_keeps_materialized_files(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that copies survive once the originals may already be gone."""
        object_store.fail_on("delete", "incoming/b.csv")
        trigger = BucketWatchTrigger(_config(action="DELETE", maxWorkers=1), object_store, temp_storage)

        with pytest.raises(RemoteActionError):
            trigger.evaluate(execution_id="exec-1")

        assert len(temp_storage.list_files("exec-1")) == 3

    def test_discard_failure_does_not_mask_cycle_error(
        self, object_store: InMemoryObjectStore, temp_storage: LocalTempStorage
    ) -> None:
        """Test that the original error is raised even if discarding fails."""
        object_store.fail_on("download", "incoming/a.csv")
        trigger = BucketWatchTrigger(_config(), object_store, temp_storage)

        with patch.object(temp_storage, "discard", side_effect=OSError("read-only")) as mock_discard:
            with pytest.raises(RemoteDownloadError):
                trigger.evaluate(execution_id="exec-1")

        mock_discard.assert_called_once_with("exec-1", "watch")
