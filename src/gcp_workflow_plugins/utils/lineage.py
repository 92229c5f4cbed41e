"""
Data Catalog Lineage for detected objects.

Each successful cycle can be recorded as a lineage run linking the source
objects to their materialized copies. Lineage is best effort: every failure is
logged as a warning and never fails the cycle.
"""

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from google.cloud import datacatalog_lineage_v1

logger = logging.getLogger(__name__)


def is_lineage_enabled() -> bool:
    """
    Check if lineage tracking is enabled via environment variable.

    Returns:
        True if lineage is enabled, False otherwise
    """
    return os.getenv("LINEAGE_ENABLED", "true").lower() == "true"


def format_gcs_fqn(uri: str) -> str:
    """
    Format a storage URI as a lineage FQN.

    ``gs://bucket/path/file.csv`` becomes ``gcs:bucket.path/file.csv``;
    other URIs (local copies) are returned unchanged.
    """
    if not uri.startswith("gs://"):
        return uri
    bucket, _, name = uri[len("gs://"):].partition("/")
    return f"gcs:{bucket}.{name}" if name else f"gcs:{bucket}"


def record_lineage(
    project_id: str,
    location: str,
    process_name: str,
    task_id: str,
    source_targets: List[Tuple[str, str]],
    start_time: datetime,
    end_time: datetime,
    is_success: bool,
    client: Optional[datacatalog_lineage_v1.LineageClient] = None,
) -> Optional[str]:
    """
    Record a lineage process, run and one event per (source, target) pair.

    Args:
        project_id: GCP project ID
        location: Lineage API location (e.g. 'us-central1')
        process_name: Process display name (e.g. DAG or trigger id)
        task_id: Run display name
        source_targets: (source FQN, target FQN) pairs
        start_time: When the cycle started
        end_time: When the cycle ended
        is_success: Whether the cycle succeeded
        client: Lineage client (created when omitted)

    Returns:
        Run resource name, or None if lineage is disabled or recording fails
    """
    if not is_lineage_enabled() or not source_targets:
        return None

    try:
        client = client or datacatalog_lineage_v1.LineageClient()

        process = client.create_process(
            request=datacatalog_lineage_v1.CreateProcessRequest(
                parent=f"projects/{project_id}/locations/{location}",
                process=datacatalog_lineage_v1.Process(
                    display_name=process_name,
                    attributes={
                        "framework": "gcp_workflow_plugins",
                        "source_system": "gcs",
                        "source_type": "bucket_watch",
                    },
                ),
            )
        )

        state = (datacatalog_lineage_v1.Run.State.COMPLETED
                 if is_success
                 else datacatalog_lineage_v1.Run.State.FAILED)

        run = client.create_run(
            request=datacatalog_lineage_v1.CreateRunRequest(
                parent=process.name,
                run=datacatalog_lineage_v1.Run(
                    display_name=task_id,
                    start_time=start_time.astimezone(timezone.utc),
                    end_time=end_time.astimezone(timezone.utc),
                    state=state,
                ),
            )
        )

        events = 0
        for source_fqn, target_fqn in source_targets:
            try:
                client.create_lineage_event(
                    request=datacatalog_lineage_v1.CreateLineageEventRequest(
                        parent=run.name,
                        lineage_event=datacatalog_lineage_v1.LineageEvent(
                            links=[datacatalog_lineage_v1.EventLink(
                                source=datacatalog_lineage_v1.EntityReference(fully_qualified_name=source_fqn),
                                target=datacatalog_lineage_v1.EntityReference(fully_qualified_name=target_fqn),
                            )],
                            start_time=start_time.astimezone(timezone.utc),
                            end_time=end_time.astimezone(timezone.utc),
                        ),
                    )
                )
                events += 1
            except Exception as e:
                logger.warning(f"Failed to create lineage event from {source_fqn} to {target_fqn}: {e}")

        logger.info(f"Recorded lineage run {run.name} with {events}/{len(source_targets)} events")
        return run.name

    except Exception as e:
        logger.warning(f"Failed to record lineage (non-fatal): {e}")
        return None
