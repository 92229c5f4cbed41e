"""
Airflow Task Functions for Bucket Watching

Task callables used by the bucket-watch DAG. Airflow plays the scheduler: the
DAG runs on the trigger interval, ``watch_bucket_task`` evaluates one poll
cycle and short-circuits the run when nothing was found.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from ..config import load_trigger_config
from ..connection import build_storage_client
from ..errors import ConfigurationError
from ..gcs.store import GcsObjectStore
from ..gcs.trigger import BucketWatchTrigger
from ..utils.lineage import format_gcs_fqn, record_lineage
from .temp_storage import build_temp_storage

logger = logging.getLogger(__name__)


def _trigger_args(context: Dict[str, Any]) -> Dict[str, Any]:
    # DAG params as base, override with manual trigger config
    default_params = context.get('params') or {}
    dag_run_conf = context.get('dag_run').conf if context.get('dag_run') else {}
    return {**default_params.get('trigger_args', {}), **(dag_run_conf or {}).get('trigger_args', {})}


def watch_bucket_task(**context: Any) -> bool:
    """
    Airflow task evaluating one poll cycle, for a ShortCircuitOperator.

    Configuration is read from environment variables, with overrides from the
    DAG params and dag_run.conf (``trigger_args``). The run id scopes the
    materialized files. Detected objects are pushed to XCom under ``blobs``.

    Records lineage from the source objects to their materialized copies.

    Args:
        **context: Airflow context with dag_run and task instance info

    Returns:
        True when objects were detected and downstream tasks should run

    Raises:
        BucketWatchError: If the configuration is invalid or the cycle fails
    """
    start_time = datetime.now(timezone.utc)
    is_success = False
    source_targets: List[Tuple[str, str]] = []

    config = load_trigger_config(_trigger_args(context))
    client = build_storage_client(
        project_id=config.project_id,
        service_account=config.service_account,
        scopes=config.scopes,
    )

    try:
        trigger = BucketWatchTrigger(
            config=config,
            store=GcsObjectStore(client),
            temp_storage=build_temp_storage(
                temp_storage_bucket=config.temp_storage_bucket,
                temp_storage_dir=config.temp_storage_dir,
                client=client,
            ),
        )

        result = trigger.evaluate(execution_id=context['run_id'])
        is_success = True

        if result is None:
            logger.info(f"No new objects in {config.from_}, skipping downstream tasks.")
            return False

        source_targets = [(format_gcs_fqn(blob.gcs_uri), format_gcs_fqn(blob.uri)) for blob in result.blobs]

        context['ti'].xcom_push(key='blobs', value=[blob.model_dump(mode='json') for blob in result.blobs])
        logger.info(f"Detected {len(result.blobs)} objects in {config.from_}")
        return True

    finally:
        end_time = datetime.now(timezone.utc)
        project_id = config.project_id or client.project
        if project_id and source_targets:
            dag_id = context.get('dag').dag_id if context.get('dag') else 'bucket_watch'
            task_id = context.get('task').task_id if context.get('task') else 'watch_bucket'
            record_lineage(
                project_id=project_id,
                location=os.getenv('LINEAGE_LOCATION', 'us-central1'),
                process_name=dag_id,
                task_id=task_id,
                source_targets=source_targets,
                start_time=start_time,
                end_time=end_time,
                is_success=is_success,
            )


def cleanup_scratch_files_task(**context: Any) -> None:
    """
    Airflow task to clean up old materialized files.

    Configuration is read from environment variables:
    - TEMP_STORAGE_BUCKET / TEMP_STORAGE_DIR: where the files live
    - SCRATCH_RETENTION_DAYS: Number of days to retain files (default: 7)

    Args:
        **context: Airflow context with dag_run and task instance info
    """
    try:
        retention_days = int(os.getenv('SCRATCH_RETENTION_DAYS', '7'))
        bucket = os.getenv('TEMP_STORAGE_BUCKET')

        client = build_storage_client(project_id=os.getenv('GCP_PROJECT_ID')) if bucket else None
        temp_storage = build_temp_storage(
            temp_storage_bucket=bucket,
            temp_storage_dir=os.getenv('TEMP_STORAGE_DIR'),
            client=client,
        )

        logger.info(f"Retention period: {retention_days} days")
        files_deleted, files_failed = temp_storage.cleanup_old_files(days_to_keep=retention_days)

        logger.info(
            f"Scratch file cleanup complete: {files_deleted} files deleted, "
            f"{files_failed} files failed"
        )

    except (ConfigurationError, ValueError) as e:
        logger.error(f"Configuration error in cleanup task: {e}")
        # Non-fatal: log error but don't fail the task

    except Exception as e:
        logger.error(f"Error during scratch file cleanup: {e}")
        # Non-fatal: cleanup failures shouldn't fail the DAG
