from __future__ import annotations

import os

import pendulum  # type: ignore

from airflow.models.dag import DAG  # type: ignore
from airflow.operators.python import PythonOperator, ShortCircuitOperator  # type: ignore
from airflow.operators.trigger_dagrun import TriggerDagRunOperator  # type: ignore

# Add src to path to allow for absolute imports of the plugin modules
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from gcp_workflow_plugins.orchestration.tasks import (
    watch_bucket_task,
    cleanup_scratch_files_task,
)

with DAG(
    dag_id="gcs_bucket_watch",
    start_date=pendulum.datetime(2025, 1, 1, tz="UTC"),
    catchup=False,
    schedule=os.getenv("GCS_WATCH_SCHEDULE", "*/5 * * * *"),
    max_active_runs=1,  # Cycles of the same trigger must never overlap
    render_template_as_native_obj=True,  # start_flow receives the blobs as a list
    tags=["gcp-workflow-plugins"],
    params={
        "trigger_args": {
            # Uncomment to override environment defaults:
            # "from": "gs://my-bucket/incoming/",
            # "action": "MOVE",
            # "moveDirectory": "gs://my-bucket/archive/",
            # "listingType": "DIRECTORY",
            # "regExp": ".*\\.csv",
        }
    },
) as dag:
    watch_bucket = ShortCircuitOperator(
        task_id="watch_bucket",
        python_callable=watch_bucket_task,
    )

    start_flow = TriggerDagRunOperator(
        task_id="start_flow",
        trigger_dag_id=os.getenv("FLOW_ID", "bucket-watch"),
        conf={"blobs": "{{ ti.xcom_pull(task_ids='watch_bucket', key='blobs') }}"},
    )

    cleanup_scratch = PythonOperator(
        task_id="cleanup_scratch_files",
        python_callable=cleanup_scratch_files_task,
    )

    # A run with no detected objects skips start_flow; cleanup runs independently
    watch_bucket >> start_flow
