"""
Entry point for running a bucket-watch trigger via python -m gcp_workflow_plugins

Polls the configured location until interrupted and logs every execution it
creates as JSON.
"""

import logging
import signal
import threading

from .config import load_trigger_config
from .connection import build_storage_client
from .gcs.store import GcsObjectStore
from .gcs.trigger import BucketWatchTrigger
from .models.execution import Execution
from .orchestration.scheduler import TriggerScheduler
from .orchestration.temp_storage import build_temp_storage

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _log_execution(execution: Execution) -> None:
    logger.info(f"Execution: {execution.model_dump_json()}")


def main() -> None:
    config = load_trigger_config()
    logging.getLogger().setLevel(config.log_level)

    client = build_storage_client(
        project_id=config.project_id,
        service_account=config.service_account,
        scopes=config.scopes,
    )
    trigger = BucketWatchTrigger(
        config=config,
        store=GcsObjectStore(client),
        temp_storage=build_temp_storage(
            temp_storage_bucket=config.temp_storage_bucket,
            temp_storage_dir=config.temp_storage_dir,
            client=client,
        ),
    )

    stop_event = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop_event.set())

    try:
        TriggerScheduler(trigger, on_execution=_log_execution).run(stop_event)
    except KeyboardInterrupt:
        logger.info("Scheduler interrupted by user")


if __name__ == "__main__":
    main()
