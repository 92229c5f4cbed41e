"""
Trigger Scheduler

Invokes a trigger once per interval and turns non-empty poll results into new
executions. Cycles run one after the other, so two cycles of the same trigger
never overlap.
"""

import logging
import threading
import uuid
from typing import Callable, Optional

from ..gcs.trigger import BucketWatchTrigger
from ..models.execution import Execution

logger = logging.getLogger(__name__)


class TriggerScheduler:
    """
    Runs poll cycles for one trigger.

    Args:
        trigger: Trigger to evaluate
        on_execution: Called with every execution created (e.g. persist it or
            hand it to the workflow engine)
        flow_revision: Revision of the flow the executions belong to
    """

    def __init__(
        self,
        trigger: BucketWatchTrigger,
        on_execution: Callable[[Execution], None],
        flow_revision: int = 1,
    ):
        self.trigger = trigger
        self.on_execution = on_execution
        self.flow_revision = flow_revision

        self.stats = {
            'cycles': 0,
            'executions': 0,
            'empty_cycles': 0,
            'failed_cycles': 0,
        }

    def tick(self) -> Optional[Execution]:
        """
        Run one cycle.

        Returns:
            The execution created, or None when nothing was found or the cycle
            failed (failures are logged and retried on the next interval)
        """
        execution_id = uuid.uuid4().hex
        self.stats['cycles'] += 1

        try:
            result = self.trigger.evaluate(execution_id=execution_id)
        except Exception as e:
            self.stats['failed_cycles'] += 1
            logger.error(f"Trigger {self.trigger.id} failed, retrying next interval: {e}", exc_info=True)
            return None

        if result is None:
            self.stats['empty_cycles'] += 1
            return None

        config = self.trigger.config
        execution = Execution.from_poll_result(
            execution_id=execution_id,
            namespace=config.namespace,
            flow_id=config.flow_id,
            flow_revision=self.flow_revision,
            trigger_id=self.trigger.id,
            trigger_type=self.trigger.type,
            result=result,
        )

        self.on_execution(execution)
        self.stats['executions'] += 1
        logger.info(f"Created execution {execution.id} with {len(result.blobs)} objects for {config.namespace}.{config.flow_id}")
        return execution

    def run(self, stop_event: Optional[threading.Event] = None, max_cycles: Optional[int] = None) -> None:
        """
        Tick every ``interval`` until ``stop_event`` is set or ``max_cycles``
        cycles have run.
        """
        stop_event = stop_event or threading.Event()
        interval = self.trigger.config.interval.total_seconds()
        cycles = 0

        logger.info(f"Watching {self.trigger.config.from_} every {interval}s (trigger {self.trigger.id})")

        while not stop_event.is_set():
            self.tick()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            stop_event.wait(interval)

        logger.info(f"Scheduler stopped after {cycles} cycles: {self.stats}")
