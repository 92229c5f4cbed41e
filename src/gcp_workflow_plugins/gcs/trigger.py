"""
GCS Bucket-Watch Trigger

Polls a bucket location for objects, downloads each one into workflow-scoped
temp storage, then moves or deletes the originals so the next poll does not
detect them again.

A cycle is all or nothing: it either produces no result (nothing listed), a
PollResult listing every object it found (all downloaded, all acted upon), or
an exception. Partial results are never returned, and files downloaded by a
cycle that fails before acting are discarded from temp storage.
"""

import logging
import uuid
from enum import Enum
from time import monotonic
from typing import Optional

from ..config import TriggerConfig
from ..errors import CycleTimeoutError
from ..models.storage import PollResult
from ..orchestration.temp_storage import TempStorage
from .actions import apply_action
from .listing import list_objects
from .materializer import materialize_all
from .store import ObjectStore

logger = logging.getLogger(__name__)

TRIGGER_TYPE = "gcp_workflow_plugins.gcs.Trigger"


class CycleState(str, Enum):
    IDLE = "IDLE"
    LISTING = "LISTING"
    EMPTY = "EMPTY"
    MATERIALIZING = "MATERIALIZING"
    ACTING = "ACTING"
    EMITTING = "EMITTING"
    DONE = "DONE"
    FAILED = "FAILED"


class BucketWatchTrigger:
    """
    Poll cycle controller for one configured trigger.

    The object store and temp storage are injected; the trigger keeps no
    state between cycles other than the state of the last one, for
    observability.

    With ``Action.NONE`` nothing is removed from the bucket, so every cycle
    reports the same objects again until they are deleted some other way.
    """

    type = TRIGGER_TYPE

    def __init__(self, config: TriggerConfig, store: ObjectStore, temp_storage: TempStorage):
        self.config = config
        self.store = store
        self.temp_storage = temp_storage
        self.state = CycleState.IDLE

        # Fail on bad configuration before any remote call
        self.listing_request = config.listing_request()
        self.action_spec = config.action_spec()

    @property
    def id(self) -> str:
        return self.config.id

    def evaluate(self, execution_id: Optional[str] = None) -> Optional[PollResult]:
        """
        Run one poll cycle.

        Args:
            execution_id: Id of the execution the result will start; used to
                scope materialized files (generated when omitted)

        Returns:
            PollResult with one materialized ref per listed object, or None
            when nothing was found

        Raises:
            BucketWatchError: If any step fails; no result is produced
        """
        execution_id = execution_id or uuid.uuid4().hex
        deadline = self._deadline()

        try:
            self.state = CycleState.LISTING
            listed = list_objects(self.store, self.listing_request)

            if not listed:
                self.state = CycleState.EMPTY
                logger.debug(f"Trigger {self.id}: nothing found in {self.config.from_}")
                return None

            logger.info(f"Trigger {self.id}: detected {len(listed)} objects in {self.config.from_}")

            self.state = CycleState.MATERIALIZING
            blobs = materialize_all(
                self.store,
                self.temp_storage,
                listed,
                execution_id=execution_id,
                owner_id=self.id,
                max_workers=self.config.max_workers,
                timeout=self._remaining(deadline),
            )

            # Targets the remote originals, not the local copies
            self.state = CycleState.ACTING
            apply_action(
                self.store,
                listed,
                self.action_spec,
                max_workers=self.config.max_workers,
                timeout=self._remaining(deadline),
            )

            self.state = CycleState.EMITTING
            result = PollResult(blobs=blobs)

            self.state = CycleState.DONE
            return result

        except Exception as e:
            failed_in = self.state
            self.state = CycleState.FAILED
            logger.error(f"Trigger {self.id}: poll cycle failed: {e}")
            # Once acting has started the copies may be the only ones left
            if failed_in == CycleState.MATERIALIZING:
                self._discard(execution_id)
            raise

    def _discard(self, execution_id: str) -> None:
        try:
            self.temp_storage.discard(execution_id, self.id)
        except Exception as e:
            logger.warning(f"Trigger {self.id}: failed to discard temp files of {execution_id}: {e}")

    def _deadline(self) -> Optional[float]:
        if self.config.cycle_timeout is None:
            return None
        return monotonic() + self.config.cycle_timeout.total_seconds()

    def _remaining(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        remaining = deadline - monotonic()
        if remaining <= 0:
            raise CycleTimeoutError(f"Trigger {self.id}: cycle exceeded {self.config.cycle_timeout}")
        return remaining
