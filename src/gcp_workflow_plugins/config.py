"""
Trigger Configuration

Configuration of a bucket-watch trigger, loaded from environment variables
with optional overrides (DAG params, dag_run.conf, tests).
"""

import logging
import os
import re
from datetime import timedelta
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import ConfigDict, Field, field_validator, model_validator

from .errors import ConfigurationError
from .models.storage import (
    Action,
    ActionSpec,
    ListingFilter,
    ListingRequest,
    ListingType,
    ValidatedModel,
    parse_location,
)

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

DEFAULT_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class TriggerConfig(ValidatedModel):
    """
    Configuration for a bucket-watch trigger.

    Field aliases follow the flow definition keys (``from``, ``moveDirectory``,
    ``listingType``, ``regExp``...). Every field falls back to an environment
    variable.
    """

    model_config = ConfigDict(populate_by_name=True, validate_default=True)

    id: str = Field(
        default_factory=lambda: os.getenv("GCS_WATCH_ID", "watch"),
        description="Trigger id, also the owner of materialized files"
    )

    interval: timedelta = Field(
        default_factory=lambda: os.getenv("GCS_WATCH_INTERVAL", "60"),
        description="Poll period (seconds or ISO 8601 duration such as PT5M)"
    )

    from_: str = Field(
        default_factory=lambda: os.getenv("GCS_WATCH_FROM", ""),
        alias="from",
        description="Watched location, e.g. gs://my-bucket/incoming/"
    )

    action: Action = Field(
        default_factory=lambda: os.getenv("GCS_WATCH_ACTION", "NONE"),
        description="Action applied to detected objects: NONE, MOVE or DELETE"
    )

    move_directory: Optional[str] = Field(
        default_factory=lambda: os.getenv("GCS_WATCH_MOVE_DIRECTORY") or None,
        alias="moveDirectory",
        description="Destination for MOVE, e.g. gs://my-bucket/archive/"
    )

    listing_type: ListingType = Field(
        default_factory=lambda: os.getenv("GCS_WATCH_LISTING_TYPE", "DIRECTORY"),
        alias="listingType",
        description="DIRECTORY (immediate children) or RECURSIVE"
    )

    reg_exp: Optional[str] = Field(
        default_factory=lambda: os.getenv("GCS_WATCH_REGEXP") or None,
        alias="regExp",
        description="Regular expression the full object name must match"
    )

    max_workers: int = Field(
        default_factory=lambda: os.getenv("GCS_WATCH_MAX_WORKERS", "4"),
        alias="maxWorkers",
        ge=1,
        description="Concurrent downloads and actions per cycle"
    )

    cycle_timeout: Optional[timedelta] = Field(
        default_factory=lambda: os.getenv("GCS_WATCH_CYCLE_TIMEOUT") or None,
        alias="cycleTimeout",
        description="Deadline for one poll cycle (None = no limit)"
    )

    # GCP Configuration
    project_id: Optional[str] = Field(
        default_factory=lambda: os.getenv("GCP_PROJECT_ID") or None,
        alias="projectId",
        description="Google Cloud Project ID (defaults to the credentials' project)"
    )

    service_account: Optional[str] = Field(
        default_factory=lambda: os.getenv("GCP_SERVICE_ACCOUNT") or None,
        alias="serviceAccount",
        description="Service account key JSON content"
    )

    scopes: List[str] = Field(
        default_factory=lambda: os.getenv("GCP_SCOPES") or list(DEFAULT_SCOPES),
        description="OAuth scopes for the storage client"
    )

    # Execution target
    namespace: str = Field(
        default_factory=lambda: os.getenv("FLOW_NAMESPACE", "default"),
        description="Namespace of the flow started by this trigger"
    )

    flow_id: str = Field(
        default_factory=lambda: os.getenv("FLOW_ID", "bucket-watch"),
        alias="flowId",
        description="Id of the flow started by this trigger"
    )

    # Temp storage
    temp_storage_bucket: Optional[str] = Field(
        default_factory=lambda: os.getenv("TEMP_STORAGE_BUCKET") or None,
        description="Bucket for GCS scratch storage (local filesystem if unset)"
    )

    temp_storage_dir: Optional[str] = Field(
        default_factory=lambda: os.getenv("TEMP_STORAGE_DIR") or None,
        description="Base directory for local temp storage"
    )

    # Logging Configuration
    log_level: str = Field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"),
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    @field_validator("interval", "cycle_timeout", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.upper().startswith("P"):
            return float(value)
        return value

    @field_validator("interval", "cycle_timeout")
    @classmethod
    def _check_positive(cls, value: Optional[timedelta]) -> Optional[timedelta]:
        if value is not None and value.total_seconds() <= 0:
            raise ConfigurationError(f"Durations must be positive, got {value}")
        return value

    @field_validator("action", "listing_type", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [scope.strip() for scope in value.split(",") if scope.strip()]
        return value

    @field_validator("from_")
    @classmethod
    def _check_location(cls, value: str) -> str:
        if not value:
            raise ConfigurationError("'from' is required (set GCS_WATCH_FROM)")
        parse_location(value)
        return value

    @field_validator("reg_exp")
    @classmethod
    def _check_reg_exp(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ConfigurationError(f"Invalid regExp {value!r}: {e}") from e
        return value

    @model_validator(mode="after")
    def _check_action(self) -> "TriggerConfig":
        if self.action == Action.MOVE:
            if not self.move_directory:
                raise ConfigurationError("moveDirectory is required when action is MOVE")
            if parse_location(self.move_directory) == parse_location(self.from_):
                raise ConfigurationError("moveDirectory must differ from the watched location")
        return self

    def listing_request(self) -> ListingRequest:
        return ListingRequest(
            location=self.from_,
            name_pattern=self.reg_exp,
            listing_type=self.listing_type,
            filter=ListingFilter.FILES,
        )

    def action_spec(self) -> ActionSpec:
        return ActionSpec(action=self.action, move_directory=self.move_directory, source_location=self.from_)


def load_trigger_config(overrides: Optional[Dict[str, Any]] = None) -> TriggerConfig:
    """
    Load and validate trigger configuration.

    Args:
        overrides: Values taking precedence over the environment, keyed by
            field name or alias

    Returns:
        TriggerConfig instance

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config = TriggerConfig(**(overrides or {}))
    logger.debug(f"Loaded trigger configuration {config.id} watching {config.from_}")
    return config
