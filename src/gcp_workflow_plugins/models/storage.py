"""
Storage Models

Records exchanged between the listing, materialization and action steps of a
poll cycle.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigurationError

GCS_SCHEME = "gs://"

# Bucket naming rules: lowercase letters, digits, dashes, underscores and dots.
_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]{1,220}[a-z0-9]$")


def parse_location(location: str) -> Tuple[str, str]:
    """
    Split a storage location into (bucket, prefix).

    Accepts ``gs://bucket/some/prefix/`` as well as the scheme-less
    ``bucket/some/prefix/``. The prefix is returned as written (it may be
    empty, and a trailing slash is kept).

    Args:
        location: Location string

    Returns:
        Tuple of (bucket, prefix)

    Raises:
        ConfigurationError: If the location cannot be parsed
    """
    if not location or not isinstance(location, str):
        raise ConfigurationError(f"Invalid storage location: {location!r}")

    if any(c.isspace() for c in location):
        raise ConfigurationError(f"Storage location must not contain whitespace: {location!r}")

    path = location
    if path.startswith(GCS_SCHEME):
        path = path[len(GCS_SCHEME):]
    elif "://" in path:
        raise ConfigurationError(f"Unsupported scheme in storage location: {location!r}")

    bucket, _, prefix = path.partition("/")
    if not _BUCKET_NAME_RE.match(bucket):
        raise ConfigurationError(f"Invalid bucket name {bucket!r} in location {location!r}")

    if prefix.startswith("/") or "//" in prefix:
        raise ConfigurationError(f"Invalid object prefix in location {location!r}")

    return bucket, prefix


class ValidatedModel(BaseModel):
    """
    Base for configuration-bearing models.

    Every validation failure, whether a type error or a failed check, is
    raised as ConfigurationError rather than pydantic's ValidationError.
    """

    @model_validator(mode="wrap")
    @classmethod
    def _raise_configuration_error(cls, data: Any, handler: Callable[[Any], Any]) -> Any:
        try:
            return handler(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {cls.__name__}: {e}") from e


class ListingType(str, Enum):
    """Whether nested prefixes are traversed."""

    DIRECTORY = "DIRECTORY"
    RECURSIVE = "RECURSIVE"


class ListingFilter(str, Enum):
    """Which kind of entries a listing keeps."""

    FILES = "FILES"
    DIRS = "DIRS"
    BOTH = "BOTH"


class Action(str, Enum):
    """What to do with detected objects once they are materialized."""

    NONE = "NONE"
    MOVE = "MOVE"
    DELETE = "DELETE"


class ObjectRef(BaseModel):
    """
    Reference to a remote object.

    Created fresh by every listing. ``uri`` is only set once the object has
    been materialized, through ``with_uri`` which returns a new record.
    """

    model_config = ConfigDict(frozen=True)

    container: str = Field(..., description="Bucket holding the object")
    name: str = Field(..., description="Object name within the bucket")
    uri: Optional[str] = Field(None, description="Handle of the materialized copy")
    is_directory: bool = Field(False, description="Directory marker or sub-prefix")
    size: Optional[int] = Field(None, description="Size in bytes")
    content_type: Optional[str] = None
    updated: Optional[datetime] = None

    @property
    def gcs_uri(self) -> str:
        return f"{GCS_SCHEME}{self.container}/{self.name}"

    @property
    def basename(self) -> str:
        return self.name.rstrip("/").rsplit("/", 1)[-1]

    def with_uri(self, uri: str) -> "ObjectRef":
        if self.uri is not None:
            raise ValueError(f"{self.gcs_uri} is already materialized at {self.uri}")
        return self.model_copy(update={"uri": uri})


class ListingRequest(ValidatedModel):
    """Parameters of a single listing call."""

    model_config = ConfigDict(frozen=True)

    location: str
    name_pattern: Optional[str] = None
    listing_type: ListingType = ListingType.DIRECTORY
    filter: ListingFilter = ListingFilter.BOTH

    @field_validator("name_pattern")
    @classmethod
    def _compile_pattern(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ConfigurationError(f"Invalid regular expression {value!r}: {e}") from e
        return value

    @property
    def recursive(self) -> bool:
        return self.listing_type == ListingType.RECURSIVE


class ActionSpec(ValidatedModel):
    """
    Post-detection action; MOVE requires a destination directory.

    ``source_location`` is the watched location. MOVE keeps each object's
    name relative to it, so nested objects keep their sub-prefix.
    """

    model_config = ConfigDict(frozen=True)

    action: Action = Action.NONE
    move_directory: Optional[str] = None
    source_location: Optional[str] = None

    @model_validator(mode="after")
    def _check_move_directory(self) -> "ActionSpec":
        if self.action == Action.MOVE:
            if not self.move_directory:
                raise ConfigurationError("moveDirectory is required when action is MOVE")
            parse_location(self.move_directory)
        if self.source_location is not None:
            parse_location(self.source_location)
        return self


class PollResult(BaseModel):
    """Output of a successful, non-empty poll cycle."""

    blobs: List[ObjectRef] = Field(default_factory=list)
