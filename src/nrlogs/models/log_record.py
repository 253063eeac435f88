"""
Log record and Log API acknowledgment models.

- LogRecord: one buffered log call, immutable once created
- Batch: ordered snapshot of records taken at a single harvest
- LogApiAck: the 202 body returned by the Log API
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..core.levels import Severity


def now_millis() -> int:
    """Current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class LogRecord:
    """A single log call waiting in the buffer."""

    level: Severity
    message: Any
    attributes: Mapping[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=now_millis)

    def __post_init__(self) -> None:
        # Detach from the caller's dict so later mutation cannot leak in
        object.__setattr__(self, "attributes", dict(self.attributes))

    def to_wire(self) -> Dict[str, Any]:
        """Render the record as one entry of the ``logs`` array."""
        message = self.message if isinstance(self.message, str) else json.dumps(self.message, default=str)
        attributes: Dict[str, Any] = {"log_level": self.level.value}
        attributes.update(self.attributes)
        return {
            "timestamp": self.timestamp,
            "message": message,
            "attributes": attributes,
        }


Batch = Tuple[LogRecord, ...]


class LogApiAck(BaseModel):
    """
    Acknowledgment returned by the Log API on success.

    Only the request identifier is required; it is kept for diagnostics.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    request_id: str = Field(
        alias="requestId",
        min_length=1,
        description="Identifier the Log API assigned to the accepted payload",
    )


def build_payload(batch: Batch, common_attributes: Optional[Mapping[str, Any]] = None) -> list:
    """Build the one-element list the Log API expects for a batch."""
    return [
        {
            "common": {"attributes": dict(common_attributes or {})},
            "logs": [record.to_wire() for record in batch],
        }
    ]
