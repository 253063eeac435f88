"""
nrlogs - in-process log shipper for the New Relic Log API

Buffers structured log records in memory and forwards them in gzip
compressed batches on a timer, on demand and once at shutdown.
"""

__version__ = "0.1.0"

from .core.delivery import DeliveryResult, Region
from .core.exceptions import (
    DeliveryError,
    InvalidAck,
    InvalidLevel,
    MissingLicenseKey,
    TransportError,
    UnexpectedStatus,
)
from .core.levels import LEVEL_NAMES, Severity, is_enabled, rank
from .core.logger import ApiLogger
from .core.truncate import truncate
from .adapters.stdlib import ApiLogHandler, StdlibSink

__all__ = [
    "ApiLogger",
    "ApiLogHandler",
    "StdlibSink",
    "Severity",
    "LEVEL_NAMES",
    "Region",
    "DeliveryResult",
    "is_enabled",
    "rank",
    "truncate",
    "DeliveryError",
    "InvalidAck",
    "InvalidLevel",
    "MissingLicenseKey",
    "TransportError",
    "UnexpectedStatus",
]
