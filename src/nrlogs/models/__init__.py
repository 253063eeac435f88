"""
Data models package.

Contains:
- Buffered log records and batches
- The Log API wire payload builder
- The Log API acknowledgment schema
"""

from .log_record import Batch, LogApiAck, LogRecord, build_payload, now_millis

__all__ = [
    "Batch",
    "LogApiAck",
    "LogRecord",
    "build_payload",
    "now_millis",
]
