"""
Bridge from the standard library ``logging`` package.

ApiLogHandler routes stdlib log records into an ApiLogger, StdlibSink
exposes a stdlib logger through the LogSink contract.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from ..core.levels import LevelLike, Severity, from_stdlib_level, parse_level, to_stdlib_level
from ..core.logger import ApiLogger, error_attributes

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

# The shipper's own diagnostics must not be shipped back through itself
_INTERNAL_LOGGER_PREFIX = "nrlogs"


def record_attributes(record: logging.LogRecord) -> Dict[str, Any]:
    """Collect the ``extra`` fields of a stdlib record, plus its logger name."""
    attributes = {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }
    attributes["logger.name"] = record.name
    return attributes


class ApiLogHandler(logging.Handler):
    """
    logging.Handler that enqueues records on an ApiLogger.

    Level filtering is the handler's (and its logger's) job, so records are
    passed to ``ApiLogger.log`` which does not gate again. Any keyword
    options not consumed here build the handler's own ApiLogger.
    """

    def __init__(
        self,
        level: int = logging.NOTSET,
        api_logger: Optional[ApiLogger] = None,
        **options: Any,
    ) -> None:
        super().__init__(level)
        self.api_logger = api_logger if api_logger is not None else ApiLogger(level=Severity.SILLY, **options)

    def emit(self, record: logging.LogRecord) -> None:
        if record.name == _INTERNAL_LOGGER_PREFIX or record.name.startswith(_INTERNAL_LOGGER_PREFIX + "."):
            return

        try:
            attributes = record_attributes(record)
            if record.exc_info and record.exc_info[1] is not None:
                attributes.update(error_attributes(record.exc_info[1]))

            self.api_logger.log(from_stdlib_level(record.levelno), record.getMessage(), attributes)
        except Exception:
            self.handleError(record)


class StdlibSink:
    """LogSink backed by a stdlib logger whose handler ships to the Log API."""

    def __init__(self, stdlib_logger: logging.Logger, handler: ApiLogHandler) -> None:
        self.logger = stdlib_logger
        self.handler = handler
        if handler not in stdlib_logger.handlers:
            stdlib_logger.addHandler(handler)
        stdlib_logger.propagate = False

    @classmethod
    def create(cls, name: str, level: LevelLike = Severity.INFO, **options: Any) -> "StdlibSink":
        """Build a dedicated stdlib logger wired to a fresh ApiLogHandler."""
        stdlib_logger = logging.getLogger(name)
        sink = cls(stdlib_logger, ApiLogHandler(**options))
        sink.set_level(level)
        return sink

    @property
    def api_logger(self) -> ApiLogger:
        return self.handler.api_logger

    def set_level(self, level: LevelLike) -> None:
        self.logger.setLevel(to_stdlib_level(level))

    def is_level_enabled(self, level: LevelLike) -> bool:
        try:
            return self.logger.isEnabledFor(to_stdlib_level(level))
        except ValueError:
            return False

    def emit(
        self,
        level: LevelLike,
        message: Any,
        attributes: Optional[Mapping[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        severity = parse_level(level)
        exc_info = (type(error), error, error.__traceback__) if error is not None else None
        # LogRecord refuses extras that shadow its own attributes
        extra = {
            (key + "_" if key in _RESERVED_ATTRS else key): value
            for key, value in (attributes or {}).items()
        }
        self.logger.log(to_stdlib_level(severity), message, extra=extra, exc_info=exc_info)
