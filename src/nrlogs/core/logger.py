"""
Logger façade.

Per-level logging methods that gate on the configured severity, bound the
message size and append to the record buffer. Delivery happens later, in
the harvest scheduler, so a log call never waits on the network.
"""

import asyncio
import atexit
import os
import traceback
from typing import Any, Callable, Dict, Mapping, Optional

import structlog

from ..models.log_record import LogRecord
from .buffer import RecordBuffer
from .delivery import DeliveryResult, LogApiClient, Region
from .exceptions import InvalidLevel
from .harvester import DEFAULT_INTERVAL_MS, BatchDeliverer, HarvestScheduler
from .levels import DEFAULT_LEVEL, LevelLike, Severity, is_enabled, parse_level
from .metrics import MetricsCollector
from .truncate import truncate

logger = structlog.get_logger(__name__)

LICENSE_KEY_ENV = "NEW_RELIC_LICENSE_KEY"

NO_STACK_TRACE = "No stack trace"

LinkingMetadata = Callable[[], Mapping[str, Any]]


def error_attributes(err: BaseException) -> Dict[str, Any]:
    """
    Enrichment attributes describing an exception.

    The stack is only available once the exception has been raised.
    """
    if err.__traceback__ is not None:
        stack = truncate("".join(traceback.format_exception(type(err), err, err.__traceback__)))
    else:
        stack = NO_STACK_TRACE

    return {
        "exception": True,
        "error.message": truncate(str(err)),
        "error.class": type(err).__name__ or "Error",
        "error.stack": stack,
    }


class ApiLogger:
    """
    Logger that ships its records to the New Relic Log API.

    Records are buffered in memory and delivered in batches by a
    HarvestScheduler, on a timer, on ``flush()`` and once on shutdown.
    Delivery is best-effort: a failed batch is logged and dropped.

    Use it as an async context manager to guarantee the final flush::

        async with ApiLogger(attributes={"app": "checkout"}) as log:
            log.info("order placed", {"order_id": 42})
    """

    def __init__(
        self,
        license_key: Optional[str] = None,
        attributes: Optional[Mapping[str, Any]] = None,
        use_eu: bool = False,
        level: LevelLike = DEFAULT_LEVEL,
        debug: bool = False,
        harvest: bool = True,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        endpoint: Optional[str] = None,
        timeout_seconds: float = 30.0,
        linking_metadata: Optional[LinkingMetadata] = None,
        metrics: Optional[MetricsCollector] = None,
        client: Optional[BatchDeliverer] = None,
        exit_hook: bool = True,
    ):
        self._debug = debug
        self._level = parse_level(level)
        self.license_key = license_key or os.environ.get(LICENSE_KEY_ENV) or None
        self.attributes = dict(attributes or {})
        self.region = Region.from_flag(use_eu)
        self.linking_metadata = linking_metadata
        self.metrics = metrics
        self.buffer = RecordBuffer()

        if client is None and self.license_key:
            client = LogApiClient(
                license_key=self.license_key,
                region=self.region,
                endpoint=endpoint,
                timeout_seconds=timeout_seconds,
                metrics=metrics,
            )
        elif client is None:
            logger.warning("No New Relic license key specified. Logs will not be sent.")
        self.client = client

        self.harvester = HarvestScheduler(
            buffer=self.buffer,
            client=client,
            common_attributes=self.attributes,
            interval_ms=interval_ms,
            enabled=harvest,
            debug=debug,
            metrics=metrics,
        )

        self._exit_hook_registered = exit_hook
        if exit_hook:
            atexit.register(self._exit_handler)

        self.harvester.start()

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> "ApiLogger":
        """Build a logger from ShipperSettings; keyword overrides win."""
        options: Dict[str, Any] = {
            "license_key": settings.license_key,
            "attributes": settings.attributes,
            "use_eu": settings.use_eu,
            "level": settings.level,
            "debug": settings.debug,
            "harvest": settings.harvest,
            "interval_ms": settings.interval_ms,
            "endpoint": settings.endpoint,
            "timeout_seconds": settings.timeout_seconds,
        }
        options.update(overrides)
        return cls(**options)

    @property
    def level(self) -> Severity:
        return self._level

    @property
    def pending(self) -> int:
        """Records buffered since the last harvest."""
        return len(self.buffer)

    def set_level(self, level: LevelLike) -> None:
        """Change the threshold; an unknown level raises InvalidLevel and changes nothing."""
        self._level = parse_level(level)

    def is_level_enabled(self, level: LevelLike) -> bool:
        try:
            return is_enabled(self._level, level)
        except InvalidLevel:
            logger.warning("Tried to check invalid log level", level=str(level))
            return False

    def log(self, level: LevelLike, message: Any, attributes: Optional[Mapping[str, Any]] = None) -> None:
        """
        Append a record without checking the threshold.

        This is the entry point for logging-framework bridges that have
        already applied their own level filtering. The record is buffered
        before this returns.
        """
        severity = parse_level(level)
        record_attributes = dict(attributes or {})

        if self.linking_metadata is not None:
            try:
                record_attributes.update(self.linking_metadata())
            except Exception as e:
                logger.warning("Linking metadata unavailable", error=str(e))

        self.buffer.append(LogRecord(
            level=severity,
            message=truncate(message),
            attributes=record_attributes,
        ))

        if self.metrics:
            self.metrics.record_logged(severity.value)
            self.metrics.update_buffer(len(self.buffer))

        if not self.harvester.running:
            self.harvester.start()

    def _log_at(self, level: Severity, message: Any, attributes: Optional[Mapping[str, Any]]) -> None:
        if not is_enabled(self._level, level):
            if self.metrics:
                self.metrics.record_suppressed(level.value)
            return
        self.log(level, message, attributes)

    def error(
        self,
        message: Any,
        err: Optional[BaseException] = None,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if not is_enabled(self._level, Severity.ERROR):
            if self.metrics:
                self.metrics.record_suppressed(Severity.ERROR.value)
            return

        record_attributes = dict(attributes or {})
        if err is not None:
            record_attributes.update(error_attributes(err))
        self.log(Severity.ERROR, message, record_attributes)

    def warn(self, message: Any, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self._log_at(Severity.WARN, message, attributes)

    def info(self, message: Any, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self._log_at(Severity.INFO, message, attributes)

    def http(self, message: Any, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self._log_at(Severity.HTTP, message, attributes)

    def verbose(self, message: Any, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self._log_at(Severity.VERBOSE, message, attributes)

    def debug(self, message: Any, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self._log_at(Severity.DEBUG, message, attributes)

    def silly(self, message: Any, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self._log_at(Severity.SILLY, message, attributes)

    def emit(
        self,
        level: LevelLike,
        message: Any,
        attributes: Optional[Mapping[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """LogSink entry point: route to the gated method for ``level``."""
        severity = parse_level(level)
        if severity is Severity.ERROR:
            self.error(message, error, attributes)
        else:
            self._log_at(severity, message, attributes)

    def start(self) -> bool:
        """Start the harvest timer on the running event loop."""
        return self.harvester.start()

    async def flush(self) -> DeliveryResult:
        """Harvest now and return the delivery outcome."""
        return await self.harvester.flush()

    async def shutdown(self) -> Optional[DeliveryResult]:
        """Stop harvesting and run the final flush; later calls return None."""
        if self._exit_hook_registered:
            # Let the process forget about loggers that already shut down
            atexit.unregister(self._exit_handler)
            self._exit_hook_registered = False
        return await self.harvester.shutdown()

    async def __aenter__(self) -> "ApiLogger":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    def _exit_handler(self) -> None:
        """Process-exit hook; the harvester's exit flag keeps it to one flush."""
        # atexit is running its callbacks, leave its registry alone
        self._exit_hook_registered = False
        if self.harvester.exited:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # The interpreter is shutting down: no thread pool for DNS lookups
            if isinstance(self.client, LogApiClient):
                self.client.prepare_for_exit()
            asyncio.run(self.shutdown())
        else:
            loop.create_task(self.shutdown())
