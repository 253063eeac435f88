"""
Harvest scheduler.

Drives periodic and on-demand harvests of the record buffer and the single
flush that runs on shutdown.
"""

import asyncio
import threading
from typing import Any, Mapping, Optional, Protocol, Set

import structlog

from ..models.log_record import Batch
from .buffer import RecordBuffer
from .delivery import DeliveryResult
from .exceptions import MissingLicenseKey
from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

DEFAULT_INTERVAL_MS = 15000


class BatchDeliverer(Protocol):
    async def deliver(self, batch: Batch, common_attributes: Optional[Mapping[str, Any]] = None) -> DeliveryResult:
        ...


class HarvestScheduler:
    """
    Background harvester for a RecordBuffer.

    Features:
    - Recurring timer (optional) that never waits on a delivery
    - Manual flush at any time
    - One-shot shutdown flush guarded by an exit flag

    Harvests may overlap. Each one takes its own disjoint batch.
    """

    def __init__(
        self,
        buffer: RecordBuffer,
        client: Optional[BatchDeliverer],
        common_attributes: Optional[Mapping[str, Any]] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        enabled: bool = True,
        debug: bool = False,
        metrics: Optional[MetricsCollector] = None,
    ):
        if interval_ms <= 0:
            raise ValueError("Harvest interval must be a positive number of milliseconds")

        self.buffer = buffer
        self.client = client
        self.common_attributes = dict(common_attributes or {})
        self.interval_ms = interval_ms
        self.enabled = enabled
        self.debug = debug
        self.metrics = metrics

        self._task: Optional["asyncio.Task[None]"] = None
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()
        self._inflight: Set["asyncio.Task[DeliveryResult]"] = set()
        self._exit_flag = False

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def exited(self) -> bool:
        return self._exit_flag

    def start(self) -> bool:
        """
        Start the recurring timer.

        Inside a running event loop the timer is a task on that loop.
        Otherwise it runs on a private loop in a daemon thread, so
        synchronous hosts and worker threads still get periodic harvests
        and the process never waits on it.

        Returns:
            True if the timer is running after the call
        """
        if not self.enabled or self._exit_flag:
            return False

        with self._start_lock:
            if self.running:
                return True

            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                self._start_thread()
            else:
                self._task = loop.create_task(self._run_timer())

        logger.debug("Harvest timer started", interval_ms=self.interval_ms, threaded=self._thread is not None)
        return True

    def _start_thread(self) -> None:
        loop = asyncio.new_event_loop()
        self._task = loop.create_task(self._run_timer())
        self._thread = threading.Thread(
            target=self._run_thread_loop,
            args=(loop, self._task),
            name="nrlogs-harvester",
            daemon=True,
        )
        self._thread.start()

    def _run_thread_loop(self, loop: asyncio.AbstractEventLoop, task: "asyncio.Task[None]") -> None:
        """Thread body: run the timer, then let its deliveries finish."""
        asyncio.set_event_loop(loop)
        try:
            try:
                loop.run_until_complete(task)
            except asyncio.CancelledError:
                pass
            pending = [t for t in self._inflight if t.get_loop() is loop]
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            asyncio.set_event_loop(None)
            loop.close()

    def stop(self) -> None:
        """Cancel the timer. Deliveries already in flight keep running."""
        task, self._task = self._task, None
        self._thread = None
        if task is None or task.done():
            return

        loop = task.get_loop()
        if loop.is_closed():
            return
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        if current is loop:
            task.cancel()
            return
        try:
            loop.call_soon_threadsafe(task.cancel)
        except RuntimeError:
            # The harvester thread closed its loop in the meantime
            pass

    async def _run_timer(self) -> None:
        """Fire a harvest every interval."""
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break

            task = asyncio.ensure_future(self.harvest(trigger="timer"))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def harvest(self, trigger: str = "manual") -> DeliveryResult:
        """Take everything in the buffer and deliver it as one batch."""
        batch = self.buffer.take_all()

        if self.metrics:
            self.metrics.record_harvest(trigger, len(batch))
            self.metrics.update_buffer(len(self.buffer))

        if not batch:
            if self.debug:
                logger.info("No log records to send. Returning early.", trigger=trigger)
            return DeliveryResult(success=True, records_sent=0)

        if self.client is None:
            error = MissingLicenseKey()
            if self.debug:
                logger.info("Dropping log records, no license key", records=len(batch), trigger=trigger)
            return DeliveryResult(success=False, records_sent=0, error=error)

        if self.debug:
            logger.info("Sending log records", records=len(batch), trigger=trigger)

        return await self.client.deliver(batch, self.common_attributes)

    async def flush(self) -> DeliveryResult:
        return await self.harvest(trigger="manual")

    async def shutdown(self) -> Optional[DeliveryResult]:
        """
        Stop the timer and run the final harvest, once.

        Returns:
            The final DeliveryResult, or None if shutdown already ran
        """
        if self._exit_flag:
            return None
        self._exit_flag = True

        self.stop()
        result = await self.harvest(trigger="shutdown")

        if result.records_sent or result.error:
            logger.info(
                "Shutdown flush completed",
                success=result.success,
                records_sent=result.records_sent,
                error=result.error_message,
            )
        return result
