"""
Prometheus metrics collection.

In-memory counters for the log pipeline: what was logged, what was
harvested and how each delivery to the Log API ended.
"""

from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, Info

from .. import __version__


class MetricsCollector:
    """
    Centralized metrics collection for nrlogs.

    Pass a dedicated registry when more than one collector lives in the same
    process, prometheus_client refuses duplicate metric names per registry.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

        self.service_info = Info(
            "nrlogs_shipper",
            "nrlogs shipper information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": __version__,
            "service": "nrlogs",
        })

        # Producer side
        self.records_logged_total = Counter(
            "nrlogs_records_logged_total",
            "Total log records appended to the buffer",
            ["level"],
            registry=self.registry,
        )

        self.records_suppressed_total = Counter(
            "nrlogs_records_suppressed_total",
            "Total log calls dropped by the severity threshold",
            ["level"],
            registry=self.registry,
        )

        self.buffer_records = Gauge(
            "nrlogs_buffer_records",
            "Records currently waiting for the next harvest",
            registry=self.registry,
        )

        # Harvest side
        self.harvests_total = Counter(
            "nrlogs_harvests_total",
            "Total harvest cycles",
            ["trigger"],
            registry=self.registry,
        )

        self.batch_size_records = Histogram(
            "nrlogs_batch_size_records",
            "Number of records per harvested batch",
            buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000, 5000],
            registry=self.registry,
        )

        # Delivery side
        self.deliveries_total = Counter(
            "nrlogs_deliveries_total",
            "Total deliveries to the Log API by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.records_delivered_total = Counter(
            "nrlogs_records_delivered_total",
            "Total records acknowledged by the Log API",
            registry=self.registry,
        )

        self.records_lost_total = Counter(
            "nrlogs_records_lost_total",
            "Total records dropped because their delivery failed",
            registry=self.registry,
        )

        self.log_api_responses_total = Counter(
            "nrlogs_log_api_responses_total",
            "Log API responses by status code",
            ["status_code"],
            registry=self.registry,
        )

        self.delivery_duration = Histogram(
            "nrlogs_delivery_duration_seconds",
            "Log API request duration in seconds",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )


    def record_logged(self, level: str) -> None:
        self.records_logged_total.labels(level=level).inc()

    def record_suppressed(self, level: str) -> None:
        self.records_suppressed_total.labels(level=level).inc()

    def update_buffer(self, depth: int) -> None:
        self.buffer_records.set(depth)

    def record_harvest(self, trigger: str, batch_size: int) -> None:
        """Record one harvest cycle; empty cycles do not touch the histogram."""
        self.harvests_total.labels(trigger=trigger).inc()
        if batch_size > 0:
            self.batch_size_records.observe(batch_size)

    def record_delivery(
        self,
        outcome: str,
        records: int,
        duration_seconds: float,
        status_code: Optional[int] = None,
    ) -> None:
        """Record the outcome of a single Log API delivery."""
        self.deliveries_total.labels(outcome=outcome).inc()
        self.delivery_duration.observe(duration_seconds)

        if status_code is not None:
            self.log_api_responses_total.labels(status_code=str(status_code)).inc()

        if outcome == "success":
            self.records_delivered_total.inc(records)
        else:
            self.records_lost_total.inc(records)
