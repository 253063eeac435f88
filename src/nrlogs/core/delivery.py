"""
Delivery client for the New Relic Log API.

Features:
- Serializes a batch into the Log API payload
- Streams the JSON through a gzip compressor
- Posts it with aiohttp and validates the 202 acknowledgment
- Never raises: every failure becomes a failed DeliveryResult

Failed batches are not retried or requeued.
"""

import asyncio
import json
import socket
import time
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import aiohttp
import structlog
from aiohttp.abc import AbstractResolver
from pydantic import ValidationError

from ..models.log_record import Batch, LogApiAck, build_payload
from .exceptions import DeliveryError, InvalidAck, TransportError, UnexpectedStatus
from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

GZIP_WBITS = 16 + zlib.MAX_WBITS


class Region(str, Enum):
    """Log API regions and their ingestion endpoints."""

    US = "US"
    EU = "EU"

    @property
    def endpoint(self) -> str:
        if self is Region.EU:
            return "https://log-api.eu.newrelic.com/log/v1"
        return "https://log-api.newrelic.com/log/v1"

    @classmethod
    def from_flag(cls, use_eu: bool) -> "Region":
        return cls.EU if use_eu else cls.US


@dataclass
class DeliveryResult:
    """Outcome of one harvest."""
    success: bool
    records_sent: int
    request_id: Optional[str] = None
    error: Optional[DeliveryError] = None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error else None


def iter_payload_chunks(batch: Batch, common_attributes: Optional[Mapping[str, Any]] = None) -> Iterator[bytes]:
    """Yield the JSON payload for a batch as UTF-8 chunks."""
    encoder = json.JSONEncoder(default=str)
    for chunk in encoder.iterencode(build_payload(batch, common_attributes)):
        yield chunk.encode("utf-8")


def compress(chunks: Iterator[bytes]) -> bytes:
    """Gzip a stream of chunks."""
    compressor = zlib.compressobj(wbits=GZIP_WBITS)
    parts = [compressor.compress(chunk) for chunk in chunks]
    parts.append(compressor.flush())


class InlineResolver(AbstractResolver):
    """
    Resolver that calls getaddrinfo on the event loop's own thread.

    aiohttp's default resolver hands lookups to the loop's thread pool, and
    no pool can be started once the interpreter has begun shutting down.
    The final flush from the exit hook resolves through this one instead.
    """

    async def resolve(self, host: str, port: int = 0, family: int = socket.AF_INET) -> List[Dict[str, Any]]:
        infos = socket.getaddrinfo(host, port, family=family, type=socket.SOCK_STREAM)
        return [
            {
                "hostname": host,
                "host": address[0],
                "port": address[1],
                "family": info_family,
                "proto": proto,
                "flags": socket.AI_NUMERICHOST | socket.AI_NUMERICSERV,
            }
            for info_family, _, proto, _, address in infos
        ]

    async def close(self) -> None:
        pass


class LogApiClient:
    """
    HTTP client for the Log API.

    A session is opened per delivery, so the client is not tied to the
    event loop it was created on.
    """

    def __init__(
        self,
        license_key: str,
        region: Region = Region.US,
        endpoint: Optional[str] = None,
        timeout_seconds: float = 30.0,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.license_key = license_key
        self.region = region
        self.endpoint = endpoint or region.endpoint
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics
        self.inline_dns = False

    @property
    def headers(self) -> dict:
        return {
            "X-License-Key": self.license_key,
            "Accept": "*/*",
            "Content-Type": "application/json",
            "Content-Encoding": "gzip",
        }

    def prepare_for_exit(self) -> None:
        """Resolve hosts without a thread pool from now on; used by the exit hook."""
        self.inline_dns = True

    def encode(self, batch: Batch, common_attributes: Optional[Mapping[str, Any]] = None) -> bytes:
        """Serialize and compress a batch into a request body."""
        return compress(iter_payload_chunks(batch, common_attributes))

    async def deliver(self, batch: Batch, common_attributes: Optional[Mapping[str, Any]] = None) -> DeliveryResult:
        """
        Ship a batch to the Log API.

        Args:
            batch: Records taken from the buffer
            common_attributes: Attributes shared by every record in the batch

        Returns:
            DeliveryResult; failures are logged as warnings and never raised
        """
        started = time.monotonic()

        try:
            body = self.encode(batch, common_attributes)
        except Exception as e:
            error = DeliveryError(
                f"Log API payload failure: {e}",
                error_code="payload_error",
                details={"error_type": type(e).__name__},
            )
            return self._failed(error, batch, started)

        try:
            ack, status_code = await self._post(body)
        except DeliveryError as e:
            return self._failed(e, batch, started)

        logger.debug(
            "Log API accepted batch",
            request_id=ack.request_id,
            records=len(batch),
            payload_bytes=len(body),
        )
        self._record("success", len(batch), started, status_code)
        return DeliveryResult(success=True, records_sent=len(batch), request_id=ack.request_id)

    async def _post(self, body: bytes) -> Tuple[LogApiAck, int]:
        """Send the compressed body and validate the acknowledgment."""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        connector = aiohttp.TCPConnector(resolver=InlineResolver()) if self.inline_dns else None

        try:
            async with aiohttp.ClientSession(timeout=timeout, connector=connector) as session:
                async with session.post(self.endpoint, data=body, headers=self.headers) as response:
                    raw = await response.read()
                    status = response.status
        except asyncio.TimeoutError as e:
            raise TransportError(
                "Log API request timed out",
                details={"timeout_seconds": self.timeout_seconds},
            ) from e
        except (aiohttp.ClientError, OSError, RuntimeError) as e:
            # RuntimeError: the loop could not hand DNS to its thread pool
            raise TransportError(
                f"Log API request failed: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        if status != 202:
            raise UnexpectedStatus(status, raw.decode("utf-8", errors="replace"))

        try:
            ack = LogApiAck.model_validate_json(raw)
        except ValidationError as e:
            raise InvalidAck(
                f"Invalid response from Log API: {e.error_count()} validation error(s)",
                details={"status": status, "body": raw[:256].decode("utf-8", errors="replace")},
            ) from e

        return ack, status

    def _failed(self, error: DeliveryError, batch: Batch, started: float) -> DeliveryResult:
        logger.warning(
            "Log API delivery failed",
            error=str(error),
            error_code=error.error_code,
            records_lost=len(batch),
        )
        self._record(error.error_code, len(batch), started, error.details.get("status"))
        return DeliveryResult(success=False, records_sent=0, error=error)

    def _record(self, outcome: str, records: int, started: float, status_code: Optional[int]) -> None:
        if self.metrics:
            self.metrics.record_delivery(
                outcome=outcome,
                records=records,
                duration_seconds=time.monotonic() - started,
                status_code=status_code,
            )
