"""
Known Agents Middleware - Visit Reporting Service
=================================================

What:  Sends visit events to the Known Agents agent analytics API in the
       background.
How:   A bounded asyncio.Queue feeds a fixed number of worker tasks sharing
       one httpx.AsyncClient. `submit()` only enqueues, so the request path
       never waits on the analytics API.
Who:   The middleware submits one event per successfully handled request.
When:  Workers start when the module is provisioned and are cancelled when
       the host shuts down.

Delivery is best effort:
    - Queue full: the event is dropped and a warning logged
    - Send failure: logged, never retried, never surfaced to the client
    - Shutdown: events still queued or in flight are abandoned

Resource bounds:
    report_workers     concurrent outbound requests (default: 4)
    report_queue_size  events waiting for a worker (default: 1000)
"""

import asyncio
import logging
from typing import List, Optional

import httpx

from knownagents.config import settings
from knownagents.exceptions import VisitReportError
from knownagents.schemas.knownagents import VisitEvent
from knownagents.services.robots_txt import auth_headers

logger = logging.getLogger(__name__)


class VisitReporter:
    """
    Background visit event sender.

    Args:
        access_token: Resolved Known Agents access token
        endpoint:     Analytics endpoint URL (defaults to settings)
        timeout:      Per-request timeout in seconds (defaults to settings)
        workers:      Number of worker tasks (defaults to settings)
        queue_size:   Maximum queued events (defaults to settings)
        transport:    Optional httpx transport, used by tests to capture requests
    """

    def __init__(
        self,
        access_token: str,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        workers: Optional[int] = None,
        queue_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._access_token = access_token
        self.endpoint = endpoint or settings.analytics_endpoint
        self.timeout = timeout if timeout is not None else settings.analytics_timeout
        self.workers = workers or settings.report_workers
        self.queue_size = queue_size or settings.report_queue_size
        self._transport = transport

        self._client: Optional[httpx.AsyncClient] = None
        self._queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def pending(self) -> int:
        """Events waiting for a worker."""
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        """Create the HTTP client and spawn the workers. Idempotent."""
        if self.running:
            return
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._tasks = [
            asyncio.create_task(self._worker(n), name=f"knownagents-report-{n}")
            for n in range(self.workers)
        ]
        logger.info(
            "Visit reporter started with %d workers (queue size %d)",
            self.workers,
            self.queue_size,
        )

    async def join(self) -> None:
        """Wait until every queued event has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def aclose(self) -> None:
        """Cancel the workers and close the HTTP client. Queued events are dropped."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._queue is not None and self._queue.qsize():
            logger.info("Abandoning %d queued visit events", self._queue.qsize())

        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("Visit reporter stopped")

    # ── Submission ────────────────────────────────────────────────────────

    def submit(self, event: VisitEvent) -> bool:
        """
        Queue a visit event without waiting.

        Called from the request path, once per successfully handled request.

        Why put_nowait instead of await put():
            A request must never wait on the analytics API. When the workers
            fall behind and the queue fills up, the newest event is dropped
            and a warning logged.

        Returns:
            True if the event was queued, False if it was dropped.
        """
        if self._queue is None or not self.running:
            logger.warning("Visit reporter is not running; dropping visit event")
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Visit report queue full (%d events); dropping visit event for %s",
                self.queue_size,
                event.request_path,
            )
            return False
        return True

    async def send(self, event: VisitEvent) -> None:
        """
        POST one visit event to the analytics endpoint.

        How:
            1. Serialize the event with pydantic (field names match the API)
            2. POST with bearer auth on the shared AsyncClient
            3. Treat any non-2xx status as a failure

        Why no retry:
            Visit events are best-effort telemetry. A failed event is logged
            by the worker and forgotten; retrying would let one slow API call
            hold a worker while the queue overflows.

        Raises:
            VisitReportError: on encoding failure, transport failure or a
                non-2xx response.
        """
        if self._client is None:
            raise VisitReportError("Visit reporter is not running")

        try:
            body = event.model_dump_json()
        except ValueError as e:
            logger.error("Error marshaling visitor event: %s", str(e))
            raise VisitReportError(f"Error marshaling visitor event: {e}") from e

        logger.debug("Visit event payload constructed: %s", body)

        try:
            response = await self._client.post(
                self.endpoint,
                content=body,
                headers=auth_headers(self._access_token),
            )
        except httpx.HTTPError as e:
            raise VisitReportError(
                message=f"Error sending visitor event: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        logger.debug("Visitor event sent, status=%d", response.status_code)

        if not response.is_success:
            raise VisitReportError(
                message=f"Visitor event rejected with status {response.status_code}",
                status_code=response.status_code,
            )

    async def _worker(self, n: int) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            try:
                await self.send(event)
            except VisitReportError as e:
                logger.warning("[worker %d] %s", n, e.message)
            except Exception as e:
                logger.error(
                    "[worker %d] Unexpected error reporting visit: %s",
                    n,
                    str(e),
                    exc_info=True,
                )
            finally:
                self._queue.task_done()
