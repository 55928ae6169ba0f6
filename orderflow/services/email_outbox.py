"""Bounded in-process queue delivering notification emails in the background."""

import asyncio
import logging
from dataclasses import dataclass, field

from orderflow.api.middleware.error_handler import DispatchError
from orderflow.core.config import get_settings
from orderflow.services.email_service import EmailGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailJob:
    """One queued email, addressed to one or more recipients."""

    recipients: tuple[str, ...]
    subject: str
    html: str
    text: str | None = None
    context: dict[str, str] = field(default_factory=dict)


class EmailOutbox:
    """Queue plus a single worker task that drains it through the gateway.

    Callers enqueue and return immediately; delivery outcomes are visible in
    the logs only.
    """

    def __init__(self, gateway: EmailGateway | None = None, max_size: int = 1000) -> None:
        """Initialize the outbox.

        Args:
            gateway: Gateway used by the worker to send.
            max_size: Maximum queued jobs; further jobs are dropped.
        """
        self.gateway = gateway or EmailGateway()
        self._queue: asyncio.Queue[EmailJob] = asyncio.Queue(maxsize=max_size)
        self._worker_task: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, job: EmailJob) -> bool:
        """Queue a job without waiting.

        Returns:
            bool: False if the queue was full and the job was dropped.
        """
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning(
                "Email outbox full, dropping '%s' for %d recipient(s)",
                job.subject,
                len(job.recipients),
                extra=job.context,
            )
            return False
        return True

    async def start(self) -> None:
        """Start the background worker."""
        if self._worker_task is None:
            self._worker_task = asyncio.create_task(self._worker_loop())
            logger.info("Email outbox worker started")

    async def stop(self) -> None:
        """Stop the background worker. Queued jobs that were not sent are discarded."""
        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            self._worker_task = None
            logger.info("Email outbox worker stopped (%d job(s) unsent)", self.pending)

    async def drain(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def process_next(self) -> None:
        """Send the next queued job, logging any failure."""
        job = await self._queue.get()
        try:
            await self.gateway.send(list(job.recipients), job.subject, job.html, job.text)
        except Exception as e:
            error = DispatchError(f"Email delivery failed for '{job.subject}': {e}")
            logger.error(error.message, extra=job.context)
        finally:
            self._queue.task_done()

    async def _worker_loop(self) -> None:
        while True:
            await self.process_next()


# Global singleton instance
_email_outbox: EmailOutbox | None = None


def get_email_outbox() -> EmailOutbox:
    """Get or create the global email outbox instance."""
    global _email_outbox
    if _email_outbox is None:
        _email_outbox = EmailOutbox(max_size=get_settings().email_outbox_max_size)
    return _email_outbox


async def init_email_outbox() -> EmailOutbox:
    """Start the email outbox worker. Call at app startup."""
    outbox = get_email_outbox()
    await outbox.start()
    return outbox


async def shutdown_email_outbox() -> None:
    """Stop the email outbox worker. Call at app shutdown."""
    global _email_outbox
    if _email_outbox:
        await _email_outbox.stop()
        _email_outbox = None
