"""
APNs feedback channel.

HTTP/2 APNs reports dead tokens inline, as 410 Unregistered responses,
instead of through a separate feedback socket. The connection hands those
reports to this channel, which releases them in batches on a fixed
interval so the device store is pruned in one call per batch.

Events:
- feedback: FeedbackReceived(records) with the whole pending batch
- feedbackError: FeedbackProtocolError for a malformed report
- error: FeedbackConnectionError when a polling cycle or a batch listener fails
"""

import asyncio
import logging
import threading
from typing import List, Optional, Union

from app.services.push.constants import DEFAULT_FEEDBACK_INTERVAL_SECONDS
from app.services.push.emitter import EventEmitter
from app.services.push.events import (
    FeedbackConnectionError,
    FeedbackProtocolError,
    FeedbackReceived,
)
from app.services.push.models import Device, FeedbackRecord

logger = logging.getLogger(__name__)


class APNSFeedback(EventEmitter):
    """
    Batches invalid-token reports and publishes them as feedback events.

    Batches released by the polling task reach listeners on a worker
    thread of the default executor.

    Usage:
        feedback = APNSFeedback(interval=300)
        feedback.subscribe(handler)
        feedback.start()            # inside the running event loop
        feedback.report(device, timestamp_ms)
        ...
        await feedback.stop()       # flushes whatever is still pending
    """

    def __init__(self, interval: float = DEFAULT_FEEDBACK_INTERVAL_SECONDS):
        super().__init__()
        self.interval = interval
        self._pending: List[FeedbackRecord] = []
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def report(
        self,
        device: Union[Device, str],
        timestamp: Optional[Union[int, float, str]] = None,
    ) -> None:
        """
        Queue a device that APNs reported as unregistered.

        Args:
            device: Device or raw token
            timestamp: Milliseconds since epoch from the APNs response body
        """
        try:
            if not isinstance(device, Device):
                device = Device(device)
            if timestamp is not None:
                timestamp = float(timestamp)
            record = FeedbackRecord.from_apns_timestamp(device, timestamp)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            self.emit(FeedbackProtocolError(error=e))
            return

        with self._lock:
            self._pending.append(record)
            pending = len(self._pending)
        logger.debug(
            "Queued device for feedback",
            extra={"device_token": str(device)[:20] + "...", "pending": pending},
        )

    def poll(self) -> int:
        """
        Publish pending records as a single batch.

        A listener that raises while the batch is delivered is reported as
        an error event.

        Returns:
            Number of records published
        """
        with self._lock:
            if not self._pending:
                return 0
            batch, self._pending = self._pending, []

        for error in self.deliver(FeedbackReceived(records=batch)):
            self.emit(FeedbackConnectionError(error=error))
        return len(batch)

    def start(self) -> None:
        """Start periodic polling on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._poll_loop())
        logger.info(
            "APNs feedback polling started",
            extra={"interval_seconds": self.interval},
        )

    async def stop(self) -> None:
        """Stop polling and flush any pending records."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await asyncio.get_running_loop().run_in_executor(None, self.poll)

    async def _poll_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self.interval)
            try:
                # Pruning listeners do blocking database work
                await loop.run_in_executor(None, self.poll)
            except Exception as e:
                self.emit(FeedbackConnectionError(error=e))
