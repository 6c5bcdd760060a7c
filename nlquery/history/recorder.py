"""
History Recorder

Fire-and-forget delivery of QueryHistoryRecords to a QueryHistoryStore.

Records go into a bounded asyncio.Queue drained by one background task.
``record`` never blocks and never raises: a full queue drops the record,
and store failures or slow writes are logged and skipped. Nothing here
can change the outcome of the request that produced the record.
"""

import asyncio
import contextlib
import logging

from nlquery.history.store import QueryHistoryStore
from nlquery.models import QueryHistoryRecord

logger = logging.getLogger(__name__)


class HistoryRecorder:
    """Background writer for query history."""

    def __init__(
        self,
        store: QueryHistoryStore,
        queue_size: int = 1000,
        write_timeout: float = 3.0,
    ):
        self.store = store
        self.write_timeout = write_timeout
        self._queue: asyncio.Queue[QueryHistoryRecord] = asyncio.Queue(maxsize=queue_size)
        self._worker: asyncio.Task | None = None
        self.dropped = 0

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the background worker on the running event loop."""
        if self.is_running:
            return
        self._worker = asyncio.get_running_loop().create_task(
            self._run(), name="history-recorder"
        )
        logger.debug("History recorder started")

    def record(self, record: QueryHistoryRecord) -> bool:
        """Queue a record for writing. Returns False if it was dropped."""
        try:
            if not self.is_running:
                self.start()
            self._queue.put_nowait(record)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                f"[{record.request_id}] History queue full, dropping record",
                extra={"request_id": record.request_id, "dropped": self.dropped},
            )
        except RuntimeError as e:
            # No running event loop to host the worker.
            self.dropped += 1
            logger.warning(f"[{record.request_id}] Cannot record history: {e}")
        return False

    async def flush(self, timeout: float | None = None) -> bool:
        """Wait until queued records are written. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"History flush timed out with {self.pending} records pending")
            return False

    async def stop(self, timeout: float | None = 5.0) -> None:
        """Flush pending records, then stop the worker."""
        if self._worker is None:
            return
        if self.is_running:
            await self.flush(timeout=timeout)
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        logger.debug("History recorder stopped")

    async def _run(self) -> None:
        while True:
            record = await self._queue.get()
            try:
                await asyncio.wait_for(self.store.save(record), timeout=self.write_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"[{record.request_id}] History write timed out after {self.write_timeout}s"
                )
            except Exception as e:
                logger.warning(f"[{record.request_id}] Failed to write query history: {e}")
            finally:
                self._queue.task_done()
