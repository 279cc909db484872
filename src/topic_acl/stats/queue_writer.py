"""
Asynchronous batching of per-user usage counters.

Producers call enqueue() on the hot path; it never blocks. A single worker
thread wakes every interval, drains the queue, sums the events per user and
hands the batch to the commit callback in one call. On stop() the worker does
one final drain-and-flush before exiting.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from topic_acl.spec.user import UserStats

logger = logging.getLogger(__name__)

CommitFunc = Callable[[Dict[str, UserStats]], object]


@dataclass
class StatsEvent:
    """A usage increment waiting to be written"""

    username: str
    stats: UserStats


class StatsQueueWriter:
    """
    Bounded queue of usage events with a single flushing worker
    """

    def __init__(
        self,
        commit: CommitFunc,
        interval: float = 33.0,
        capacity: int = 10000,
    ):
        """
        Initialize the writer

        Args:
            commit: Callable persisting one aggregated batch {username: stats}
            interval: Time between flushes (seconds)
            capacity: Maximum number of events held in the queue
        """
        self.commit = commit
        self.interval = interval
        self.capacity = capacity

        self._queue: "queue.Queue[StatsEvent]" = queue.Queue(maxsize=capacity)
        self._stop_event = threading.Event()
        self._worker_thread: Optional[threading.Thread] = None
        self._is_running = False
        self._stopped = False

        # Batch that failed to commit, retried once on the next flush
        self._retry_batch: Optional[Dict[str, UserStats]] = None
        self._retry_events = 0

        self._counter_lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._dropped = 0
        self._flushed = 0

    @property
    def dropped(self) -> int:
        with self._counter_lock:
            return self._dropped

    @property
    def flushed(self) -> int:
        with self._counter_lock:
            return self._flushed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._is_running

    def start(self):
        """Start the flush worker thread"""
        if self._is_running:
            return

        self._is_running = True
        self._stopped = False
        self._stop_event.clear()
        self._worker_thread = threading.Thread(
            target=self._worker_loop, name="stats-queue-writer", daemon=True
        )
        self._worker_thread.start()
        logger.debug(f"Stats queue writer started (interval: {self.interval}s)")

    def stop(self, timeout: Optional[float] = None):
        """Stop the worker, waiting for its final flush to complete"""
        if not self._is_running:
            return

        self._is_running = False
        self._stopped = True
        self._stop_event.set()

        if self._worker_thread:
            self._worker_thread.join(timeout=timeout)
            if self._worker_thread.is_alive():
                logger.error("Stats queue writer did not stop in time")
            self._worker_thread = None
        logger.debug("Stats queue writer stopped")

    def enqueue(
        self, username: str, messages: int = 1, emails: int = 0, calls: int = 0
    ) -> bool:
        """Queue a usage increment; returns False if it was dropped"""
        if self._stopped:
            # Nothing would flush it after the final drain
            with self._counter_lock:
                self._dropped += 1
            return False
        event = StatsEvent(
            username=username,
            stats=UserStats(messages=messages, emails=emails, calls=calls),
        )
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._counter_lock:
                self._dropped += 1
            return False
        return True

    def flush(self) -> int:
        """Drain the queue and commit one aggregated batch; returns events committed"""
        with self._flush_lock:
            batch, count = self._drain()
            if self._retry_batch is not None:
                batch = _merge(self._retry_batch, batch)
                count += self._retry_events
                retrying = True
            else:
                retrying = False
            self._retry_batch = None
            self._retry_events = 0

            if not batch:
                return 0

            try:
                self.commit(batch)
            except Exception as e:
                if retrying:
                    logger.error(
                        f"Failed to write usage stats again, dropping {count} event(s): {e}"
                    )
                    with self._counter_lock:
                        self._dropped += count
                else:
                    logger.error(
                        f"Failed to write usage stats for {len(batch)} user(s), "
                        f"retrying on next flush: {e}"
                    )
                    self._retry_batch = batch
                    self._retry_events = count
                return 0

            with self._counter_lock:
                self._flushed += count
            logger.debug(f"Wrote usage stats for {len(batch)} user(s) ({count} events)")
            return count

    def _drain(self) -> tuple[Dict[str, UserStats], int]:
        batch: Dict[str, UserStats] = {}
        count = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                break
            batch[event.username] = batch.get(event.username, UserStats()) + event.stats
            count += 1
        return batch, count

    def _worker_loop(self):
        """Main worker loop that flushes the queue every interval"""
        while not self._stop_event.wait(self.interval):
            self._safe_flush()
        # Final flush before exiting, retrying a failed batch once more
        self._safe_flush()
        if self._retry_batch is not None:
            self._safe_flush()

    def _safe_flush(self):
        try:
            self.flush()
        except Exception as e:
            logger.exception(f"Error in stats queue worker: {e}")


def _merge(a: Dict[str, UserStats], b: Dict[str, UserStats]) -> Dict[str, UserStats]:
    merged = dict(a)
    for username, stats in b.items():
        merged[username] = merged.get(username, UserStats()) + stats
    return merged


__all__ = ["StatsQueueWriter", "StatsEvent"]
