"""
Workers that drain the sync queue into the spreadsheet mirror.

The API process runs a small thread pool (`SyncWorkerPool`) started and
drained by the app lifespan. With a Redis queue, `run_loop` can also run as
a standalone process: `python -m rice_monitor.worker`.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from rice_monitor.config import configure_logging
from rice_monitor.db import DbClient
from rice_monitor.dependencies import get_db_client, get_sync_engine, get_sync_queue
from rice_monitor.queue import APPEND, UPDATE, SyncQueue, SyncTask
from rice_monitor.sync import SheetSyncEngine, resolve_field_name

logger = logging.getLogger(__name__)


def process_task(task: SyncTask, db: DbClient, engine: SheetSyncEngine) -> bool:
    """
    Mirror one submission. Returns True if the engine was invoked.

    The submission is re-read so the row reflects the stored state at the
    time the task runs.
    """
    try:
        submission = db.get_submission(task.submission_id)
    except Exception:
        logger.exception("[%s] Failed to load submission for sync", task.submission_id)
        return False
    if submission is None:
        logger.warning(
            "[%s] Submission no longer exists, skipping %s", task.submission_id, task.action
        )
        return False

    field_name = resolve_field_name(db, submission)
    if task.action == APPEND:
        engine.append_submission(submission, field_name)
    elif task.action == UPDATE:
        engine.update_submission(submission, field_name)
    else:
        logger.warning("[%s] Unknown sync action %r", task.submission_id, task.action)
        return False
    return True


def process_next(
    *,
    db: DbClient,
    queue: SyncQueue,
    engine: SheetSyncEngine,
    block: bool = True,
    timeout: Optional[float] = None,
) -> bool:
    """
    Fetch and process one task from the queue. Returns True if processed.
    """
    task = queue.dequeue(block=block, timeout=timeout)
    if task is None:
        return False
    try:
        return process_task(task, db, engine)
    except Exception:
        logger.exception("[%s] Sync task %s failed", task.submission_id, task.action)
        return False


class SyncWorkerPool:
    """Fixed set of daemon threads pulling from one queue."""

    def __init__(
        self,
        *,
        db: DbClient,
        queue: SyncQueue,
        engine: SheetSyncEngine,
        workers: int = 2,
        poll_interval_seconds: float = 0.5,
    ):
        self.db = db
        self.queue = queue
        self.engine = engine
        self.workers = max(1, workers)
        self.poll_interval_seconds = poll_interval_seconds
        self._stopping = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._threads = [
            threading.Thread(
                target=self._run, name=f"sync-worker-{i}", daemon=True
            )
            for i in range(self.workers)
        ]
        for thread in self._threads:
            thread.start()
        logger.info("Started %d sync workers", self.workers)

    def _run(self) -> None:
        while True:
            task = self.queue.dequeue(block=True, timeout=self.poll_interval_seconds)
            if task is None:
                # Keep draining after shutdown is requested until the queue is empty.
                if self._stopping.is_set():
                    return
                continue
            try:
                process_task(task, self.db, self.engine)
            except Exception:
                logger.exception("[%s] Sync task %s failed", task.submission_id, task.action)

    def shutdown(self, timeout: float = 10.0) -> bool:
        """
        Let workers exit once the queue is empty. Returns False if they
        were still busy when the timeout expired.
        """
        self._stopping.set()
        deadline = time.monotonic() + timeout
        for thread in self._threads:
            thread.join(max(0.0, deadline - time.monotonic()))
        drained = not self.running
        if not drained:
            logger.warning("Sync workers did not drain within %.1fs", timeout)
        return drained


def run_loop(poll_interval_seconds: float = 2.0) -> None:
    """
    Simple polling loop that blocks on the queue. Intended to be run under systemd/supervisor.
    """
    db = get_db_client()
    queue = get_sync_queue()
    engine = get_sync_engine()
    engine.ensure_all_headers()
    while True:
        process_next(
            db=db, queue=queue, engine=engine, block=True, timeout=poll_interval_seconds
        )


def main() -> None:
    configure_logging()
    run_loop()


if __name__ == "__main__":
    main()
