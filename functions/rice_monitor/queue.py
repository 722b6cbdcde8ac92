"""
Bounded queue of spreadsheet sync tasks.

Request handlers enqueue a task and return immediately; workers drain the
queue. A full queue sheds the task (logged) instead of blocking the request.
Supports an in-memory queue for single-process deployments and tests, and a
Redis list for a separate worker process.
"""

from __future__ import annotations

import json
import logging
import queue as stdlib_queue
from dataclasses import asdict, dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)

APPEND = "append"
UPDATE = "update"


@dataclass(frozen=True)
class SyncTask:
    action: str
    submission_id: str

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str | bytes) -> "SyncTask":
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
        return cls(action=data["action"], submission_id=data["submission_id"])


class SyncQueue(Protocol):
    """Minimal queue interface for dispatching sync tasks to workers."""

    def enqueue(self, task: SyncTask) -> bool:
        """Returns False when the task was dropped because the queue is full."""
        ...

    def dequeue(self, *, block: bool = True, timeout: float | None = None) -> Optional[SyncTask]:
        ...


@dataclass
class InMemorySyncQueue:
    """Bounded FIFO shared by threads in one process."""

    max_size: int = 1000
    _items: stdlib_queue.Queue = field(init=False, repr=False)

    def __post_init__(self):
        self._items = stdlib_queue.Queue(maxsize=self.max_size)

    def __len__(self) -> int:
        return self._items.qsize()

    def enqueue(self, task: SyncTask) -> bool:
        try:
            self._items.put_nowait(task)
        except stdlib_queue.Full:
            logger.warning(
                "Sync queue full (%d), dropping %s for %s",
                self.max_size,
                task.action,
                task.submission_id,
            )
            return False
        return True

    def dequeue(self, *, block: bool = True, timeout: float | None = None) -> Optional[SyncTask]:
        try:
            return self._items.get(block=block, timeout=timeout if block else None)
        except stdlib_queue.Empty:
            return None


# LLEN and RPUSH run as one atomic step; the list never exceeds max_size.
_BOUNDED_PUSH = """
if redis.call('LLEN', KEYS[1]) >= tonumber(ARGV[2]) then
    return 0
end
redis.call('RPUSH', KEYS[1], ARGV[1])
return 1
"""


@dataclass
class RedisSyncQueue:
    """Redis-backed queue using list push/pop operations."""

    url: str
    queue_key: str = "rice_monitor:sync"
    max_size: int = 1000

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)
        self._bounded_push = self.client.register_script(_BOUNDED_PUSH)

    def enqueue(self, task: SyncTask) -> bool:
        pushed = self._bounded_push(
            keys=[self.queue_key],
            args=[task.to_json(), self.max_size],
            client=self.client,
        )
        if not pushed:
            logger.warning(
                "Sync queue %s full, dropping %s for %s",
                self.queue_key,
                task.action,
                task.submission_id,
            )
            return False
        return True

    def dequeue(self, *, block: bool = True, timeout: float | None = None) -> Optional[SyncTask]:
        try:
            if block:
                result = self.client.blpop(self.queue_key, timeout=timeout or 0)
                if result is None:
                    return None
                _, raw = result
            else:
                raw = self.client.lpop(self.queue_key)
                if raw is None:
                    return None
            return SyncTask.from_json(raw)
        except redis_exceptions.ConnectionError:
            # Connection resets can happen on managed Redis. Treat as empty queue
            # and allow the worker loop to retry.
            self.client = redis.Redis.from_url(self.url)
            return None
