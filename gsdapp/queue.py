"""
Queue abstraction for background analysis jobs.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production. Jobs may be enqueued with a delay, which
the worker uses for retry backoff.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions


class JobQueue(Protocol):
    """Minimal queue interface for dispatching job_ids to workers."""

    def enqueue(self, job_id: str, delay_seconds: float = 0) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        ...


@dataclass
class InMemoryJobQueue:
    """Simple FIFO queue for testing/dev."""

    items: list[str] = field(default_factory=list)
    delayed: list[tuple[float, str]] = field(default_factory=list)

    def enqueue(self, job_id: str, delay_seconds: float = 0) -> None:
        if delay_seconds > 0:
            self.delayed.append((time.time() + delay_seconds, job_id))
        else:
            self.items.append(job_id)

    def _promote_due(self) -> None:
        now = time.time()
        due = sorted(item for item in self.delayed if item[0] <= now)
        self.delayed = [item for item in self.delayed if item[0] > now]
        self.items.extend(job_id for _, job_id in due)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        self._promote_due()
        if not self.items:
            return None
        return self.items.pop(0)


@dataclass
class RedisJobQueue:
    """Redis-backed queue using list push/pop plus a sorted set for delays."""

    url: str
    queue_key: str = "gsd:analysis-jobs"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    @property
    def delayed_key(self) -> str:
        return f"{self.queue_key}:delayed"

    def enqueue(self, job_id: str, delay_seconds: float = 0) -> None:
        if delay_seconds > 0:
            self.client.zadd(self.delayed_key, {job_id: time.time() + delay_seconds})
        else:
            self.client.rpush(self.queue_key, job_id)

    def _promote_due(self) -> None:
        due = self.client.zrangebyscore(self.delayed_key, 0, time.time())
        for job_id in due:
            # zrem returns 0 when another worker already promoted the job.
            if self.client.zrem(self.delayed_key, job_id):
                self.client.rpush(self.queue_key, job_id)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        try:
            self._promote_due()
            if block:
                result = self.client.blpop(self.queue_key, timeout=timeout or 0)
                if result is None:
                    return None
                _, job_id = result
            else:
                job_id = self.client.lpop(self.queue_key)
                if job_id is None:
                    return None
            return job_id.decode("utf-8")
        except redis_exceptions.ConnectionError:
            # Connection resets can happen on managed Redis. Treat as empty queue
            # and allow the worker loop to retry.
            self.client = redis.Redis.from_url(self.url)
            return None
