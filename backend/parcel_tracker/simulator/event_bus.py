"""
Event bus: Redis Streams publisher, falls back to an in-memory store without Redis
- Streams: deliveries.created, deliveries.status_changed, deliveries.plan_regenerated,
  notifications.requested
- publish() never raises to the caller.
"""

import json
import logging
from collections import defaultdict

import redis

from parcel_tracker.config import settings
from parcel_tracker.simulator.clock import local_now

logger = logging.getLogger(__name__)

STREAM_MAXLEN = 1000


class InMemoryEventBus:
    """Per-stream bounded list, used when Redis is unset or unreachable"""

    def __init__(self):
        self._streams: dict[str, list[dict]] = defaultdict(list)

    def publish(self, stream: str, data: dict):
        event = {
            "id": f"{len(self._streams[stream]) + 1}",
            "data": data,
            "timestamp": local_now().isoformat(),
        }
        self._streams[stream].append(event)
        if len(self._streams[stream]) > STREAM_MAXLEN:
            self._streams[stream] = self._streams[stream][-STREAM_MAXLEN:]

    def get_recent(self, stream: str, count: int = 10) -> list[dict]:
        return self._streams[stream][-count:]

    def clear(self):
        self._streams.clear()


class EventBus:
    """
    Redis Stream wrapper; any connection failure switches to InMemoryEventBus
    """

    def __init__(self, redis_url: str = ""):
        self._redis = None
        self._in_memory = InMemoryEventBus()
        self._use_redis = False

        if not redis_url:
            logger.info("REDIS_URL not set, using in-memory event bus")
            return

        try:
            self._redis = redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=2)
            self._redis.ping()
            self._use_redis = True
            logger.info("Redis connected, publishing to Redis Streams")
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Redis unavailable ({e}), using in-memory event bus")

    @property
    def is_redis(self) -> bool:
        return self._use_redis

    @property
    def memory(self) -> InMemoryEventBus:
        return self._in_memory

    def publish(self, stream: str, data: dict):
        if self._use_redis:
            try:
                serialized = {k: json.dumps(v) if isinstance(v, (dict, list)) else str(v)
                              for k, v in data.items()}
                self._redis.xadd(stream, serialized, maxlen=STREAM_MAXLEN)
                return
            except redis.RedisError as e:
                logger.error(f"Redis publish failed on {stream}: {e}, falling back to memory")
        self._in_memory.publish(stream, data)

    def get_recent(self, stream: str, count: int = 10) -> list[dict]:
        if self._use_redis:
            try:
                entries = self._redis.xrevrange(stream, count=count)
                return [{"id": eid, "data": edata} for eid, edata in entries]
            except redis.RedisError:
                return self._in_memory.get_recent(stream, count)
        return self._in_memory.get_recent(stream, count)


event_bus = EventBus(settings.REDIS_URL)
