"""
Realtime change feed.

Row changes are published as ``ChangeEvent`` messages on one channel per
table. Two interchangeable feeds exist:

* ``LocalChangeFeed`` - in-process fanout onto each subscriber's event loop.
  Used for tests and single-process development.
* ``RedisChangeFeed`` - Redis pub/sub on ``<prefix>:<table>``. Publishing goes
  through the django-redis connection, subscribing through ``redis.asyncio``.
  A dropped subscription is retried with bounded exponential backoff.

Subscribers get a ``Channel`` handle whose status moves through
``connecting -> subscribed | error | timed_out`` and ends in ``closed`` after
``unsubscribe()``. Status changes are reported through the ``on_status``
callback only.
"""
import asyncio
import inspect
import json
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Callable, Dict, Optional

import redis.asyncio as aioredis
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django_redis import get_redis_connection
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

INSERT = 'INSERT'
UPDATE = 'UPDATE'
DELETE = 'DELETE'
EVENT_TYPES = (INSERT, UPDATE, DELETE)


class ChannelStatus(str, Enum):
    CONNECTING = 'connecting'
    SUBSCRIBED = 'subscribed'
    ERROR = 'error'
    TIMED_OUT = 'timed_out'
    CLOSED = 'closed'


@dataclass(frozen=True)
class ChangeEvent:
    """A single row change. ``new`` is set for INSERT/UPDATE, ``old`` for DELETE."""
    table: str
    event_type: str
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {self.event_type}")

    @property
    def row_id(self):
        row = self.new if self.event_type != DELETE else self.old
        return (row or {}).get('id')

    def to_json(self) -> str:
        return json.dumps(asdict(self), cls=DjangoJSONEncoder)

    @classmethod
    def from_json(cls, data) -> 'ChangeEvent':
        if isinstance(data, bytes):
            data = data.decode('utf-8')
        payload = json.loads(data)
        return cls(
            table=payload['table'],
            event_type=payload['event_type'],
            new=payload.get('new'),
            old=payload.get('old'),
        )


Handlers = Dict[str, Callable[[ChangeEvent], Any]]
StatusCallback = Optional[Callable[[ChannelStatus], None]]


class Channel:
    """Subscription handle for one table"""

    def __init__(self, table: str, handlers: Handlers, on_status: StatusCallback = None, loop=None):
        self.table = table
        self.handlers = dict(handlers)
        self.on_status = on_status
        self.loop = loop or asyncio.get_running_loop()
        self.status = None
        self._tasks = set()

    @property
    def closed(self) -> bool:
        return self.status == ChannelStatus.CLOSED

    def _set_status(self, status: ChannelStatus):
        if self.closed or status == self.status:
            return
        self.status = status
        logger.debug(f"Channel {self.table}: {status.value}")
        if self.on_status is not None:
            try:
                self.on_status(status)
            except Exception as e:
                logger.warning(f"Status callback failed for channel {self.table}: {e}", exc_info=True)

    def _dispatch(self, event: ChangeEvent):
        """Run the handler for ``event`` on the channel's loop"""
        if self.closed:
            return
        handler = self.handlers.get(event.event_type)
        if handler is None:
            return
        try:
            result = handler(event)
        except Exception as e:
            logger.warning(f"{event.event_type} handler failed on {self.table}: {e}", exc_info=True)
            return
        if inspect.isawaitable(result):
            task = self.loop.create_task(self._await_handler(result, event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _await_handler(self, awaitable, event):
        try:
            await awaitable
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"{event.event_type} handler failed on {self.table}: {e}", exc_info=True)

    def unsubscribe(self):
        if self.closed:
            return
        self._set_status(ChannelStatus.CLOSED)
        self._release()

    def _release(self):
        """Backend-specific teardown"""


class LocalChannel(Channel):
    def __init__(self, feed, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.feed = feed

    def deliver(self, event: ChangeEvent):
        """Thread-safe hand-off onto the subscriber's loop"""
        if self.closed:
            return
        try:
            self.loop.call_soon_threadsafe(self._dispatch, event)
        except RuntimeError:
            # subscriber's loop is gone
            logger.warning(f"Dropping channel {self.table}: event loop closed")
            self.unsubscribe()

    def fail(self, status: ChannelStatus = ChannelStatus.ERROR):
        self.loop.call_soon_threadsafe(self._set_status, status)

    def _release(self):
        self.feed._remove(self)


class LocalChangeFeed:
    """In-process feed; every subscriber in this process sees every publish"""

    def __init__(self):
        self._channels = defaultdict(set)
        self._lock = threading.Lock()

    def subscribe(self, table: str, handlers: Handlers, on_status: StatusCallback = None) -> Channel:
        channel = LocalChannel(self, table, handlers, on_status)
        channel._set_status(ChannelStatus.CONNECTING)
        with self._lock:
            self._channels[table].add(channel)
        channel._set_status(ChannelStatus.SUBSCRIBED)
        return channel

    def publish(self, event: ChangeEvent):
        with self._lock:
            channels = list(self._channels.get(event.table, ()))
        for channel in channels:
            channel.deliver(event)

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._channels.get(table, ()))

    def fail(self, table: str, status: ChannelStatus = ChannelStatus.ERROR):
        """Push every channel on ``table`` into a failure status"""
        with self._lock:
            channels = list(self._channels.get(table, ()))
        for channel in channels:
            channel.fail(status)

    def _remove(self, channel):
        with self._lock:
            self._channels[channel.table].discard(channel)


class RedisChannel(Channel):
    def __init__(self, feed, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.feed = feed
        self._listener = self.loop.create_task(self._listen())

    async def _listen(self):
        channel_name = self.feed.channel_name(self.table)
        attempts = 0
        while not self.closed:
            self._set_status(ChannelStatus.CONNECTING)
            client = aioredis.from_url(self.feed.url)
            pubsub = client.pubsub()
            failure = ChannelStatus.ERROR
            try:
                await asyncio.wait_for(pubsub.subscribe(channel_name), self.feed.subscribe_timeout)
                self._set_status(ChannelStatus.SUBSCRIBED)
                attempts = 0
                async for message in pubsub.listen():
                    if message['type'] != 'message':
                        continue
                    try:
                        event = ChangeEvent.from_json(message['data'])
                    except (ValueError, KeyError, TypeError) as e:
                        logger.warning(f"Discarding malformed message on {channel_name}: {e}")
                        continue
                    self._dispatch(event)
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError:
                failure = ChannelStatus.TIMED_OUT
                logger.warning(f"Subscribing to {channel_name} timed out")
            except (RedisError, OSError) as e:
                logger.warning(f"Subscription to {channel_name} failed: {e}")
            finally:
                try:
                    await pubsub.aclose()
                    await client.aclose()
                except (RedisError, OSError):
                    pass

            if self.closed:
                return
            self._set_status(failure)
            attempts += 1
            delay = self.feed.backoff_delay(attempts)
            if delay is None:
                logger.warning(f"Giving up on {channel_name} after {attempts - 1} reconnect attempts")
                return
            await asyncio.sleep(delay)

    def _release(self):
        self._listener.cancel()


class RedisChangeFeed:
    """Redis pub/sub feed shared by every process pointing at the same server"""

    def __init__(self, url=None, prefix=None, subscribe_timeout=None,
                 reconnect_attempts=None, base_delay=None, max_delay=None):
        self.url = url or settings.REDIS_URL
        self.prefix = prefix or settings.REALTIME_CHANNEL_PREFIX
        self.subscribe_timeout = subscribe_timeout or settings.REALTIME_SUBSCRIBE_TIMEOUT
        self.reconnect_attempts = settings.REALTIME_RECONNECT_ATTEMPTS if reconnect_attempts is None else reconnect_attempts
        self.base_delay = base_delay or settings.REALTIME_RECONNECT_BASE_DELAY
        self.max_delay = max_delay or settings.REALTIME_RECONNECT_MAX_DELAY

    def channel_name(self, table: str) -> str:
        return f"{self.prefix}:{table}"

    def backoff_delay(self, attempt: int) -> Optional[float]:
        """Delay before reconnect ``attempt`` (1-based), None once attempts are used up"""
        if attempt > self.reconnect_attempts:
            return None
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def subscribe(self, table: str, handlers: Handlers, on_status: StatusCallback = None) -> Channel:
        return RedisChannel(self, table, handlers, on_status)

    def publish(self, event: ChangeEvent):
        connection = get_redis_connection('default')
        connection.publish(self.channel_name(event.table), event.to_json())


_feed = None
_feed_lock = threading.Lock()


def get_change_feed():
    """Process-wide feed selected by ``REALTIME_BACKEND``"""
    global _feed
    with _feed_lock:
        if _feed is None:
            backend = getattr(settings, 'REALTIME_BACKEND', 'local')
            if backend == 'redis':
                _feed = RedisChangeFeed()
            elif backend == 'local':
                _feed = LocalChangeFeed()
            else:
                raise ValueError(f"Unknown REALTIME_BACKEND: {backend}")
            logger.info(f"Realtime change feed: {backend}")
        return _feed


def reset_change_feed():
    global _feed
    with _feed_lock:
        _feed = None


def publish_event(event: ChangeEvent):
    """Publish without ever failing the caller's write"""
    try:
        get_change_feed().publish(event)
    except Exception as e:
        logger.warning(f"Failed to publish {event.event_type} on {event.table}: {e}", exc_info=True)
