"""
In-process async pub/sub bus.

Each topic has its own asyncio.Queue and a single consumer task, so the
handlers of one topic see events strictly one after another.

    bus = AsyncEventBus()
    await bus.subscribe("sales_events.inserted", handler)
    await bus.start()
    await bus.publish("sales_events.inserted", {"id": ...})
"""
import asyncio
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine

from core.logger import get_logger

logger = get_logger("event_bus")

SALES_EVENT_INSERTED = "sales_events.inserted"

# async callable(topic, data)
Handler = Callable[[str, dict], Coroutine[Any, Any, None]]


class AsyncEventBus:
    def __init__(self, max_queue_size: int = 10000):
        self._max_queue_size = max_queue_size
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._queues: dict[str, asyncio.Queue] = {}
        self._running = False
        self._consumer_tasks: dict[str, asyncio.Task] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    def _queue(self, topic: str) -> asyncio.Queue:
        if topic not in self._queues:
            self._queues[topic] = asyncio.Queue(maxsize=self._max_queue_size)
        return self._queues[topic]

    async def subscribe(self, topic: str, handler: Handler):
        self._handlers[topic].append(handler)
        self._queue(topic)
        logger.debug("Subscribed %s to %s", getattr(handler, "__qualname__", handler), topic)
        # Late subscribers on a running bus still get a consumer
        if self._running and topic not in self._consumer_tasks:
            self._start_consumer(topic)

    async def publish(self, topic: str, data: dict):
        event = {
            "topic": topic,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        queue = self._queue(topic)
        if queue.full():
            logger.warning("Queue for %s is full, waiting for the consumer", topic)
        # Blocks until there is room; events are never dropped
        await queue.put(event)

    async def _consumer(self, topic: str):
        queue = self._queue(topic)
        while self._running:
            try:
                event = await queue.get()
            except asyncio.CancelledError:
                break
            try:
                await self._dispatch(topic, event["data"])
            finally:
                queue.task_done()

    async def _dispatch(self, topic: str, data: dict):
        for handler in self._handlers.get(topic, []):
            try:
                await handler(topic, data)
            except Exception:
                logger.exception("Handler %s failed on %s", getattr(handler, "__qualname__", handler), topic)

    def _start_consumer(self, topic: str):
        self._consumer_tasks[topic] = asyncio.create_task(self._consumer(topic), name=f"consumer-{topic}")

    async def start(self):
        self._running = True
        for topic in self._handlers:
            if topic not in self._consumer_tasks:
                self._start_consumer(topic)
        logger.info("Event bus started with %d consumer(s)", len(self._consumer_tasks))

    async def join(self, topic: str):
        """Wait until every event published so far on `topic` has been handled."""
        await self._queue(topic).join()

    async def stop(self):
        self._running = False
        for task in self._consumer_tasks.values():
            task.cancel()
        if self._consumer_tasks:
            await asyncio.gather(*self._consumer_tasks.values(), return_exceptions=True)
        self._consumer_tasks = {}
        logger.info("Event bus stopped")


event_bus = AsyncEventBus()


def get_event_bus() -> AsyncEventBus:
    return event_bus
