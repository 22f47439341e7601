"""
core/engine/event_bus.py

事件总线 - 内存级发布/订阅模式

Events are published only after the command that produced them has been
committed. Handler failures are isolated and logged; they never propagate to
the publisher, so a failing side effect cannot undo a committed change.

Two dispatch modes:
- ``sync``: handlers run inside ``publish``
- ``deferred``: ``publish`` queues the event and ``flush`` delivers the queue.
  Nothing drains the queue on its own; the owner calls ``flush`` after each
  command batch.
"""
from typing import Callable, Dict, List, Any, Optional, Protocol, Tuple
from dataclasses import dataclass, field
from datetime import datetime
from collections import deque
import logging
import threading
import uuid

logger = logging.getLogger(__name__)

# 类型别名
EventId = str
CorrelationId = str

DISPATCH_SYNC = "sync"
DISPATCH_DEFERRED = "deferred"


def _generate_event_id() -> EventId:
    """生成唯一事件ID"""
    return f"{datetime.now().strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:8]}"


class EventHandler(Protocol):
    """事件处理器协议"""

    def __call__(self, event: "Event") -> None:
        ...


@dataclass
class Event:
    """
    事件

    Attributes:
        event_type: 事件类型（如 "room.status_changed"）
        timestamp: 事件时间戳
        data: 事件数据
        source: 触发来源（服务名）
        event_id: 唯一事件ID
        correlation_id: 关联ID (bulk operation id, parent event id)
    """

    event_type: str
    timestamp: datetime
    data: Dict[str, Any]
    source: str = ""
    event_id: EventId = field(default_factory=_generate_event_id)
    correlation_id: Optional[CorrelationId] = None

    def with_correlation(self, parent_id: CorrelationId) -> "Event":
        self.correlation_id = parent_id
        return self


@dataclass
class PublishResult:
    """
    事件发布结果

    Attributes:
        event_type: 事件类型
        subscriber_count: 订阅者数量
        success_count: 成功处理的处理器数量
        failure_count: 失败的处理器数量
        errors: (handler, exception) 元组
        queued: True when the event was queued for deferred delivery
    """

    event_type: str
    subscriber_count: int
    success_count: int = 0
    failure_count: int = 0
    errors: List[Tuple[Callable, Exception]] = field(default_factory=list)
    queued: bool = False


@dataclass
class EventBusStatistics:
    total_published: int = 0
    total_processed: int = 0
    total_failed: int = 0
    pending: int = 0
    subscriber_count: Dict[str, int] = field(default_factory=dict)


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


class EventBus:
    """
    事件总线

    Example:
        >>> bus = EventBus()
        >>> def handler(event):
        ...     print(f"Received: {event.event_type}")
        >>> bus.subscribe("test.event", handler)
        >>> bus.publish(Event(event_type="test.event", timestamp=datetime.now(), data={}))
    """

    def __init__(self, dispatch_mode: str = DISPATCH_SYNC, history_size: int = 100):
        if dispatch_mode not in (DISPATCH_SYNC, DISPATCH_DEFERRED):
            raise ValueError(f"Unknown dispatch mode: {dispatch_mode}")

        self._dispatch_mode = dispatch_mode
        self._subscribers: Dict[str, List[EventHandler]] = {}
        self._event_history: deque = deque(maxlen=history_size)
        self._pending: deque = deque()
        self._subscriber_lock = threading.RLock()
        self._stats = EventBusStatistics()

    @property
    def dispatch_mode(self) -> str:
        return self._dispatch_mode

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """订阅事件; the same handler is registered only once per type."""
        with self._subscriber_lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.info(f"Handler {_handler_name(handler)} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        with self._subscriber_lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                logger.info(f"Handler {_handler_name(handler)} unsubscribed from {event_type}")

    def publish(self, event: Event) -> PublishResult:
        """
        发布事件

        In ``sync`` mode every handler runs now; in ``deferred`` mode the
        event is queued until ``flush``.
        """
        self._event_history.append(event)
        self._stats.total_published += 1

        if self._dispatch_mode == DISPATCH_DEFERRED:
            self._pending.append(event)
            with self._subscriber_lock:
                count = len(self._subscribers.get(event.event_type, []))
            return PublishResult(event_type=event.event_type, subscriber_count=count, queued=True)

        return self._deliver(event)

    def flush(self) -> List[PublishResult]:
        """Deliver every queued event in publication order."""
        results = []
        while self._pending:
            results.append(self._deliver(self._pending.popleft()))
        return results

    def _deliver(self, event: Event) -> PublishResult:
        with self._subscriber_lock:
            handlers = list(self._subscribers.get(event.event_type, []))

        result = PublishResult(event_type=event.event_type, subscriber_count=len(handlers))

        for handler in handlers:
            try:
                handler(event)
                result.success_count += 1
                self._stats.total_processed += 1
            except Exception as e:
                result.failure_count += 1
                result.errors.append((handler, e))
                self._stats.total_failed += 1
                logger.error(
                    f"Event handler {_handler_name(handler)} error for {event.event_type}: {e}",
                    exc_info=True,
                )

        return result

    def get_history(self, event_type: Optional[str] = None, limit: int = 50) -> List[Event]:
        """获取事件历史（最新的在前）"""
        history = list(self._event_history)
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        return list(reversed(history))[:limit]

    def pending_count(self) -> int:
        return len(self._pending)

    def get_statistics(self) -> EventBusStatistics:
        with self._subscriber_lock:
            counts = {et: len(hs) for et, hs in self._subscribers.items()}
        return EventBusStatistics(
            total_published=self._stats.total_published,
            total_processed=self._stats.total_processed,
            total_failed=self._stats.total_failed,
            pending=len(self._pending),
            subscriber_count=counts,
        )


__all__ = [
    "EventId",
    "CorrelationId",
    "DISPATCH_SYNC",
    "DISPATCH_DEFERRED",
    "EventHandler",
    "Event",
    "PublishResult",
    "EventBusStatistics",
    "EventBus",
]
