"""
事件处理器 - 客房部通知
订阅已提交的领域事件并通知客房部 (fire-and-forget)

A notification failure is logged here and never reaches the command that
published the event; the committed state change stands.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol
import logging

from core.engine.event_bus import Event, EventBus
from hotelops.models.events import EventType
from hotelops.models.ontology import BookingStatus

logger = logging.getLogger(__name__)

# 需要通知客房部的预订状态
NOTIFY_ON_BOOKING_STATUSES = frozenset({BookingStatus.CONFIRMED.value, BookingStatus.CHECKED_OUT.value})


class HousekeepingNotifier(Protocol):
    def notify(self, notice: Dict[str, Any]) -> None:
        ...


class LoggingHousekeepingNotifier:
    """Default notifier: writes the notice to the log and keeps it in memory."""

    def __init__(self):
        self.notices: List[Dict[str, Any]] = []

    def notify(self, notice: Dict[str, Any]) -> None:
        self.notices.append(notice)
        logger.info(f"Housekeeping notified for room {notice.get('room_number')}: {notice}")


class HousekeepingEventHandlers:
    """
    客房部事件处理器

    支持依赖注入以便于测试:
    - notifier: 客房部通知通道
    - clock: 通知时间来源
    """

    def __init__(self, notifier: Optional[HousekeepingNotifier] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self._notifier = notifier or LoggingHousekeepingNotifier()
        self._clock = clock or datetime.now
        self._registered = False

    @property
    def notifier(self) -> HousekeepingNotifier:
        return self._notifier

    def _send(self, notice: Dict[str, Any]) -> bool:
        notice = {**notice, "notified_at": self._clock().isoformat()}
        try:
            self._notifier.notify(notice)
            return True
        except Exception as e:
            logger.error(f"Failed to notify housekeeping for room {notice.get('room_number')}: {e}",
                         exc_info=True)
            return False

    def handle_booking_status_changed(self, event: Event) -> None:
        """
        处理预订状态变更: 确认 / 退房时通知客房部

        触发条件: booking 进入 confirmed 或 checked_out
        """
        data = event.data
        new_status = data.get("new_status")
        if new_status not in NOTIFY_ON_BOOKING_STATUSES:
            return
        if not data.get("room_number"):
            logger.warning(f"Invalid booking status event {event.event_id}: missing room_number")
            return

        self._send({
            "reason": f"booking_{new_status}",
            "booking_id": data.get("booking_id"),
            "room_number": data.get("room_number"),
            "guest_name": data.get("guest_name"),
            "status": new_status,
            "check_in": data.get("check_in"),
            "check_out": data.get("check_out"),
        })

    def handle_guest_checked_out(self, event: Event) -> None:
        """
        处理退房事件: 通知客房部清扫

        触发条件: 房间从 Occupied 进入 Cleaning
        """
        data = event.data
        if not data.get("room_number"):
            logger.warning(f"Invalid checkout event {event.event_id}: missing room_number")
            return

        self._send({
            "reason": "room_needs_cleaning",
            "room_id": data.get("room_id"),
            "room_number": data.get("room_number"),
            "guest_name": data.get("guest_name"),
            "status": data.get("new_status"),
        })

    def register_handlers(self, event_bus: EventBus) -> None:
        """注册所有事件处理器"""
        if self._registered:
            logger.warning("Housekeeping handlers already registered")
            return

        event_bus.subscribe(EventType.BOOKING_STATUS_CHANGED.value, self.handle_booking_status_changed)
        event_bus.subscribe(EventType.GUEST_CHECKED_OUT.value, self.handle_guest_checked_out)

        self._registered = True
        logger.info("Housekeeping handlers registered")

    def unregister_handlers(self, event_bus: EventBus) -> None:
        """注销所有事件处理器"""
        if not self._registered:
            return

        event_bus.unsubscribe(EventType.BOOKING_STATUS_CHANGED.value, self.handle_booking_status_changed)
        event_bus.unsubscribe(EventType.GUEST_CHECKED_OUT.value, self.handle_guest_checked_out)

        self._registered = False
        logger.info("Housekeeping handlers unregistered")


__all__ = [
    "HousekeepingNotifier",
    "LoggingHousekeepingNotifier",
    "HousekeepingEventHandlers",
]
