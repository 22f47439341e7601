"""
领域事件定义 (Domain Events)

Outbound events published after a command has been committed.
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
from typing import Optional, Dict, Any


class EventType(str, Enum):
    """事件类型枚举"""
    # 房间相关
    ROOM_STATUS_CHANGED = "room.status_changed"
    ROOM_UPDATED = "room.updated"
    GUEST_ASSIGNED = "room.guest_assigned"
    GUEST_CHECKED_OUT = "room.guest_checked_out"
    ROOM_BLOCKED = "room.blocked"
    ROOM_UNBLOCKED = "room.unblocked"

    # 预订相关
    BOOKING_CREATED = "booking.created"
    BOOKING_STATUS_CHANGED = "booking.status_changed"
    BOOKING_DELETED = "booking.deleted"

    # 支付相关
    PAYMENT_RECEIVED = "payment.received"


@dataclass
class BaseEventData:
    """事件数据基类"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
            elif isinstance(value, Enum):
                result[key] = value.value
        return result


@dataclass
class RoomStatusChangedData(BaseEventData):
    """房间状态变更事件数据"""
    room_id: int = 0
    room_number: str = ""
    old_status: str = ""
    new_status: str = ""
    changed_by: str = ""
    reason: str = ""
    guest_name: Optional[str] = None
    bulk_operation_id: Optional[str] = None


@dataclass
class BookingStatusChangedData(BaseEventData):
    """预订状态变更事件数据"""
    booking_id: int = 0
    room_number: str = ""
    guest_name: str = ""
    old_status: str = ""
    new_status: str = ""
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    changed_by: str = ""


@dataclass
class PaymentReceivedData(BaseEventData):
    """收款事件数据"""
    booking_id: int = 0
    transaction_id: str = ""
    amount: str = ""
    method: str = ""
