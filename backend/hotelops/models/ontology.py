"""
本体对象定义 (Ontology Objects)

Room and Booking entities plus their closed status enums. Entities are plain
dataclasses owned by their repositories (RoomStore, BookingLedger); callers
only ever hold detached copies.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Dict, Any


# ============== 枚举定义 ==============

class RoomStatus(str, Enum):
    """房间状态枚举"""
    AVAILABLE = "Available"        # 空闲可售
    OCCUPIED = "Occupied"          # 入住中
    CLEANING = "Cleaning"          # 清洁中
    MAINTENANCE = "Maintenance"    # 维修中
    OUT_OF_ORDER = "OutOfOrder"    # 停用 / 锁房


class BookingStatus(str, Enum):
    """预订状态枚举"""
    PENDING_PAYMENT = "pending_payment"  # 待支付
    CONFIRMED = "confirmed"              # 已确认
    CHECKED_IN = "checked_in"            # 已入住
    CHECKED_OUT = "checked_out"          # 已退房
    CANCELLED = "cancelled"              # 已取消


class NoteType(str, Enum):
    """房间备注类型"""
    GENERAL = "General"
    HOUSEKEEPING = "Housekeeping"
    MAINTENANCE = "Maintenance"
    GUEST = "Guest"


# ============== 值对象 ==============

@dataclass(frozen=True)
class StatusHistoryEntry:
    """One row of a room's append-only status history."""
    status: RoomStatus
    timestamp: datetime
    changed_from: Optional[RoomStatus]
    changed_by: str
    note: Optional[str] = None
    guest_name: Optional[str] = None
    bulk_operation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "changed_from": self.changed_from.value if self.changed_from else None,
            "changed_by": self.changed_by,
            "note": self.note,
            "guest_name": self.guest_name,
            "bulk_operation_id": self.bulk_operation_id,
        }


@dataclass(frozen=True)
class RoomNote:
    id: int
    content: str
    timestamp: datetime
    added_by: str
    type: NoteType = NoteType.GENERAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "added_by": self.added_by,
            "type": self.type.value,
        }


# ============== 本体对象定义 ==============

@dataclass
class Room:
    """
    房间对象

    Invariants:
        - status_history[-1].status == status
        - blocked implies status == OUT_OF_ORDER, block_reason set iff blocked
        - guest fields are set only while OCCUPIED
    """
    id: int
    number: str
    floor: int
    type: str
    nightly_rate: Decimal
    status: RoomStatus = RoomStatus.AVAILABLE
    guest_name: Optional[str] = None
    checkin_time: Optional[datetime] = None
    checkout_time: Optional[datetime] = None
    blocked: bool = False
    block_reason: Optional[str] = None
    notes: List[RoomNote] = field(default_factory=list)
    status_history: List[StatusHistoryEntry] = field(default_factory=list)
    last_updated: Optional[datetime] = None
    version: int = 1

    @property
    def is_occupied(self) -> bool:
        return self.status == RoomStatus.OCCUPIED

    @property
    def last_history_entry(self) -> Optional[StatusHistoryEntry]:
        return self.status_history[-1] if self.status_history else None

    def copy(self) -> "Room":
        """Detached copy; history entries and notes are immutable so sharing them is safe."""
        return replace(self, notes=list(self.notes), status_history=list(self.status_history))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "floor": self.floor,
            "type": self.type,
            "nightly_rate": str(self.nightly_rate),
            "status": self.status.value,
            "guest_name": self.guest_name,
            "checkin_time": self.checkin_time.isoformat() if self.checkin_time else None,
            "checkout_time": self.checkout_time.isoformat() if self.checkout_time else None,
            "blocked": self.blocked,
            "block_reason": self.block_reason,
            "notes": [n.to_dict() for n in self.notes],
            "status_history": [h.to_dict() for h in self.status_history],
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "version": self.version,
        }


@dataclass
class Booking:
    """
    预订对象

    ``check_in``/``check_out`` form the half-open stay interval
    ``[check_in, check_out)``.
    """
    id: int
    guest_name: str
    email: str
    phone: str
    room_number: str
    check_in: date
    check_out: date
    total_amount: Decimal
    paid_amount: Decimal = Decimal("0")
    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    special_requests: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 1

    @property
    def balance_due(self) -> Decimal:
        return self.total_amount - self.paid_amount

    @property
    def is_unpaid(self) -> bool:
        return self.paid_amount < self.total_amount

    @property
    def is_active(self) -> bool:
        """Cancelled bookings never hold a room."""
        return self.status != BookingStatus.CANCELLED

    def overlaps(self, check_in: date, check_out: date) -> bool:
        """Half-open overlap: touching boundaries do not conflict."""
        return check_in < self.check_out and check_out > self.check_in

    def copy(self) -> "Booking":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "guest_name": self.guest_name,
            "email": self.email,
            "phone": self.phone,
            "room_number": self.room_number,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "total_amount": str(self.total_amount),
            "paid_amount": str(self.paid_amount),
            "status": self.status.value,
            "special_requests": self.special_requests,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "version": self.version,
        }


__all__ = [
    "RoomStatus",
    "BookingStatus",
    "NoteType",
    "StatusHistoryEntry",
    "RoomNote",
    "Room",
    "Booking",
]
