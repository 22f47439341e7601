"""
Pytest 配置和共享 fixtures
"""
import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from core.engine.audit import AuditLog
from core.engine.event_bus import EventBus
from hotelops.config import Settings
from hotelops.container import build_container
from hotelops.models.ontology import Booking, BookingStatus, Room, RoomStatus
from hotelops.services.booking_ledger import BookingLedger
from hotelops.services.room_status_machine import RoomStatusMachine
from hotelops.services.room_store import RoomStore


FIXED_NOW = datetime(2024, 1, 1, 14, 0, 0)


class FakeClock:
    """可控时钟: each call returns the current time, ``advance`` moves it."""

    def __init__(self, start: datetime = FIXED_NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings():
    """测试配置: no demo data, no env file"""
    return Settings(
        _env_file=None,
        SEED_DEMO_DATA=False,
        DEFAULT_OPERATOR="Front Desk",
        EVENT_DISPATCH_MODE="sync",
        PAYMENT_SUCCESS_RATE=1.0,
    )


@pytest.fixture
def audit_log(clock):
    return AuditLog(clock=clock)


@pytest.fixture
def event_bus():
    return EventBus()


# ============== 房间 Fixtures ==============

def make_room(room_id: int, number: str, floor: int = 1, room_type: str = "Standard King",
              rate: str = "100.00", **kwargs) -> Room:
    return Room(id=room_id, number=number, floor=floor, type=room_type,
                nightly_rate=Decimal(rate), **kwargs)


@pytest.fixture
def sample_rooms():
    """创建示例房间"""
    return [
        make_room(1, "101", 1, "Standard Queen", "100.00"),
        make_room(2, "102", 1, "Standard King", "120.00"),
        make_room(3, "201", 2, "Deluxe King", "180.00", status=RoomStatus.CLEANING),
        make_room(4, "202", 2, "Suite", "290.00", status=RoomStatus.MAINTENANCE),
        make_room(5, "301", 3, "Suite", "290.00", status=RoomStatus.OUT_OF_ORDER,
                  blocked=True, block_reason="Broken window"),
    ]


@pytest.fixture
def room_store(sample_rooms, clock):
    return RoomStore(sample_rooms, clock=clock)


@pytest.fixture
def room_machine(room_store, audit_log, event_bus, test_settings, clock):
    return RoomStatusMachine(room_store, audit_log, event_bus, settings=test_settings, clock=clock)


# ============== 预订 Fixtures ==============

def make_booking(booking_id: int, room_number: str, check_in: date, check_out: date,
                 status: BookingStatus = BookingStatus.CONFIRMED,
                 total: str = "224.00", paid: str = "0", guest_name: str = "Guest") -> Booking:
    return Booking(
        id=booking_id,
        guest_name=guest_name,
        email=f"guest{booking_id}@example.com",
        phone="555-0100",
        room_number=room_number,
        check_in=check_in,
        check_out=check_out,
        total_amount=Decimal(total),
        paid_amount=Decimal(paid),
        status=status,
    )


@pytest.fixture
def sample_bookings():
    """创建示例预订"""
    return [
        make_booking(1, "101", date(2024, 1, 1), date(2024, 1, 5), guest_name="Ada Lovelace",
                     paid="224.00"),
        make_booking(2, "102", date(2024, 1, 3), date(2024, 1, 6), guest_name="Alan Turing",
                     status=BookingStatus.PENDING_PAYMENT, total="403.20"),
        make_booking(3, "201", date(2024, 1, 2), date(2024, 1, 4), guest_name="Grace Hopper",
                     status=BookingStatus.CANCELLED, total="403.20"),
    ]


@pytest.fixture
def ledger(audit_log, event_bus, test_settings, clock, sample_bookings):
    return BookingLedger(audit_log, event_bus, settings=test_settings, clock=clock,
                         bookings=sample_bookings)


@pytest.fixture
def booking_data():
    return {
        "guest_name": "Katherine Johnson",
        "email": "kj@example.com",
        "phone": "555-0199",
        "room_number": "102",
        "check_in": "2024-02-01",
        "check_out": "2024-02-03",
        "total_amount": "268.80",
    }


# ============== 容器 Fixtures ==============

@pytest.fixture
def container(test_settings, clock, sample_rooms):
    """Fresh, empty service graph with the sample roster loaded."""
    ops = build_container(test_settings, clock=clock, seed=False)
    for room in sample_rooms:
        ops.store.add(room)
    return ops
