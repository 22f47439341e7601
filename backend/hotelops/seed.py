"""
演示数据
房间名册 + 预订, 在容器启动时加载 (SEED_DEMO_DATA)

  1F  101-104  Standard Queen / Standard King
  2F  201-204  Deluxe Queen / Deluxe King
  3F  301-302  Suite, 303 Penthouse Suite

Booking dates are relative to ``today`` so the data stays current.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from hotelops.domain.pricing import calculate_nights, calculate_total
from hotelops.models.ontology import Booking, BookingStatus, Room, RoomStatus

# (id, number, floor, type, nightly rate)
ROOM_ROSTER = [
    (1, "101", 1, "Standard Queen", "99.00"),
    (2, "102", 1, "Standard Queen", "99.00"),
    (3, "103", 1, "Standard King", "119.00"),
    (4, "104", 1, "Standard King", "119.00"),
    (5, "201", 2, "Deluxe Queen", "159.00"),
    (6, "202", 2, "Deluxe Queen", "159.00"),
    (7, "203", 2, "Deluxe King", "179.00"),
    (8, "204", 2, "Deluxe King", "179.00"),
    (9, "301", 3, "Suite", "289.00"),
    (10, "302", 3, "Suite", "289.00"),
    (11, "303", 3, "Penthouse Suite", "599.00"),
]


def build_demo_rooms(now: Optional[datetime] = None) -> List[Room]:
    """初始化房间: mostly available, one of every other status."""
    now = now or datetime.now()
    rooms = [
        Room(id=room_id, number=number, floor=floor, type=room_type, nightly_rate=Decimal(rate))
        for room_id, number, floor, room_type, rate in ROOM_ROSTER
    ]

    occupied = rooms[2]
    occupied.status = RoomStatus.OCCUPIED
    occupied.guest_name = "Maria Santos"
    occupied.checkin_time = now - timedelta(days=1)
    occupied.checkout_time = now + timedelta(days=2)

    rooms[4].status = RoomStatus.CLEANING
    rooms[7].status = RoomStatus.MAINTENANCE

    blocked = rooms[9]
    blocked.status = RoomStatus.OUT_OF_ORDER
    blocked.blocked = True
    blocked.block_reason = "Water damage in bathroom"

    return rooms


def _booking(booking_id: int, guest: str, email: str, room: Room, check_in: date,
             nights: int, status: BookingStatus, paid: str, now: datetime) -> Booking:
    check_out = check_in + timedelta(days=nights)
    total = calculate_total(room.nightly_rate, calculate_nights(check_in, check_out)).total
    return Booking(
        id=booking_id,
        guest_name=guest,
        email=email,
        phone="+1-555-01%02d" % booking_id,
        room_number=room.number,
        check_in=check_in,
        check_out=check_out,
        total_amount=total,
        paid_amount=total if paid == "full" else Decimal(paid),
        status=status,
        created_at=now,
        updated_at=now,
    )


def build_demo_bookings(rooms: List[Room], today: Optional[date] = None,
                        now: Optional[datetime] = None) -> List[Booking]:
    """初始化预订: in-house, upcoming, unpaid and cancelled examples."""
    now = now or datetime.now()
    today = today or now.date()
    by_number = {room.number: room for room in rooms}

    return [
        _booking(1, "Maria Santos", "maria.santos@example.com", by_number["103"],
                 today - timedelta(days=1), 3, BookingStatus.CHECKED_IN, "full", now),
        _booking(2, "James Chen", "james.chen@example.com", by_number["201"],
                 today + timedelta(days=2), 2, BookingStatus.CONFIRMED, "full", now),
        _booking(3, "Aisha Okafor", "aisha.okafor@example.com", by_number["301"],
                 today + timedelta(days=5), 4, BookingStatus.PENDING_PAYMENT, "0", now),
        _booking(4, "Liam Walsh", "liam.walsh@example.com", by_number["101"],
                 today + timedelta(days=1), 2, BookingStatus.CONFIRMED, "100.00", now),
        _booking(5, "Sofia Rossi", "sofia.rossi@example.com", by_number["303"],
                 today + timedelta(days=3), 2, BookingStatus.CANCELLED, "0", now),
        _booking(6, "Noah Kim", "noah.kim@example.com", by_number["102"],
                 today - timedelta(days=4), 2, BookingStatus.CHECKED_OUT, "full", now),
    ]


__all__ = ["ROOM_ROSTER", "build_demo_rooms", "build_demo_bookings"]
