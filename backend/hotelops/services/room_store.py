"""
hotelops/services/room_store.py

RoomStore - 房间仓储

Owns the authoritative room collection. Reads hand out detached copies;
writes go through ``save``, a compare-and-swap on ``Room.version``.
"""
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from core.errors import ConflictError, NotFoundError, ValidationError
from hotelops.models.ontology import Room, RoomStatus, StatusHistoryEntry
from hotelops.models.schemas import RoomStats

logger = logging.getLogger(__name__)


def normalize_room_id(room_id: Any) -> int:
    """Room ids arrive as ints or numeric strings from the UI layer."""
    if isinstance(room_id, bool):
        raise NotFoundError(f"Room with ID {room_id} not found", {"room_id": room_id})
    if isinstance(room_id, int):
        return room_id
    try:
        return int(str(room_id).strip())
    except (TypeError, ValueError):
        raise NotFoundError(f"Room with ID {room_id} not found", {"room_id": room_id})


def parse_room_status(status: Any) -> RoomStatus:
    try:
        return RoomStatus(status)
    except ValueError:
        raise ValidationError(
            f"Unknown room status: {status}",
            {"status": status, "allowed": [s.value for s in RoomStatus]},
        )


class RoomStore:
    """
    房间仓储

    Example:
        >>> store = RoomStore()
        >>> store.add(Room(id=1, number="101", floor=1, type="Standard King",
        ...                nightly_rate=Decimal("129")))
        >>> store.get_by_floor(1)
    """

    def __init__(self, rooms: Iterable[Room] = (), clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now
        self._rooms: Dict[int, Room] = {}
        for room in rooms:
            self.add(room)

    def add(self, room: Room) -> Room:
        """
        Register a room (seed/import time).

        A room without history gets an initial entry so the last history
        status always matches the current status.
        """
        if room.id in self._rooms:
            raise ValidationError(f"Room with ID {room.id} already exists", {"room_id": room.id})
        if self.find_by_number(room.number) is not None:
            raise ValidationError(f"Room number {room.number} already exists", {"number": room.number})
        if room.blocked and room.status != RoomStatus.OUT_OF_ORDER:
            raise ValidationError(f"Blocked room {room.number} must be out of order")

        stored = room.copy()
        now = self._clock()
        if not stored.status_history or stored.status_history[-1].status != stored.status:
            stored.status_history.append(StatusHistoryEntry(
                status=stored.status,
                timestamp=now,
                changed_from=stored.status_history[-1].status if stored.status_history else None,
                changed_by="System",
                note="Room registered",
            ))
        if stored.last_updated is None:
            stored.last_updated = now

        self._rooms[stored.id] = stored
        return stored.copy()

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: Any) -> bool:
        try:
            return normalize_room_id(room_id) in self._rooms
        except NotFoundError:
            return False

    # ============== 查询 ==============

    def get_all(self) -> List[Room]:
        """All rooms, in registration order."""
        return [room.copy() for room in self._rooms.values()]

    def find_by_id(self, room_id: Any) -> Optional[Room]:
        try:
            room = self._rooms.get(normalize_room_id(room_id))
        except NotFoundError:
            return None
        return room.copy() if room else None

    def get_by_id(self, room_id: Any) -> Room:
        """
        Raises:
            NotFoundError: unknown room id
        """
        room = self.find_by_id(room_id)
        if room is None:
            raise NotFoundError(f"Room with ID {room_id} not found", {"room_id": room_id})
        return room

    def find_by_number(self, number: str) -> Optional[Room]:
        for room in self._rooms.values():
            if room.number == number:
                return room.copy()
        return None

    def get_by_number(self, number: str) -> Room:
        room = self.find_by_number(number)
        if room is None:
            raise NotFoundError(f"Room {number} not found", {"number": number})
        return room

    def get_by_floor(self, floor: Any) -> List[Room]:
        try:
            floor = int(str(floor).strip())
        except ValueError:
            raise ValidationError(f"Invalid floor: {floor}", {"floor": floor})
        return [room.copy() for room in self._rooms.values() if room.floor == floor]

    def get_by_status(self, status: Any) -> List[Room]:
        status = parse_room_status(status)
        return [room.copy() for room in self._rooms.values() if room.status == status]

    def get_room_stats(self) -> RoomStats:
        """房态统计"""
        counts = {status: 0 for status in RoomStatus}
        for room in self._rooms.values():
            counts[room.status] += 1

        total = len(self._rooms)
        occupied = counts[RoomStatus.OCCUPIED]
        occupancy_rate = round(occupied / total * 100, 1) if total else 0.0

        return RoomStats(
            total=total,
            available=counts[RoomStatus.AVAILABLE],
            occupied=occupied,
            cleaning=counts[RoomStatus.CLEANING],
            maintenance=counts[RoomStatus.MAINTENANCE],
            out_of_order=counts[RoomStatus.OUT_OF_ORDER],
            occupancy_rate=occupancy_rate,
        )

    # ============== 写入 ==============

    def save(self, room: Room, expected_version: int) -> Room:
        """
        Replace the stored room if nobody else wrote it since ``expected_version``.

        Returns:
            The stored copy with its version bumped.

        Raises:
            NotFoundError: unknown room id
            ConflictError: the stored version moved on
        """
        current = self._rooms.get(room.id)
        if current is None:
            raise NotFoundError(f"Room with ID {room.id} not found", {"room_id": room.id})
        if current.version != expected_version:
            logger.warning(
                f"Stale write rejected for room {current.number}: "
                f"expected v{expected_version}, found v{current.version}"
            )
            raise ConflictError(
                f"Room {current.number} was modified by another operation; reload and retry",
                {"room_id": room.id, "expected_version": expected_version, "current_version": current.version},
            )

        stored = room.copy()
        stored.version = current.version + 1
        self._rooms[stored.id] = stored
        return stored.copy()


__all__ = ["RoomStore", "normalize_room_id", "parse_room_status"]
