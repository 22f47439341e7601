"""
hotelops/services/availability_engine.py

AvailabilityEngine - 可用房查询

Pure read path: booking snapshot + room roster -> conflict filter ->
pricing annotation. Never writes anything.
"""
from typing import Any, Dict, List, Optional, Set, Union
import logging

from hotelops.config import Settings, settings as default_settings
from hotelops.domain.pricing import (
    calculate_nights,
    calculate_total,
    get_room_amenities,
    get_room_photos,
)
from hotelops.models.ontology import Booking, RoomStatus
from hotelops.models.schemas import AvailabilitySearch, AvailableRoom, parse_input
from hotelops.services.booking_ledger import BookingLedger
from hotelops.services.room_store import RoomStore

logger = logging.getLogger(__name__)

# 可售房态; a room mid-maintenance or out of order is never offered
BOOKABLE_STATUSES = frozenset({RoomStatus.AVAILABLE, RoomStatus.CLEANING})


class AvailabilityEngine:
    """
    可用房引擎

    Example:
        >>> engine = AvailabilityEngine(room_store, booking_ledger)
        >>> engine.search_available_rooms({
        ...     "check_in": "2024-01-05", "check_out": "2024-01-07",
        ...     "guests": 2, "room_types": ["Suite"],
        ... })
    """

    def __init__(self, store: RoomStore, ledger: BookingLedger, settings: Optional[Settings] = None):
        self._store = store
        self._ledger = ledger
        self._settings = settings or default_settings

    @staticmethod
    def _conflicting_room_numbers(bookings: List[Booking], search: AvailabilitySearch) -> Set[str]:
        return {
            b.room_number for b in bookings
            if b.is_active and b.overlaps(search.check_in, search.check_out)
        }

    def search_available_rooms(
        self, criteria: Union[AvailabilitySearch, Dict[str, Any]]
    ) -> List[AvailableRoom]:
        """
        查询可用房间并附带报价

        Raises:
            ValidationError: check_in >= check_out, guests < 1
        """
        search = parse_input(AvailabilitySearch, criteria)
        nights = calculate_nights(search.check_in, search.check_out)

        # One read of the booking set; filtering works on this snapshot only.
        bookings = self._ledger.get_active_bookings()
        booked = self._conflicting_room_numbers(bookings, search)
        wanted_types = set(search.room_types or ())

        results = []
        for room in self._store.get_all():
            if room.number in booked:
                continue
            if room.status not in BOOKABLE_STATUSES:
                continue
            if wanted_types and room.type not in wanted_types:
                continue

            quote = calculate_total(room.nightly_rate, nights, self._settings.TAX_RATE)
            results.append(AvailableRoom(
                id=room.id,
                number=room.number,
                floor=room.floor,
                type=room.type,
                nightly_rate=room.nightly_rate,
                status=room.status,
                nights=quote.nights,
                subtotal=quote.subtotal,
                taxes=quote.taxes,
                total=quote.total,
                amenities=get_room_amenities(room.type),
                photos=get_room_photos(room.type),
            ))

        logger.info(
            f"Availability {search.check_in} -> {search.check_out} ({nights} nights): "
            f"{len(results)} rooms, {len(booked)} booked"
        )
        return results

    def is_room_available(self, room_number: str, check_in: Any, check_out: Any) -> bool:
        """Whether a specific room would be offered for the window."""
        rooms = self.search_available_rooms({"check_in": check_in, "check_out": check_out})
        return any(room.number == room_number for room in rooms)


__all__ = ["AvailabilityEngine", "BOOKABLE_STATUSES"]
