# Ontology Models
from hotelops.models.ontology import (
    RoomStatus, BookingStatus, NoteType,
    StatusHistoryEntry, RoomNote, Room, Booking,
)

__all__ = [
    'RoomStatus', 'BookingStatus', 'NoteType',
    'StatusHistoryEntry', 'RoomNote', 'Room', 'Booking',
]
