"""
hotelops/services/booking_ledger.py

BookingLedger - 预订台账

Owns Booking entities. Creation does not look for overlapping bookings;
callers search availability first (see ``BookingPaymentService.reserve``).
Every mutation writes one audit entry with old/new booking snapshots.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
import logging

from core.engine.audit import AuditLog
from core.engine.event_bus import Event, EventBus
from core.engine.state_machine import StateMachine
from core.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from hotelops.config import Settings, settings as default_settings
from hotelops.domain.booking_lifecycle import SET_STATUS, create_booking_state_machine
from hotelops.models.events import BookingStatusChangedData, EventType
from hotelops.models.ontology import Booking, BookingStatus
from hotelops.models.schemas import BookingCreate, BookingFilter, BookingUpdate, parse_input

logger = logging.getLogger(__name__)

ENTITY_TYPE = "Booking"


def normalize_booking_id(booking_id: Any) -> int:
    if isinstance(booking_id, int) and not isinstance(booking_id, bool):
        return booking_id
    try:
        return int(str(booking_id).strip())
    except (TypeError, ValueError):
        raise NotFoundError(f"Booking with ID {booking_id} not found", {"booking_id": booking_id})


def parse_booking_status(status: Any) -> BookingStatus:
    try:
        return BookingStatus(status)
    except ValueError:
        raise ValidationError(
            f"Unknown booking status: {status}",
            {"status": status, "allowed": [s.value for s in BookingStatus]},
        )


class BookingLedger:
    """
    预订台账

    Example:
        >>> ledger = BookingLedger(audit_log, event_bus)
        >>> booking = ledger.create({
        ...     "guest_name": "Grace Hopper", "room_number": "101",
        ...     "check_in": "2024-01-01", "check_out": "2024-01-05",
        ...     "total_amount": "560.00",
        ... })
        >>> ledger.update_booking_status(booking.id, "confirmed")
    """

    def __init__(
        self,
        audit_log: AuditLog,
        event_bus: EventBus,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        bookings: Iterable[Booking] = (),
        machine: Optional[StateMachine] = None,
    ):
        self._audit = audit_log
        self._publish_event = event_bus.publish
        self._settings = settings or default_settings
        self._clock = clock or datetime.now
        self._machine = machine or create_booking_state_machine(
            strict=self._settings.STRICT_BOOKING_TRANSITIONS
        )
        self._bookings: Dict[int, Booking] = {}
        for booking in bookings:
            self.add(booking)

    def add(self, booking: Booking) -> Booking:
        """Import an existing booking (seed time); not audited."""
        if booking.id in self._bookings:
            raise ValidationError(f"Booking with ID {booking.id} already exists")
        if booking.check_in >= booking.check_out:
            raise ValidationError(f"Booking {booking.id}: check_in must be before check_out")
        stored = booking.copy()
        if stored.created_at is None:
            stored.created_at = self._clock()
        self._bookings[stored.id] = stored
        return stored.copy()

    # ============== 查询 ==============

    def get_all(self) -> List[Booking]:
        return [b.copy() for b in self._bookings.values()]

    def find_by_id(self, booking_id: Any) -> Optional[Booking]:
        try:
            booking = self._bookings.get(normalize_booking_id(booking_id))
        except NotFoundError:
            return None
        return booking.copy() if booking else None

    def get_by_id(self, booking_id: Any) -> Booking:
        booking = self.find_by_id(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking with ID {booking_id} not found", {"booking_id": booking_id})
        return booking

    def get_unpaid_bookings(self) -> List[Booking]:
        """Bookings with ``paid_amount < total_amount``."""
        return [b.copy() for b in self._bookings.values() if b.is_unpaid]

    def get_active_bookings(self) -> List[Booking]:
        """Every booking that still holds its room (status != cancelled)."""
        return [b.copy() for b in self._bookings.values() if b.is_active]

    def get_filtered_bookings(self, filters: Union[BookingFilter, Dict[str, Any], None] = None) -> List[Booking]:
        """
        Filter by status, ``check_in >= date_from``, ``check_out <= date_to``
        and a case-insensitive guest name substring.
        """
        criteria = parse_input(BookingFilter, filters or {})
        result = []
        for booking in self._bookings.values():
            if criteria.status is not None and booking.status != criteria.status:
                continue
            if criteria.date_from is not None and booking.check_in < criteria.date_from:
                continue
            if criteria.date_to is not None and booking.check_out > criteria.date_to:
                continue
            if criteria.guest_name and criteria.guest_name.lower() not in booking.guest_name.lower():
                continue
            result.append(booking.copy())
        return result

    def find_conflicts(
        self,
        room_number: str,
        check_in: date,
        check_out: date,
        exclude_id: Optional[int] = None,
    ) -> List[Booking]:
        """Non-cancelled bookings on ``room_number`` overlapping ``[check_in, check_out)``."""
        return [
            b.copy() for b in self._bookings.values()
            if b.is_active
            and b.room_number == room_number
            and b.id != exclude_id
            and b.overlaps(check_in, check_out)
        ]

    # ============== 内部步骤 ==============

    def _operator(self, changed_by: Optional[str]) -> str:
        return changed_by or self._settings.DEFAULT_OPERATOR

    def _load(self, booking_id: Any, expected_version: Optional[int]) -> Booking:
        booking = self.get_by_id(booking_id)
        if expected_version is not None and booking.version != expected_version:
            raise ConflictError(
                f"Booking {booking.id} was modified by another operation; reload and retry",
                {"booking_id": booking.id, "expected_version": expected_version,
                 "current_version": booking.version},
            )
        return booking

    def _save(self, booking: Booking, expected_version: int) -> Booking:
        current = self._bookings.get(booking.id)
        if current is None:
            raise NotFoundError(f"Booking with ID {booking.id} not found", {"booking_id": booking.id})
        if current.version != expected_version:
            logger.warning(
                f"Stale write rejected for booking {booking.id}: "
                f"expected v{expected_version}, found v{current.version}"
            )
            raise ConflictError(
                f"Booking {booking.id} was modified by another operation; reload and retry",
                {"booking_id": booking.id, "expected_version": expected_version,
                 "current_version": current.version},
            )
        stored = booking.copy()
        stored.version = current.version + 1
        self._bookings[stored.id] = stored
        return stored.copy()

    def _next_id(self) -> int:
        return max(self._bookings, default=0) + 1

    # ============== 命令 ==============

    def create(self, booking_data: Union[BookingCreate, Dict[str, Any]],
               created_by: Optional[str] = None) -> Booking:
        """
        创建预订, status ``pending_payment``.

        Raises:
            ValidationError: check_in >= check_out, paid > total, missing fields
        """
        data = parse_input(BookingCreate, booking_data)
        user = self._operator(created_by)
        now = self._clock()

        booking = Booking(
            id=self._next_id(),
            status=BookingStatus.PENDING_PAYMENT,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._bookings[booking.id] = booking

        self._audit.record(
            entity_type=ENTITY_TYPE,
            entity_id=booking.id,
            action="booking_created",
            old_value=None,
            new_value=booking.to_dict(),
            user=user,
        )
        logger.info(f"Booking {booking.id} created for room {booking.room_number} by {user}")

        self._publish_event(Event(
            event_type=EventType.BOOKING_CREATED.value,
            timestamp=now,
            data=booking.to_dict(),
            source="booking_ledger",
        ))
        return booking.copy()

    def update_booking_status(
        self,
        booking_id: Any,
        new_status: Union[BookingStatus, str],
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Booking:
        """
        Move a booking along its lifecycle.

        A move to ``confirmed`` or ``checked_out`` is followed by a
        housekeeping notification; its failure never fails this call.

        Raises:
            NotFoundError, ValidationError, InvalidTransitionError, ConflictError
        """
        status = parse_booking_status(new_status)
        booking = self._load(booking_id, expected_version)
        try:
            self._machine.fire(booking.status.value, SET_STATUS, status.value)
        except InvalidTransitionError as e:
            raise InvalidTransitionError(
                f"Booking {booking.id}: cannot move from {booking.status.value} to {status.value}",
                {**e.context, "booking_id": booking.id},
            ) from e

        user = self._operator(changed_by)
        now = self._clock()
        updated = booking.copy()
        updated.status = status
        updated.updated_at = now
        saved = self._save(updated, booking.version)

        self._audit.record(
            entity_type=ENTITY_TYPE,
            entity_id=saved.id,
            action="booking_status_updated",
            old_value=booking.to_dict(),
            new_value=saved.to_dict(),
            user=user,
        )
        logger.info(f"Booking {saved.id}: {booking.status.value} -> {saved.status.value} by {user}")

        self._publish_event(Event(
            event_type=EventType.BOOKING_STATUS_CHANGED.value,
            timestamp=now,
            data=BookingStatusChangedData(
                booking_id=saved.id,
                room_number=saved.room_number,
                guest_name=saved.guest_name,
                old_status=booking.status.value,
                new_status=saved.status.value,
                check_in=saved.check_in,
                check_out=saved.check_out,
                changed_by=user,
            ).to_dict(),
            source="booking_ledger",
        ))
        return saved

    def update(
        self,
        booking_id: Any,
        data: Union[BookingUpdate, Dict[str, Any]],
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Booking:
        """Edit booking details; the merged booking is revalidated as a whole."""
        changes = parse_input(BookingUpdate, data).model_dump(exclude_none=True)
        booking = self._load(booking_id, expected_version)

        merged = {
            key: getattr(booking, key) for key in BookingCreate.model_fields
        }
        merged.update(changes)
        validated = parse_input(BookingCreate, merged)

        user = self._operator(changed_by)
        updated = booking.copy()
        for key, value in validated.model_dump().items():
            setattr(updated, key, value)
        updated.updated_at = self._clock()
        saved = self._save(updated, booking.version)

        self._audit.record(
            entity_type=ENTITY_TYPE,
            entity_id=saved.id,
            action="booking_updated",
            old_value=booking.to_dict(),
            new_value=saved.to_dict(),
            user=user,
        )
        logger.info(f"Booking {saved.id} updated by {user}: {sorted(changes)}")
        return saved

    def record_payment(
        self,
        booking_id: Any,
        amount: Union[Decimal, int, str],
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Booking:
        """
        Add ``amount`` to ``paid_amount``.

        Raises:
            ValidationError: non-positive amount, or the total would be exceeded
        """
        try:
            amount = Decimal(str(amount))
        except ArithmeticError:
            raise ValidationError(f"Invalid payment amount: {amount}")
        if not amount.is_finite():
            raise ValidationError(f"Invalid payment amount: {amount}", {"amount": str(amount)})
        if amount <= 0:
            raise ValidationError("Payment amount must be positive", {"amount": str(amount)})

        booking = self._load(booking_id, expected_version)
        if booking.paid_amount + amount > booking.total_amount:
            raise ValidationError(
                f"Payment of {amount} exceeds the balance due of {booking.balance_due}",
                {"booking_id": booking.id, "amount": str(amount), "balance_due": str(booking.balance_due)},
            )

        user = self._operator(changed_by)
        updated = booking.copy()
        updated.paid_amount = booking.paid_amount + amount
        updated.updated_at = self._clock()
        saved = self._save(updated, booking.version)

        self._audit.record(
            entity_type=ENTITY_TYPE,
            entity_id=saved.id,
            action="booking_payment_recorded",
            old_value=booking.to_dict(),
            new_value=saved.to_dict(),
            user=user,
            extra={"amount": str(amount)},
        )
        logger.info(f"Booking {saved.id}: payment {amount} recorded, balance {saved.balance_due}")
        return saved

    def delete(self, booking_id: Any, changed_by: Optional[str] = None) -> Booking:
        """Administrative delete; the removed booking is kept in the audit log."""
        booking = self.get_by_id(booking_id)
        user = self._operator(changed_by)
        del self._bookings[booking.id]

        self._audit.record(
            entity_type=ENTITY_TYPE,
            entity_id=booking.id,
            action="booking_deleted",
            old_value=booking.to_dict(),
            new_value=None,
            user=user,
        )
        logger.info(f"Booking {booking.id} deleted by {user}")

        self._publish_event(Event(
            event_type=EventType.BOOKING_DELETED.value,
            timestamp=self._clock(),
            data=booking.to_dict(),
            source="booking_ledger",
        ))
        return booking


__all__ = ["BookingLedger", "normalize_booking_id", "parse_booking_status"]
