"""
hotelops/services/payment_gateway.py

支付网关 + 预订支付流程

The gateway is an outbound collaborator. Booking flows charge it before a
booking is marked confirmed; the state machines never call it directly.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, Union
import logging
import random

from core.engine.event_bus import Event, EventBus
from core.errors import ConflictError, InvalidTransitionError, ValidationError, PaymentFailedError
from hotelops.models.events import EventType, PaymentReceivedData
from hotelops.models.ontology import Booking, BookingStatus
from hotelops.models.schemas import BookingCreate, PaymentRequest, PaymentResult, parse_input
from hotelops.services.booking_ledger import BookingLedger

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

# Bookings that can no longer take money
_CLOSED_STATUSES = frozenset({BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED})


class PaymentGateway(Protocol):
    def process_payment(self, request: PaymentRequest) -> PaymentResult:
        ...


@dataclass
class PaymentStats:
    total_revenue: Decimal = Decimal("0")
    todays_revenue: Decimal = Decimal("0")
    total_transactions: int = 0
    todays_transactions: int = 0
    failed_payments: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_revenue": str(self.total_revenue),
            "todays_revenue": str(self.todays_revenue),
            "total_transactions": self.total_transactions,
            "todays_transactions": self.todays_transactions,
            "failed_payments": self.failed_payments,
        }


class SimulatedPaymentGateway:
    """
    模拟支付网关

    Succeeds with probability ``success_rate``. Every attempt, failed or
    not, gets a transaction id and is kept in the history.
    """

    def __init__(
        self,
        success_rate: float = 0.95,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self._success_rate = success_rate
        self._rng = rng or random.Random()
        self._clock = clock or datetime.now
        self._history: List[PaymentResult] = []

    def _next_transaction_id(self, now: datetime) -> str:
        return f"TXN_{now.year}_{len(self._history) + 1:03d}"

    def process_payment(self, request: PaymentRequest) -> PaymentResult:
        now = self._clock()
        succeeded = self._rng.random() < self._success_rate
        result = PaymentResult(
            transaction_id=self._next_transaction_id(now),
            status=STATUS_COMPLETED if succeeded else STATUS_FAILED,
            booking_id=request.booking_id,
            amount=request.amount,
            method=request.method,
            processed_at=now,
        )
        self._history.append(result)
        logger.info(
            f"Payment {result.transaction_id} for booking {request.booking_id}: "
            f"{result.status} ({request.amount} via {request.method})"
        )
        return result

    def get_history(self) -> List[PaymentResult]:
        """Newest first."""
        return sorted(self._history, key=lambda p: p.processed_at, reverse=True)

    def get_stats(self) -> PaymentStats:
        today = self._clock().date()
        stats = PaymentStats()
        for payment in self._history:
            if not payment.succeeded:
                stats.failed_payments += 1
                continue
            stats.total_revenue += payment.amount
            stats.total_transactions += 1
            if payment.processed_at.date() == today:
                stats.todays_revenue += payment.amount
                stats.todays_transactions += 1
        return stats


class BookingPaymentService:
    """
    预订支付流程

    Example:
        >>> service = BookingPaymentService(ledger, gateway, event_bus)
        >>> booking = service.reserve({...})
        >>> booking, receipt = service.pay_and_confirm(booking.id, booking.total_amount)
    """

    def __init__(self, ledger: BookingLedger, gateway: PaymentGateway, event_bus: EventBus):
        self._ledger = ledger
        self._gateway = gateway
        self._event_bus = event_bus

    def reserve(self, booking_data: Union[BookingCreate, Dict[str, Any]],
                created_by: Optional[str] = None) -> Booking:
        """
        Create a booking after checking its room is free for the dates.

        Raises:
            ValidationError: malformed booking data
            ConflictError: an active booking on the room overlaps the dates
        """
        data = parse_input(BookingCreate, booking_data)
        conflicts = self._ledger.find_conflicts(data.room_number, data.check_in, data.check_out)
        if conflicts:
            raise ConflictError(
                f"Room {data.room_number} is already booked for "
                f"{data.check_in} - {data.check_out}",
                {"room_number": data.room_number,
                 "conflicting_booking_ids": [b.id for b in conflicts]},
            )
        return self._ledger.create(data, created_by=created_by)

    def pay_and_confirm(
        self,
        booking_id: Any,
        amount: Union[Decimal, int, str],
        method: str = "card",
        changed_by: Optional[str] = None,
    ) -> Tuple[Booking, PaymentResult]:
        """
        Charge the gateway, record the payment and confirm the booking.

        Returns:
            (updated booking, PaymentResult)

        Raises:
            NotFoundError: unknown booking
            ValidationError: bad amount, or amount above the balance due
            InvalidTransitionError: booking is checked out or cancelled
            PaymentFailedError: gateway declined; the booking is unchanged
        """
        booking = self._ledger.get_by_id(booking_id)
        request = parse_input(PaymentRequest, {
            "booking_id": booking.id, "amount": amount, "method": method,
        })
        if booking.status in _CLOSED_STATUSES:
            raise InvalidTransitionError(
                f"Booking {booking.id} is {booking.status.value} and cannot take payment",
                {"booking_id": booking.id, "status": booking.status.value},
            )
        if request.amount > booking.balance_due:
            raise ValidationError(
                f"Payment of {request.amount} exceeds the balance due of {booking.balance_due}",
                {"booking_id": booking.id, "balance_due": str(booking.balance_due)},
            )

        result = self._gateway.process_payment(request)
        if not result.succeeded:
            logger.warning(f"Payment declined for booking {booking.id} ({result.transaction_id})")
            raise PaymentFailedError(
                "Payment processing failed. Please try again.",
                {"booking_id": booking.id, "transaction_id": result.transaction_id},
                retryable=True,
            )

        updated = self._ledger.record_payment(
            booking.id, result.amount, changed_by=changed_by, expected_version=booking.version,
        )
        if updated.status == BookingStatus.PENDING_PAYMENT:
            updated = self._ledger.update_booking_status(
                updated.id, BookingStatus.CONFIRMED,
                changed_by=changed_by, expected_version=updated.version,
            )

        self._event_bus.publish(Event(
            event_type=EventType.PAYMENT_RECEIVED.value,
            timestamp=result.processed_at,
            data=PaymentReceivedData(
                booking_id=updated.id,
                transaction_id=result.transaction_id,
                amount=str(result.amount),
                method=result.method,
            ).to_dict(),
            source="booking_payment_service",
        ))
        return updated, result


__all__ = [
    "PaymentGateway",
    "PaymentStats",
    "SimulatedPaymentGateway",
    "BookingPaymentService",
]
