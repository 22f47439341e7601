"""
hotelops/domain/booking_lifecycle.py

预订状态转换表

Strict (default), forward only:

    pending_payment -> confirmed -> checked_in -> checked_out
    pending_payment | confirmed | checked_in -> cancelled

``checked_out`` and ``cancelled`` are terminal. The permissive table lets any
status move to any other status and exists for deployments that still rely
on manual corrections.
"""
from core.engine.state_machine import StateMachine, StateMachineConfig, StateTransition
from hotelops.models.ontology import BookingStatus

SET_STATUS = "set_status"

FORWARD_TRANSITIONS = [
    (BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED),
    (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN),
    (BookingStatus.CHECKED_IN, BookingStatus.CHECKED_OUT),
    (BookingStatus.PENDING_PAYMENT, BookingStatus.CANCELLED),
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
    (BookingStatus.CHECKED_IN, BookingStatus.CANCELLED),
]

TERMINAL_STATUSES = frozenset({BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED})


def create_booking_state_machine(strict: bool = True) -> StateMachine:
    """创建预订状态机"""
    if strict:
        pairs = FORWARD_TRANSITIONS
    else:
        pairs = [(a, b) for a in BookingStatus for b in BookingStatus if a != b]

    return StateMachine(
        StateMachineConfig(
            name="Booking",
            states=[s.value for s in BookingStatus],
            transitions=[
                StateTransition(from_state=a.value, to_state=b.value, trigger=SET_STATUS)
                for a, b in pairs
            ],
            initial_state=BookingStatus.PENDING_PAYMENT.value,
        )
    )


__all__ = [
    "SET_STATUS",
    "FORWARD_TRANSITIONS",
    "TERMINAL_STATUSES",
    "create_booking_state_machine",
]
