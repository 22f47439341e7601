"""
hotelops/services - 业务服务层

- room_store / room_status_machine / bulk_operations: 房态
- booking_ledger / availability_engine: 预订与可用房
- payment_gateway: 支付
- event_handlers: 客房部通知
"""
from hotelops.services.room_store import RoomStore
from hotelops.services.room_status_machine import RoomStatusMachine
from hotelops.services.bulk_operations import BulkOperationCoordinator, BulkOperationResult
from hotelops.services.booking_ledger import BookingLedger
from hotelops.services.availability_engine import AvailabilityEngine
from hotelops.services.payment_gateway import (
    PaymentGateway,
    SimulatedPaymentGateway,
    BookingPaymentService,
)
from hotelops.services.event_handlers import HousekeepingEventHandlers, LoggingHousekeepingNotifier

__all__ = [
    "RoomStore",
    "RoomStatusMachine",
    "BulkOperationCoordinator",
    "BulkOperationResult",
    "BookingLedger",
    "AvailabilityEngine",
    "PaymentGateway",
    "SimulatedPaymentGateway",
    "BookingPaymentService",
    "HousekeepingEventHandlers",
    "LoggingHousekeepingNotifier",
]
