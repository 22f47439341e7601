"""
HotelOps 服务容器
组装一套互相隔离的服务对象: 每个进程 / 每个测试各自一份

    >>> from hotelops.container import build_container
    >>> ops = build_container()
    >>> ops.rooms.assign_guest(1, {"guest_name": "Ada Lovelace"})
    >>> ops.availability.search_available_rooms({"check_in": ..., "check_out": ...})
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
import logging
import random

from core.engine.audit import AuditEntry, AuditLog
from core.engine.event_bus import EventBus, PublishResult
from hotelops.config import Settings, settings as default_settings
from hotelops.seed import build_demo_bookings, build_demo_rooms
from hotelops.services.availability_engine import AvailabilityEngine
from hotelops.services.booking_ledger import BookingLedger
from hotelops.services.bulk_operations import BulkOperationCoordinator
from hotelops.services.event_handlers import HousekeepingEventHandlers, HousekeepingNotifier
from hotelops.services.payment_gateway import (
    BookingPaymentService,
    PaymentGateway,
    SimulatedPaymentGateway,
)
from hotelops.services.room_status_machine import RoomStatusMachine
from hotelops.services.room_store import RoomStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply LOG_LEVEL to the root logger; library modules only create loggers."""
    settings = settings or default_settings
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


@dataclass
class HotelOps:
    """The wired service graph."""
    settings: Settings
    audit_log: AuditLog
    event_bus: EventBus
    store: RoomStore
    rooms: RoomStatusMachine
    bulk: BulkOperationCoordinator
    bookings: BookingLedger
    availability: AvailabilityEngine
    payments: BookingPaymentService
    gateway: PaymentGateway
    housekeeping: HousekeepingEventHandlers

    def get_audit_log(self, entity_id, entity_type: Optional[str] = None) -> List[AuditEntry]:
        """审计记录查询 (按实体)"""
        return self.audit_log.get_by_entity(entity_id, entity_type)

    def dispatch_events(self) -> List[PublishResult]:
        """
        投递延迟事件

        With EVENT_DISPATCH_MODE="deferred" the bus only queues events; call
        this after each command batch so the queue is drained. No-op in sync
        mode.
        """
        results = self.event_bus.flush()
        if results:
            logger.debug(f"Dispatched {len(results)} deferred events")
        return results

    def shutdown(self) -> None:
        """Deliver any deferred events and detach the handlers."""
        self.dispatch_events()
        self.housekeeping.unregister_handlers(self.event_bus)


def build_container(
    settings: Optional[Settings] = None,
    clock: Optional[Callable[[], datetime]] = None,
    seed: Optional[bool] = None,
    gateway: Optional[PaymentGateway] = None,
    notifier: Optional[HousekeepingNotifier] = None,
    rng: Optional[random.Random] = None,
) -> HotelOps:
    """
    创建服务容器

    Args:
        settings: defaults to the module-level settings
        clock: time source shared by every service
        seed: load the demo roster and bookings; defaults to SEED_DEMO_DATA
        gateway: payment gateway; defaults to the simulated one
        notifier: housekeeping channel; defaults to logging
        rng: random source for the simulated gateway
    """
    settings = settings or default_settings
    clock = clock or datetime.now
    seed = settings.SEED_DEMO_DATA if seed is None else seed

    audit_log = AuditLog(clock=clock)
    event_bus = EventBus(
        dispatch_mode=settings.EVENT_DISPATCH_MODE,
        history_size=settings.EVENT_HISTORY_SIZE,
    )

    rooms = build_demo_rooms(clock()) if seed else []
    store = RoomStore(rooms, clock=clock)
    ledger = BookingLedger(
        audit_log, event_bus, settings=settings, clock=clock,
        bookings=build_demo_bookings(rooms, now=clock()) if seed else (),
    )

    room_machine = RoomStatusMachine(store, audit_log, event_bus, settings=settings, clock=clock)
    gateway = gateway or SimulatedPaymentGateway(
        success_rate=settings.PAYMENT_SUCCESS_RATE, rng=rng, clock=clock,
    )

    housekeeping = HousekeepingEventHandlers(notifier, clock=clock)
    housekeeping.register_handlers(event_bus)

    logger.info(
        f"{settings.APP_NAME} ready: {len(store)} rooms, {len(ledger.get_all())} bookings, "
        f"events {settings.EVENT_DISPATCH_MODE}"
    )

    return HotelOps(
        settings=settings,
        audit_log=audit_log,
        event_bus=event_bus,
        store=store,
        rooms=room_machine,
        bulk=BulkOperationCoordinator(room_machine),
        bookings=ledger,
        availability=AvailabilityEngine(store, ledger, settings=settings),
        payments=BookingPaymentService(ledger, gateway, event_bus),
        gateway=gateway,
        housekeeping=housekeeping,
    )


__all__ = ["HotelOps", "build_container", "configure_logging"]
