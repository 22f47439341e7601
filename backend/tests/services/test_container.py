"""
测试 hotelops.container 服务容器与端到端流程
"""
import logging
from datetime import timedelta
from unittest.mock import Mock, patch

from hotelops.config import Settings
from hotelops.container import build_container, configure_logging
from hotelops.models.ontology import BookingStatus, RoomStatus


class TestBuildContainer:
    def test_containers_are_isolated(self, test_settings, clock):
        """测试每个容器拥有独立状态"""
        first = build_container(test_settings, clock=clock, seed=True)
        second = build_container(test_settings, clock=clock, seed=True)

        first.rooms.block_room(1, "Flood")

        assert second.store.get_by_id(1).blocked is False
        assert len(second.audit_log) == 0

    def test_demo_seed(self, test_settings, clock):
        """测试演示数据满足不变量"""
        ops = build_container(test_settings, clock=clock, seed=True)

        rooms = ops.store.get_all()
        assert len(rooms) == 11
        for room in rooms:
            assert room.status_history[-1].status == room.status
            assert room.blocked == (room.block_reason is not None)
            if room.blocked:
                assert room.status == RoomStatus.OUT_OF_ORDER
            if room.status != RoomStatus.OCCUPIED:
                assert room.guest_name is None

        bookings = ops.bookings.get_all()
        assert len(bookings) == 6
        for booking in bookings:
            assert booking.check_in < booking.check_out
            assert 0 <= booking.paid_amount <= booking.total_amount

    def test_seed_follows_settings(self, clock):
        settings = Settings(_env_file=None, SEED_DEMO_DATA=False)
        assert len(build_container(settings, clock=clock).store) == 0

    def test_deferred_dispatch(self, clock, sample_rooms):
        """测试延迟分发: shutdown 时投递通知"""
        settings = Settings(_env_file=None, SEED_DEMO_DATA=False, EVENT_DISPATCH_MODE="deferred")
        notifier = Mock()
        ops = build_container(settings, clock=clock, notifier=notifier)
        ops.store.add(sample_rooms[0])

        ops.rooms.assign_guest(1, {"guest_name": "Ada"})
        ops.rooms.checkout_guest(1)
        notifier.notify.assert_not_called()

        ops.shutdown()
        notifier.notify.assert_called_once()

    def test_dispatch_events_drains_queue(self, clock, sample_rooms):
        """测试延迟分发: 每批命令后 dispatch_events 清空队列"""
        settings = Settings(_env_file=None, SEED_DEMO_DATA=False, EVENT_DISPATCH_MODE="deferred")
        notifier = Mock()
        ops = build_container(settings, clock=clock, notifier=notifier)
        ops.store.add(sample_rooms[0])

        ops.rooms.assign_guest(1, {"guest_name": "Ada"})
        ops.rooms.checkout_guest(1)
        assert ops.event_bus.pending_count() == 2

        results = ops.dispatch_events()

        assert len(results) == 2
        assert ops.event_bus.pending_count() == 0
        notifier.notify.assert_called_once()
        assert ops.dispatch_events() == []

    def test_dispatch_events_noop_in_sync_mode(self, container):
        container.rooms.update_status(1, "Maintenance")
        assert container.dispatch_events() == []

    def test_get_audit_log(self, container):
        container.rooms.update_status(1, "Maintenance")
        entries = container.get_audit_log(1, "Room")
        assert [e.action for e in entries] == ["status_updated"]


def test_configure_logging(test_settings):
    with patch("hotelops.container.logging.basicConfig") as basic_config:
        configure_logging(test_settings)
    assert basic_config.call_args.kwargs["level"] == logging.INFO


def test_booking_flow_end_to_end(container, clock):
    """测试完整流程: 查询 -> 预订 -> 支付 -> 入住 -> 退房 -> 清扫"""
    today = clock.now.date()
    stay = {"check_in": today, "check_out": today + timedelta(days=2)}

    offered = container.availability.search_available_rooms(stay)
    room = next(r for r in offered if r.number == "101")

    booking = container.payments.reserve({
        "guest_name": "Ada Lovelace",
        "room_number": room.number,
        "total_amount": room.total,
        **stay,
    })
    booking, receipt = container.payments.pay_and_confirm(booking.id, booking.total_amount)
    assert booking.status == BookingStatus.CONFIRMED
    assert receipt.transaction_id == "TXN_2024_001"

    again = container.availability.search_available_rooms(stay)
    assert "101" not in [r.number for r in again]

    container.rooms.assign_guest(room.id, {"guest_name": booking.guest_name})
    container.bookings.update_booking_status(booking.id, "checked_in")
    container.rooms.checkout_guest(room.id)
    container.bookings.update_booking_status(booking.id, "checked_out")
    cleaned = container.rooms.mark_cleaning_complete(room.id)

    assert cleaned.status == RoomStatus.AVAILABLE
    assert [h.status for h in cleaned.status_history] == [
        RoomStatus.AVAILABLE, RoomStatus.OCCUPIED, RoomStatus.CLEANING, RoomStatus.AVAILABLE,
    ]
    assert container.bookings.get_unpaid_bookings() == []
