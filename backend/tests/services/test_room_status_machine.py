"""
测试 hotelops.services.room_status_machine 房态服务
"""
import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock

from core.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from hotelops.models.events import EventType
from hotelops.models.ontology import NoteType, RoomStatus


def assert_history_consistent(room):
    assert room.status_history[-1].status == room.status


# ============== 入住 / 退房 ==============

class TestAssignGuest:
    def test_assign_available_room(self, room_machine, clock):
        """测试入住空闲房间"""
        room = room_machine.assign_guest(1, {"guest_name": "Ada Lovelace"}, changed_by="Alice")

        assert room.status == RoomStatus.OCCUPIED
        assert room.guest_name == "Ada Lovelace"
        assert room.checkin_time == clock.now
        assert room.last_updated == clock.now
        assert room.version == 2

        entry = room.status_history[-1]
        assert entry.changed_from == RoomStatus.AVAILABLE
        assert entry.guest_name == "Ada Lovelace"
        assert entry.changed_by == "Alice"
        assert_history_consistent(room)

    @pytest.mark.parametrize("room_id", [3, 4, 5])
    def test_assign_rejected_unless_available(self, room_machine, room_store, room_id):
        """测试非空闲房间不能入住"""
        before = room_store.get_by_id(room_id)

        with pytest.raises(InvalidTransitionError):
            room_machine.assign_guest(room_id, {"guest_name": "Ada"})

        after = room_store.get_by_id(room_id)
        assert after.status == before.status
        assert after.version == before.version

    def test_assign_occupied_room_rejected(self, room_machine):
        room_machine.assign_guest(1, {"guest_name": "Ada"})
        with pytest.raises(InvalidTransitionError):
            room_machine.assign_guest(1, {"guest_name": "Bob"})

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_guest_name(self, room_machine, audit_log, name):
        """测试客人姓名为空"""
        with pytest.raises(ValidationError):
            room_machine.assign_guest(1, {"guest_name": name})
        assert len(audit_log) == 0

    def test_checkout_before_checkin_rejected(self, room_machine):
        with pytest.raises(ValidationError):
            room_machine.assign_guest(1, {
                "guest_name": "Ada",
                "checkin_time": datetime(2024, 1, 2),
                "checkout_time": datetime(2024, 1, 1),
            })

    def test_unknown_room(self, room_machine):
        with pytest.raises(NotFoundError):
            room_machine.assign_guest(999, {"guest_name": "Ada"})

    def test_default_operator(self, room_machine):
        """测试未指定操作人时使用默认操作人"""
        room = room_machine.assign_guest(1, {"guest_name": "Ada"})
        assert room.status_history[-1].changed_by == "Front Desk"


class TestCheckoutGuest:
    def test_checkout(self, room_machine):
        """测试退房: Occupied -> Cleaning 并清空客人信息"""
        room_machine.assign_guest(1, {"guest_name": "Ada"})
        room = room_machine.checkout_guest(1)

        assert room.status == RoomStatus.CLEANING
        assert room.guest_name is None
        assert room.checkin_time is None
        assert room.checkout_time is None
        assert room.status_history[-1].note == "Guest checkout completed"
        assert room.status_history[-1].changed_from == RoomStatus.OCCUPIED
        assert_history_consistent(room)

    @pytest.mark.parametrize("room_id", [1, 3, 4, 5])
    def test_checkout_rejected_unless_occupied(self, room_machine, room_id):
        with pytest.raises(InvalidTransitionError):
            room_machine.checkout_guest(room_id)


# ============== 状态修改 ==============

class TestUpdateStatus:
    def test_override(self, room_machine):
        """测试人工修改状态"""
        room = room_machine.update_status(3, "Available", note="Inspected")

        assert room.status == RoomStatus.AVAILABLE
        assert room.status_history[-1].note == "Inspected"
        assert room.status_history[-1].changed_from == RoomStatus.CLEANING

    def test_clears_guest_when_leaving_occupied(self, room_machine):
        """测试离开 Occupied 时清空客人信息"""
        room_machine.assign_guest(1, {"guest_name": "Ada"})
        room = room_machine.update_status(1, RoomStatus.MAINTENANCE)

        assert room.guest_name is None
        assert room.checkin_time is None

    def test_unknown_status(self, room_machine):
        with pytest.raises(ValidationError):
            room_machine.update_status(1, "Haunted")

    def test_override_lifts_block(self, room_machine, room_store):
        """测试锁房房间可直接改状态, 离开 OutOfOrder 即解除锁定"""
        room_machine.block_room(1, "Pipe burst")
        room = room_machine.update_status(1, RoomStatus.MAINTENANCE)

        assert room.status == RoomStatus.MAINTENANCE
        assert room.blocked is False
        assert room.block_reason is None
        assert room_store.get_by_id(1).blocked is False
        assert_history_consistent(room)

    def test_override_to_out_of_order_keeps_block(self, room_machine):
        room = room_machine.update_status(5, RoomStatus.OUT_OF_ORDER, note="Still waiting on glazier")

        assert room.blocked is True
        assert room.block_reason == "Broken window"

    def test_mark_cleaning_complete(self, room_machine):
        room = room_machine.mark_cleaning_complete(3)

        assert room.status == RoomStatus.AVAILABLE
        assert room.status_history[-1].note == "Cleaning completed"


# ============== 锁房 ==============

class TestBlocking:
    def test_block_room(self, room_machine):
        """测试锁房"""
        room = room_machine.block_room(1, "Leaking pipe")

        assert room.status == RoomStatus.OUT_OF_ORDER
        assert room.blocked is True
        assert room.block_reason == "Leaking pipe"
        assert room.status_history[-1].note == "Room blocked - Leaking pipe"

    def test_block_occupied_room_clears_guest(self, room_machine):
        room_machine.assign_guest(1, {"guest_name": "Ada"})
        room = room_machine.block_room(1, "Fire alarm")

        assert room.guest_name is None

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_block_requires_reason(self, room_machine, reason):
        with pytest.raises(ValidationError):
            room_machine.block_room(1, reason)

    def test_block_twice_rejected(self, room_machine):
        with pytest.raises(InvalidTransitionError):
            room_machine.block_room(5, "Again")

    def test_unblock_room(self, room_machine):
        """测试解锁"""
        room = room_machine.unblock_room(5)

        assert room.status == RoomStatus.AVAILABLE
        assert room.blocked is False
        assert room.block_reason is None
        assert_history_consistent(room)

    def test_unblock_twice_raises(self, room_machine):
        """测试重复解锁: 第二次抛出 InvalidTransitionError"""
        room_machine.unblock_room(5)
        with pytest.raises(InvalidTransitionError):
            room_machine.unblock_room(5)

    def test_unblock_unblocked_out_of_order_room(self, room_machine):
        room_machine.update_status(1, RoomStatus.OUT_OF_ORDER)
        with pytest.raises(InvalidTransitionError):
            room_machine.unblock_room(1)


# ============== 备注与房间信息 ==============

class TestNotes:
    def test_add_note_keeps_status(self, room_machine, room_store):
        """测试添加备注不影响状态与历史"""
        history_before = len(room_store.get_by_id(1).status_history)
        room = room_machine.add_note(1, "Extra towels", NoteType.HOUSEKEEPING, changed_by="Maria")

        assert room.status == RoomStatus.AVAILABLE
        assert len(room.status_history) == history_before
        assert room.notes[-1].content == "Extra towels"
        assert room.notes[-1].added_by == "Maria"
        assert room.notes[-1].type == NoteType.HOUSEKEEPING
        assert room.notes[-1].id == 1

    def test_note_ids_increment(self, room_machine):
        room_machine.add_note(1, "first")
        room = room_machine.add_note(1, "second")
        assert [n.id for n in room.notes] == [1, 2]

    def test_empty_note_rejected(self, room_machine):
        with pytest.raises(ValidationError):
            room_machine.add_note(1, "  ")

    def test_unknown_note_type(self, room_machine):
        with pytest.raises(ValidationError):
            room_machine.add_note(1, "text", "Gossip")

    def test_delete_note(self, room_machine):
        room_machine.add_note(1, "first")
        room_machine.add_note(1, "second")
        room = room_machine.delete_note(1, 1)

        assert [n.content for n in room.notes] == ["second"]

    def test_delete_unknown_note(self, room_machine):
        with pytest.raises(NotFoundError):
            room_machine.delete_note(1, 42)


class TestUpdateRoom:
    def test_update_descriptive_fields(self, room_machine):
        """测试修改房间信息"""
        room = room_machine.update_room(1, {"type": "Deluxe Queen", "nightly_rate": "150.00"})

        assert room.type == "Deluxe Queen"
        assert room.nightly_rate == Decimal("150.00")
        assert room.status == RoomStatus.AVAILABLE

    def test_status_not_editable(self, room_machine):
        with pytest.raises(ValidationError):
            room_machine.update_room(1, {"status": "Occupied"})

    def test_number_clash(self, room_machine):
        with pytest.raises(ValidationError):
            room_machine.update_room(1, {"number": "102"})

    def test_negative_rate(self, room_machine):
        with pytest.raises(ValidationError):
            room_machine.update_room(1, {"nightly_rate": "-1"})


# ============== 审计 / 并发 / 事件 ==============

class TestAuditTrail:
    def test_one_entry_per_mutation(self, room_machine, audit_log):
        """测试每次变更写一条审计"""
        room_machine.assign_guest(1, {"guest_name": "Ada"}, changed_by="Alice")
        room_machine.checkout_guest(1, changed_by="Bob")

        entries = audit_log.get_by_entity(1, "Room")
        assert [e.action for e in entries] == ["guest_assigned", "guest_checked_out"]
        assert entries[0].old_snapshot()["status"] == "Available"
        assert entries[0].new_snapshot()["status"] == "Occupied"
        assert entries[1].user == "Bob"

    def test_failed_command_writes_nothing(self, room_machine, audit_log):
        with pytest.raises(InvalidTransitionError):
            room_machine.checkout_guest(1)
        assert len(audit_log) == 0


class TestOptimisticConcurrency:
    def test_stale_expected_version(self, room_machine):
        """测试两个操作员基于同一快照操作: 后者冲突"""
        snapshot = room_machine.store.get_by_id(1)
        room_machine.assign_guest(1, {"guest_name": "Ada"}, expected_version=snapshot.version)

        with pytest.raises(ConflictError):
            room_machine.assign_guest(1, {"guest_name": "Bob"}, expected_version=snapshot.version)

        assert room_machine.store.get_by_id(1).guest_name == "Ada"

    def test_matching_expected_version(self, room_machine):
        room = room_machine.update_status(1, "Maintenance", expected_version=1)
        room = room_machine.update_status(1, "Available", expected_version=room.version)
        assert room.version == 3


class TestEvents:
    def test_events_published_after_commit(self, room_machine, event_bus):
        """测试提交后发布事件"""
        handler = Mock()
        event_bus.subscribe(EventType.GUEST_CHECKED_OUT.value, handler)

        room_machine.assign_guest(1, {"guest_name": "Ada"})
        room_machine.checkout_guest(1)

        handler.assert_called_once()
        data = handler.call_args[0][0].data
        assert data["room_number"] == "101"
        assert data["old_status"] == "Occupied"
        assert data["new_status"] == "Cleaning"
        assert data["guest_name"] == "Ada"

    def test_handler_failure_does_not_roll_back(self, room_machine, event_bus, room_store):
        """测试副作用失败不回滚已提交的变更"""
        event_bus.subscribe(EventType.ROOM_BLOCKED.value, Mock(side_effect=RuntimeError("down")))

        room = room_machine.block_room(1, "Inspection")

        assert room.blocked is True
        assert room_store.get_by_id(1).blocked is True


def test_history_matches_status_after_every_mutation(room_machine, room_store):
    """测试每次变更后历史最后一条与当前状态一致"""
    steps = [
        lambda: room_machine.assign_guest(1, {"guest_name": "Ada"}),
        lambda: room_machine.checkout_guest(1),
        lambda: room_machine.mark_cleaning_complete(1),
        lambda: room_machine.block_room(1, "Paint"),
        lambda: room_machine.unblock_room(1),
        lambda: room_machine.add_note(1, "Fresh paint"),
        lambda: room_machine.update_status(1, "Maintenance"),
    ]
    for step in steps:
        room = step()
        assert_history_consistent(room)
        assert_history_consistent(room_store.get_by_id(1))
