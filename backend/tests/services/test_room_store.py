"""
测试 hotelops.services.room_store 房间仓储
"""
import pytest
from decimal import Decimal

from core.errors import ConflictError, NotFoundError, ValidationError
from hotelops.models.ontology import RoomStatus
from hotelops.services.room_store import RoomStore, normalize_room_id

from conftest import make_room


class TestRegistration:
    def test_initial_history_entry(self, room_store, clock):
        """测试注册时补齐初始历史记录"""
        room = room_store.get_by_id(1)

        assert len(room.status_history) == 1
        assert room.status_history[-1].status == room.status
        assert room.status_history[-1].changed_by == "System"
        assert room.last_updated == clock.now
        assert room.version == 1

    def test_duplicate_id_rejected(self, room_store):
        with pytest.raises(ValidationError):
            room_store.add(make_room(1, "999"))

    def test_duplicate_number_rejected(self, room_store):
        with pytest.raises(ValidationError):
            room_store.add(make_room(99, "101"))

    def test_blocked_must_be_out_of_order(self):
        """测试锁房必须为 OutOfOrder"""
        with pytest.raises(ValidationError):
            RoomStore([make_room(1, "101", blocked=True, block_reason="x")])


class TestQueries:
    def test_get_all_in_order(self, room_store):
        assert [r.number for r in room_store.get_all()] == ["101", "102", "201", "202", "301"]
        assert len(room_store) == 5

    @pytest.mark.parametrize("room_id", [1, "1", " 1 "])
    def test_get_by_id_accepts_numeric_strings(self, room_store, room_id):
        """测试房间ID可为数字字符串"""
        assert room_store.get_by_id(room_id).number == "101"

    @pytest.mark.parametrize("room_id", [999, "abc", None, True])
    def test_get_by_id_unknown(self, room_store, room_id):
        with pytest.raises(NotFoundError):
            room_store.get_by_id(room_id)

    def test_contains(self, room_store):
        assert 1 in room_store
        assert "2" in room_store
        assert "nope" not in room_store

    def test_get_by_number(self, room_store):
        assert room_store.get_by_number("201").id == 3
        assert room_store.find_by_number("999") is None
        with pytest.raises(NotFoundError):
            room_store.get_by_number("999")

    def test_get_by_floor(self, room_store):
        assert [r.id for r in room_store.get_by_floor(2)] == [3, 4]
        assert [r.id for r in room_store.get_by_floor("1")] == [1, 2]

    @pytest.mark.parametrize("floor", ["first", "", None, "1.5"])
    def test_get_by_invalid_floor(self, room_store, floor):
        with pytest.raises(ValidationError):
            room_store.get_by_floor(floor)

    def test_get_by_status(self, room_store):
        """测试按状态查询"""
        assert [r.id for r in room_store.get_by_status(RoomStatus.AVAILABLE)] == [1, 2]
        assert [r.id for r in room_store.get_by_status("Maintenance")] == [4]

    def test_get_by_unknown_status(self, room_store):
        with pytest.raises(ValidationError):
            room_store.get_by_status("Haunted")

    def test_reads_are_detached(self, room_store):
        """测试读取返回副本"""
        room = room_store.get_by_id(1)
        room.status = RoomStatus.OCCUPIED
        room.notes.append("scribble")

        fresh = room_store.get_by_id(1)
        assert fresh.status == RoomStatus.AVAILABLE
        assert fresh.notes == []

    def test_room_stats(self, room_store):
        """测试房态统计"""
        stats = room_store.get_room_stats()

        assert stats.total == 5
        assert stats.available == 2
        assert stats.cleaning == 1
        assert stats.maintenance == 1
        assert stats.out_of_order == 1
        assert stats.occupied == 0
        assert stats.occupancy_rate == 0.0

    def test_empty_store_stats(self):
        assert RoomStore().get_room_stats().occupancy_rate == 0.0


def test_normalize_room_id():
    assert normalize_room_id("42") == 42
    with pytest.raises(NotFoundError):
        normalize_room_id("4x")


class TestCompareAndSwap:
    def test_save_bumps_version(self, room_store):
        """测试保存递增版本号"""
        room = room_store.get_by_id(1)
        room.nightly_rate = Decimal("110.00")

        saved = room_store.save(room, expected_version=1)

        assert saved.version == 2
        assert room_store.get_by_id(1).nightly_rate == Decimal("110.00")

    def test_stale_write_rejected(self, room_store):
        """测试过期写入被拒绝 (lost update)"""
        first = room_store.get_by_id(1)
        second = room_store.get_by_id(1)

        first.floor = 7
        room_store.save(first, expected_version=first.version)

        second.floor = 9
        with pytest.raises(ConflictError) as exc_info:
            room_store.save(second, expected_version=second.version)

        assert exc_info.value.context["current_version"] == 2
        assert room_store.get_by_id(1).floor == 7

    def test_save_unknown_room(self, room_store):
        with pytest.raises(NotFoundError):
            room_store.save(make_room(50, "500"), expected_version=1)
