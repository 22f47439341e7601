"""
测试 hotelops.domain.booking_lifecycle 预订转换表
"""
import pytest

from core.errors import InvalidTransitionError
from hotelops.domain.booking_lifecycle import (
    FORWARD_TRANSITIONS,
    SET_STATUS,
    TERMINAL_STATUSES,
    create_booking_state_machine,
)
from hotelops.models.ontology import BookingStatus as S


class TestStrictTable:
    @pytest.fixture
    def machine(self):
        return create_booking_state_machine(strict=True)

    @pytest.mark.parametrize("source,target", FORWARD_TRANSITIONS)
    def test_forward_moves_allowed(self, machine, source, target):
        """测试正向流转"""
        assert machine.fire(source.value, SET_STATUS, target.value) == target.value

    @pytest.mark.parametrize("source,target", [
        (S.CHECKED_OUT, S.CONFIRMED),
        (S.CANCELLED, S.CONFIRMED),
        (S.CHECKED_IN, S.CONFIRMED),
        (S.CONFIRMED, S.PENDING_PAYMENT),
        (S.PENDING_PAYMENT, S.CHECKED_IN),
        (S.CHECKED_OUT, S.CANCELLED),
    ])
    def test_backward_and_skipping_moves_rejected(self, machine, source, target):
        """测试回退 / 跳级被拒绝"""
        with pytest.raises(InvalidTransitionError):
            machine.fire(source.value, SET_STATUS, target.value)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    def test_terminal_statuses_have_no_exits(self, machine, terminal):
        """测试终态无出口"""
        assert machine.allowed_triggers(terminal.value) == []

    def test_same_status_rejected(self, machine):
        with pytest.raises(InvalidTransitionError):
            machine.fire(S.CONFIRMED.value, SET_STATUS, S.CONFIRMED.value)


class TestPermissiveTable:
    def test_any_distinct_move_allowed(self):
        """测试宽松模式: 任意不同状态可互转"""
        machine = create_booking_state_machine(strict=False)

        assert machine.fire(S.CHECKED_OUT.value, SET_STATUS, S.CONFIRMED.value) == S.CONFIRMED.value
        assert machine.fire(S.CANCELLED.value, SET_STATUS, S.PENDING_PAYMENT.value) == S.PENDING_PAYMENT.value
        with pytest.raises(InvalidTransitionError):
            machine.fire(S.CANCELLED.value, SET_STATUS, S.CANCELLED.value)
