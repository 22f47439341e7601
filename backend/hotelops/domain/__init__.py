"""
hotelops/domain - 领域规则

- room_lifecycle: 房间状态转换表
- booking_lifecycle: 预订状态转换表
- pricing: 计价与房型展示信息
"""
from hotelops.domain.room_lifecycle import create_room_state_machine
from hotelops.domain.booking_lifecycle import create_booking_state_machine
from hotelops.domain.pricing import calculate_nights, calculate_total, round2

__all__ = [
    "create_room_state_machine",
    "create_booking_state_machine",
    "calculate_nights",
    "calculate_total",
    "round2",
]
