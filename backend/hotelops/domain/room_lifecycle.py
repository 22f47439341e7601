"""
hotelops/domain/room_lifecycle.py

房间生命周期转换表

    assign_guest      Available  -> Occupied
    checkout_guest    Occupied   -> Cleaning
    update_status     *          -> any status
    block             *          -> OutOfOrder   (not while blocked)
    unblock           OutOfOrder -> Available    (only while blocked)

Guard conditions read ``{"blocked": bool}`` from the context.
"""
from typing import Any, Dict

from core.engine.state_machine import ANY_STATE, StateMachine, StateMachineConfig, StateTransition
from hotelops.models.ontology import Room, RoomStatus

ASSIGN_GUEST = "assign_guest"
CHECKOUT_GUEST = "checkout_guest"
UPDATE_STATUS = "update_status"
BLOCK = "block"
UNBLOCK = "unblock"


def _not_blocked(ctx: Dict[str, Any]) -> bool:
    return not ctx.get("blocked", False)


def _blocked(ctx: Dict[str, Any]) -> bool:
    return bool(ctx.get("blocked", False))


def room_context(room: Room) -> Dict[str, Any]:
    return {"blocked": room.blocked}


def create_room_state_machine() -> StateMachine:
    """创建房间状态机"""
    transitions = [
        StateTransition(
            from_state=RoomStatus.AVAILABLE.value,
            to_state=RoomStatus.OCCUPIED.value,
            trigger=ASSIGN_GUEST,
        ),
        StateTransition(
            from_state=RoomStatus.OCCUPIED.value,
            to_state=RoomStatus.CLEANING.value,
            trigger=CHECKOUT_GUEST,
        ),
        StateTransition(
            from_state=ANY_STATE,
            to_state=RoomStatus.OUT_OF_ORDER.value,
            trigger=BLOCK,
            condition=_not_blocked,
            rejection="Room is already blocked",
        ),
        StateTransition(
            from_state=RoomStatus.OUT_OF_ORDER.value,
            to_state=RoomStatus.AVAILABLE.value,
            trigger=UNBLOCK,
            condition=_blocked,
            rejection="Room is not blocked",
        ),
    ]
    # Operator override: every status is reachable from every status.
    transitions.extend(
        StateTransition(
            from_state=ANY_STATE,
            to_state=status.value,
            trigger=UPDATE_STATUS,
        )
        for status in RoomStatus
    )

    return StateMachine(
        StateMachineConfig(
            name="Room",
            states=[s.value for s in RoomStatus],
            transitions=transitions,
            initial_state=RoomStatus.AVAILABLE.value,
        )
    )


__all__ = [
    "ASSIGN_GUEST",
    "CHECKOUT_GUEST",
    "UPDATE_STATUS",
    "BLOCK",
    "UNBLOCK",
    "room_context",
    "create_room_state_machine",
]
