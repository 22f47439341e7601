"""
hotelops/services/room_status_machine.py

RoomStatusMachine - 房态服务

Validates and executes room commands against the RoomStore. Every command
follows the same sequence:

    read snapshot -> validate (input, guard table) -> compute next snapshot
    -> compare-and-swap write -> audit entry -> outbound event

A command that fails at any step leaves the room untouched and writes no
audit entry.
"""
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union
import logging

from core.engine.audit import AuditLog
from core.engine.event_bus import Event, EventBus
from core.engine.state_machine import StateMachine
from core.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from hotelops.config import Settings, settings as default_settings
from hotelops.domain import room_lifecycle
from hotelops.models.events import EventType, RoomStatusChangedData
from hotelops.models.ontology import NoteType, Room, RoomNote, RoomStatus, StatusHistoryEntry
from hotelops.models.schemas import GuestAssignment, RoomUpdate, parse_input
from hotelops.services.room_store import RoomStore, parse_room_status

logger = logging.getLogger(__name__)

ENTITY_TYPE = "Room"


def _audit_view(room: Room) -> Dict[str, Any]:
    """Room snapshot for the audit log; history and notes are summarized."""
    view = room.to_dict()
    view.pop("status_history")
    view["notes"] = len(room.notes)
    return view


def _clear_guest(room: Room) -> None:
    room.guest_name = None
    room.checkin_time = None
    room.checkout_time = None


class RoomStatusMachine:
    """
    房态服务

    Every mutating command accepts ``expected_version``: the ``Room.version``
    the caller based its decision on. A mismatch raises ``ConflictError`` so
    two operators editing the same room cannot silently overwrite each other.

    Example:
        >>> rooms = RoomStatusMachine(store, audit_log, event_bus)
        >>> rooms.assign_guest(1, {"guest_name": "Ada Lovelace"})
        >>> rooms.checkout_guest(1)      # -> Cleaning
        >>> rooms.mark_cleaning_complete(1)
    """

    def __init__(
        self,
        store: RoomStore,
        audit_log: AuditLog,
        event_bus: EventBus,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        machine: Optional[StateMachine] = None,
    ):
        self._store = store
        self._audit = audit_log
        self._publish_event = event_bus.publish
        self._settings = settings or default_settings
        self._clock = clock or datetime.now
        self._machine = machine or room_lifecycle.create_room_state_machine()

    @property
    def store(self) -> RoomStore:
        return self._store

    # ============== 内部步骤 ==============

    def _operator(self, changed_by: Optional[str]) -> str:
        return changed_by or self._settings.DEFAULT_OPERATOR

    def _load(self, room_id: Any, expected_version: Optional[int]) -> Room:
        room = self._store.get_by_id(room_id)
        if expected_version is not None and room.version != expected_version:
            logger.warning(
                f"Room {room.number}: command based on v{expected_version}, current is v{room.version}"
            )
            raise ConflictError(
                f"Room {room.number} was modified by another operation; reload and retry",
                {"room_id": room.id, "expected_version": expected_version, "current_version": room.version},
            )
        return room

    def _fire(self, room: Room, trigger: str, target: Optional[RoomStatus] = None) -> RoomStatus:
        try:
            resolved = self._machine.fire(
                room.status.value,
                trigger,
                target.value if target is not None else None,
                room_lifecycle.room_context(room),
            )
        except InvalidTransitionError as e:
            raise InvalidTransitionError(
                f"Room {room.number}: {e.message}",
                {**e.context, "room_id": room.id, "room_number": room.number},
            ) from e
        return RoomStatus(resolved)

    def _append_history(
        self,
        before: Room,
        after: Room,
        changed_by: str,
        now: datetime,
        note: Optional[str] = None,
        bulk_operation_id: Optional[str] = None,
    ) -> None:
        after.status_history.append(StatusHistoryEntry(
            status=after.status,
            timestamp=now,
            changed_from=before.status,
            changed_by=changed_by,
            note=note,
            guest_name=after.guest_name if after.status == RoomStatus.OCCUPIED else None,
            bulk_operation_id=bulk_operation_id,
        ))

    def _commit(
        self,
        before: Room,
        after: Room,
        action: str,
        user: str,
        event_type: EventType,
        reason: str = "",
        bulk_operation_id: Optional[str] = None,
    ) -> Room:
        saved = self._store.save(after, before.version)

        extra = {"bulk_operation_id": bulk_operation_id} if bulk_operation_id else None
        self._audit.record(
            entity_type=ENTITY_TYPE,
            entity_id=saved.id,
            action=action,
            old_value=_audit_view(before),
            new_value=_audit_view(saved),
            user=user,
            extra=extra,
        )
        logger.info(
            f"Room {saved.number}: {action} ({before.status.value} -> {saved.status.value}) by {user}"
        )

        event = Event(
            event_type=event_type.value,
            timestamp=saved.last_updated,
            data=RoomStatusChangedData(
                room_id=saved.id,
                room_number=saved.number,
                old_status=before.status.value,
                new_status=saved.status.value,
                changed_by=user,
                reason=reason,
                guest_name=before.guest_name if event_type == EventType.GUEST_CHECKED_OUT else saved.guest_name,
                bulk_operation_id=bulk_operation_id,
            ).to_dict(),
            source="room_status_machine",
            correlation_id=bulk_operation_id,
        )
        self._publish_event(event)
        return saved

    # ============== 状态命令 ==============

    def assign_guest(
        self,
        room_id: Any,
        guest_data: Union[GuestAssignment, Dict[str, Any]],
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Room:
        """
        入住: Available -> Occupied

        Raises:
            ValidationError: empty guest name
            NotFoundError: unknown room
            InvalidTransitionError: room is not Available
            ConflictError: stale ``expected_version``
        """
        data = parse_input(GuestAssignment, guest_data)
        room = self._load(room_id, expected_version)
        target = self._fire(room, room_lifecycle.ASSIGN_GUEST)

        user = self._operator(changed_by)
        now = self._clock()
        updated = room.copy()
        updated.status = target
        updated.guest_name = data.guest_name
        updated.checkin_time = data.checkin_time or now
        updated.checkout_time = data.checkout_time
        updated.last_updated = now
        self._append_history(room, updated, user, now)

        return self._commit(room, updated, "guest_assigned", user, EventType.GUEST_ASSIGNED)

    def checkout_guest(
        self,
        room_id: Any,
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Room:
        """退房: Occupied -> Cleaning, guest fields cleared."""
        room = self._load(room_id, expected_version)
        target = self._fire(room, room_lifecycle.CHECKOUT_GUEST)

        user = self._operator(changed_by)
        now = self._clock()
        updated = room.copy()
        updated.status = target
        _clear_guest(updated)
        updated.last_updated = now
        self._append_history(room, updated, user, now, note="Guest checkout completed")

        return self._commit(room, updated, "guest_checked_out", user, EventType.GUEST_CHECKED_OUT)

    def update_status(
        self,
        room_id: Any,
        new_status: Union[RoomStatus, str],
        changed_by: Optional[str] = None,
        note: Optional[str] = None,
        expected_version: Optional[int] = None,
        bulk_operation_id: Optional[str] = None,
    ) -> Room:
        """
        Operator override between any two statuses.

        Guest fields are cleared unless the destination is Occupied. Moving a
        blocked room anywhere but OutOfOrder lifts the block.
        """
        status = parse_room_status(new_status)
        room = self._load(room_id, expected_version)
        target = self._fire(room, room_lifecycle.UPDATE_STATUS, status)

        user = self._operator(changed_by)
        now = self._clock()
        updated = room.copy()
        updated.status = target
        if target != RoomStatus.OCCUPIED:
            _clear_guest(updated)
        if target != RoomStatus.OUT_OF_ORDER:
            updated.blocked = False
            updated.block_reason = None
        updated.last_updated = now
        self._append_history(room, updated, user, now, note=note, bulk_operation_id=bulk_operation_id)

        return self._commit(
            room, updated, "status_updated", user, EventType.ROOM_STATUS_CHANGED,
            reason=note or "", bulk_operation_id=bulk_operation_id,
        )

    def mark_cleaning_complete(
        self,
        room_id: Any,
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Room:
        """Housekeeping sign-off; the room goes back on sale."""
        return self.update_status(
            room_id, RoomStatus.AVAILABLE, changed_by=changed_by,
            note="Cleaning completed", expected_version=expected_version,
        )

    def block_room(
        self,
        room_id: Any,
        reason: str,
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
        bulk_operation_id: Optional[str] = None,
    ) -> Room:
        """
        锁房: status -> OutOfOrder, blocked with a reason.

        Raises:
            ValidationError: empty reason
            InvalidTransitionError: room already blocked
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Block reason is required", {"room_id": room_id})

        room = self._load(room_id, expected_version)
        target = self._fire(room, room_lifecycle.BLOCK)

        user = self._operator(changed_by)
        now = self._clock()
        updated = room.copy()
        updated.status = target
        updated.blocked = True
        updated.block_reason = reason
        _clear_guest(updated)
        updated.last_updated = now
        self._append_history(
            room, updated, user, now,
            note=f"Room blocked - {reason}", bulk_operation_id=bulk_operation_id,
        )

        return self._commit(
            room, updated, "room_blocked", user, EventType.ROOM_BLOCKED,
            reason=reason, bulk_operation_id=bulk_operation_id,
        )

    def unblock_room(
        self,
        room_id: Any,
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Room:
        """解除锁房: OutOfOrder (blocked) -> Available."""
        room = self._load(room_id, expected_version)
        target = self._fire(room, room_lifecycle.UNBLOCK)

        user = self._operator(changed_by)
        now = self._clock()
        updated = room.copy()
        updated.status = target
        updated.blocked = False
        updated.block_reason = None
        updated.last_updated = now
        self._append_history(room, updated, user, now, note="Room unblocked and made available")

        return self._commit(room, updated, "room_unblocked", user, EventType.ROOM_UNBLOCKED)

    # ============== 非状态命令 ==============

    def add_note(
        self,
        room_id: Any,
        text: str,
        note_type: Union[NoteType, str] = NoteType.GENERAL,
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Room:
        """Append a note; the status and its history are untouched."""
        content = (text or "").strip()
        if not content:
            raise ValidationError("Note content is required", {"room_id": room_id})
        try:
            note_type = NoteType(note_type)
        except ValueError:
            raise ValidationError(f"Unknown note type: {note_type}")

        room = self._load(room_id, expected_version)
        user = self._operator(changed_by)
        now = self._clock()
        updated = room.copy()
        updated.notes.append(RoomNote(
            id=max((n.id for n in room.notes), default=0) + 1,
            content=content,
            timestamp=now,
            added_by=user,
            type=note_type,
        ))
        updated.last_updated = now

        return self._commit(room, updated, "note_added", user, EventType.ROOM_UPDATED, reason=content)

    def delete_note(
        self,
        room_id: Any,
        note_id: int,
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Room:
        room = self._load(room_id, expected_version)
        if not any(n.id == note_id for n in room.notes):
            raise NotFoundError(
                f"Note {note_id} not found on room {room.number}",
                {"room_id": room.id, "note_id": note_id},
            )

        user = self._operator(changed_by)
        updated = room.copy()
        updated.notes = [n for n in room.notes if n.id != note_id]
        updated.last_updated = self._clock()

        return self._commit(room, updated, "note_deleted", user, EventType.ROOM_UPDATED)

    def update_room(
        self,
        room_id: Any,
        data: Union[RoomUpdate, Dict[str, Any]],
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Room:
        """
        Edit descriptive fields (number, floor, type, nightly rate).

        Status, guest, block, notes and history have dedicated commands and
        are rejected here.
        """
        changes = parse_input(RoomUpdate, data).model_dump(exclude_none=True)
        room = self._load(room_id, expected_version)

        new_number = changes.get("number")
        if new_number and new_number != room.number:
            clash = self._store.find_by_number(new_number)
            if clash is not None:
                raise ValidationError(
                    f"Room number {new_number} is already used by room {clash.id}",
                    {"room_id": room.id, "number": new_number},
                )

        user = self._operator(changed_by)
        updated = room.copy()
        for key, value in changes.items():
            setattr(updated, key, value)
        updated.last_updated = self._clock()

        return self._commit(room, updated, "room_updated", user, EventType.ROOM_UPDATED)


__all__ = ["RoomStatusMachine"]
