"""
hotelops/services/bulk_operations.py

BulkOperationCoordinator - 批量房态操作

Applies a single-room command to each id independently. One id failing
never stops the others; every outcome is reported.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
import logging
import uuid

from core.errors import HotelOpsError
from hotelops.models.ontology import Room, RoomStatus
from hotelops.services.room_status_machine import RoomStatusMachine
from hotelops.services.room_store import parse_room_status

logger = logging.getLogger(__name__)


@dataclass
class BulkFailure:
    id: Any
    error: HotelOpsError

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "error": self.error.to_dict()}


@dataclass
class BulkOperationResult:
    """
    批量操作结果

    Attributes:
        operation_id: tags every history and audit entry this operation wrote
        succeeded: updated rooms, in request order
        failed: per-id failures, in request order
    """
    operation_id: str
    succeeded: List[Room] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "succeeded": [room.to_dict() for room in self.succeeded],
            "failed": [f.to_dict() for f in self.failed],
        }


def _generate_operation_id() -> str:
    return f"bulk_{uuid.uuid4().hex[:12]}"


class BulkOperationCoordinator:
    """
    批量操作协调器

    Example:
        >>> bulk = BulkOperationCoordinator(room_status_machine)
        >>> result = bulk.bulk_update_status([1, 2, 3], "Maintenance")
        >>> [r.id for r in result.succeeded], [f.id for f in result.failed]
    """

    def __init__(self, rooms: RoomStatusMachine):
        self._rooms = rooms

    def _apply(self, room_ids: Iterable[Any], command: Callable[[Any, str], Room],
               label: str) -> BulkOperationResult:
        result = BulkOperationResult(operation_id=_generate_operation_id())

        for room_id in room_ids:
            try:
                result.succeeded.append(command(room_id, result.operation_id))
            except HotelOpsError as e:
                result.failed.append(BulkFailure(id=room_id, error=e))
                logger.warning(f"Bulk {label} {result.operation_id}: room {room_id} failed: {e.message}")

        logger.info(
            f"Bulk {label} {result.operation_id}: "
            f"{len(result.succeeded)} succeeded, {len(result.failed)} failed"
        )
        return result

    def bulk_update_status(
        self,
        room_ids: Iterable[Any],
        new_status: Union[RoomStatus, str],
        changed_by: Optional[str] = None,
    ) -> BulkOperationResult:
        """Move every room to ``new_status``; an unknown status fails up front."""
        status = parse_room_status(new_status)
        return self._apply(
            list(room_ids),
            lambda room_id, op_id: self._rooms.update_status(
                room_id, status, changed_by=changed_by,
                note="Bulk status change", bulk_operation_id=op_id,
            ),
            "update_status",
        )

    def bulk_block_rooms(
        self,
        room_ids: Iterable[Any],
        reason: str,
        changed_by: Optional[str] = None,
    ) -> BulkOperationResult:
        """Block every room with the same reason."""
        return self._apply(
            list(room_ids),
            lambda room_id, op_id: self._rooms.block_room(
                room_id, reason, changed_by=changed_by, bulk_operation_id=op_id,
            ),
            "block",
        )


__all__ = ["BulkFailure", "BulkOperationResult", "BulkOperationCoordinator"]
