"""
core/engine/audit.py

审计日志引擎 - 记录系统关键操作

Append-only: entries are frozen once written and are never removed.
"""
from typing import Dict, Any, Optional, List, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
import json
import logging
import uuid

logger = logging.getLogger(__name__)


class AuditSeverity(str, Enum):
    """审计日志严重程度"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _dump(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str, sort_keys=True)


@dataclass(frozen=True)
class AuditEntry:
    """
    审计日志条目

    Attributes:
        id: 日志唯一标识
        entity_type: 实体类型 ("Room", "Booking")
        entity_id: 实体ID
        action: 操作类型
        old_value: 旧值（JSON）
        new_value: 新值（JSON）
        timestamp: 日志时间戳
        user: 操作人
        severity: 严重程度
        extra: 额外信息 (e.g. bulk_operation_id)
    """

    id: str
    entity_type: str
    entity_id: Any
    action: str
    old_value: Optional[str]
    new_value: Optional[str]
    timestamp: datetime
    user: str
    severity: AuditSeverity = AuditSeverity.INFO
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def old_snapshot(self) -> Any:
        """Decode ``old_value``."""
        return json.loads(self.old_value) if self.old_value is not None else None

    def new_snapshot(self) -> Any:
        """Decode ``new_value``."""
        return json.loads(self.new_value) if self.new_value is not None else None

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "timestamp": self.timestamp.isoformat(),
            "user": self.user,
            "severity": self.severity.value,
            "extra": dict(self.extra),
        }


class AuditLog:
    """
    审计日志引擎

    特性：
    - 仅追加 (append-only)
    - 按实体/操作人/操作筛选
    - 内存存储

    Example:
        >>> log = AuditLog()
        >>> log.record(
        ...     entity_type="Room",
        ...     entity_id=101,
        ...     action="room.update_status",
        ...     old_value={"status": "Available"},
        ...     new_value={"status": "Maintenance"},
        ...     user="Front Desk",
        ... )
        >>> entries = log.get_by_entity(101, "Room")
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now
        self._entries: List[AuditEntry] = []
        self._entity_index: Dict[str, List[int]] = {}  # f"{type}:{id}" -> positions
        self._user_index: Dict[str, List[int]] = {}

    def record(
        self,
        entity_type: str,
        entity_id: Any,
        action: str,
        old_value: Any = None,
        new_value: Any = None,
        user: str = "System",
        severity: AuditSeverity = AuditSeverity.INFO,
        extra: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        """
        记录审计日志

        Args:
            entity_type: 实体类型
            entity_id: 实体ID
            action: 操作类型
            old_value: 旧值 (any JSON-serializable snapshot)
            new_value: 新值 (any JSON-serializable snapshot)
            user: 操作人
            severity: 严重程度
            extra: 额外信息

        Returns:
            创建的审计日志
        """
        entry = AuditEntry(
            id=str(uuid.uuid4()),
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            old_value=_dump(old_value),
            new_value=_dump(new_value),
            timestamp=self._clock(),
            user=user,
            severity=severity,
            extra=MappingProxyType(dict(extra or {})),
        )

        position = len(self._entries)
        self._entries.append(entry)
        self._entity_index.setdefault(f"{entity_type}:{entity_id}", []).append(position)
        self._user_index.setdefault(user, []).append(position)

        logger.info(f"Audit log: {action} by {user} on {entity_type}:{entity_id}")
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def get_by_id(self, entry_id: str) -> Optional[AuditEntry]:
        """根据ID获取日志"""
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def get_by_entity(self, entity_id: Any, entity_type: Optional[str] = None) -> List[AuditEntry]:
        """
        获取实体的日志, oldest first.

        Without ``entity_type`` every entity sharing the id is matched.
        """
        if entity_type is not None:
            positions = self._entity_index.get(f"{entity_type}:{entity_id}", [])
            return [self._entries[i] for i in positions]
        return [e for e in self._entries if e.entity_id == entity_id]

    def get_by_user(self, user: str) -> List[AuditEntry]:
        """获取操作人的日志"""
        return [self._entries[i] for i in self._user_index.get(user, [])]

    def get_by_action(self, action: str) -> List[AuditEntry]:
        """获取指定操作的日志"""
        return [e for e in self._entries if e.action == action]

    def get_by_extra(self, key: str, value: Any) -> List[AuditEntry]:
        """Entries whose ``extra[key] == value`` (e.g. one bulk operation)."""
        return [e for e in self._entries if e.extra.get(key) == value]

    def get_all(
        self,
        limit: int = 100,
        offset: int = 0,
        severity: Optional[AuditSeverity] = None,
    ) -> List[AuditEntry]:
        """获取所有日志（分页）"""
        entries = self._entries
        if severity is not None:
            entries = [e for e in entries if e.severity == severity]
        return list(entries[offset: offset + limit])

    def get_statistics(self) -> Dict[str, Any]:
        """获取审计统计"""
        by_action: Dict[str, int] = {}
        for entry in self._entries:
            by_action[entry.action] = by_action.get(entry.action, 0) + 1
        return {
            "total_entries": len(self._entries),
            "by_action": by_action,
        }


__all__ = [
    "AuditSeverity",
    "AuditEntry",
    "AuditLog",
]
