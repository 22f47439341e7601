"""
core - 运行时框架

领域无关的框架层，包含：
- engine: 核心引擎（事件总线, 状态机转换表, 审计日志）
- errors: 统一错误类型

使用方式:
    >>> from core.engine import StateMachine, AuditLog, EventBus
    >>> from core.errors import NotFoundError, InvalidTransitionError
"""

from core.errors import (
    HotelOpsError,
    NotFoundError,
    ValidationError,
    InvalidTransitionError,
    ConflictError,
    PaymentFailedError,
)

__all__ = [
    "HotelOpsError",
    "NotFoundError",
    "ValidationError",
    "InvalidTransitionError",
    "ConflictError",
    "PaymentFailedError",
]
