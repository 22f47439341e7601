"""
core/engine - 核心引擎模块

包含框架的核心引擎组件：
- event_bus: 事件总线（发布/订阅）
- state_machine: 状态机引擎（显式转换表）
- audit: 审计日志引擎（操作记录）

使用方式:
    >>> from core.engine import EventBus, StateMachine, AuditLog
"""

# 事件总线
from core.engine.event_bus import (
    EventId,
    CorrelationId,
    DISPATCH_SYNC,
    DISPATCH_DEFERRED,
    EventHandler,
    Event,
    PublishResult,
    EventBusStatistics,
    EventBus,
)

# 状态机引擎
from core.engine.state_machine import (
    ANY_STATE,
    StateTransition,
    StateMachineConfig,
    StateMachine,
)

# 审计日志引擎
from core.engine.audit import (
    AuditSeverity,
    AuditEntry,
    AuditLog,
)

__all__ = [
    # 事件总线
    "EventId",
    "CorrelationId",
    "DISPATCH_SYNC",
    "DISPATCH_DEFERRED",
    "EventHandler",
    "Event",
    "PublishResult",
    "EventBusStatistics",
    "EventBus",
    # 状态机
    "ANY_STATE",
    "StateTransition",
    "StateMachineConfig",
    "StateMachine",
    # 审计
    "AuditSeverity",
    "AuditEntry",
    "AuditLog",
]
