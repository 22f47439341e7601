"""
core/engine/state_machine.py

状态机引擎 - 显式转换表

The machine is a pure transition table: ``(state, trigger[, target]) -> state``.
It never stores the current state itself; the entity does. Services ask the
table whether a move is legal and which state it lands in, then write the
entity through their repository.
"""
from typing import Dict, List, Any, Optional, Callable
from dataclasses import dataclass
import logging

from core.errors import InvalidTransitionError

logger = logging.getLogger(__name__)

# Wildcard source state: the transition applies from every state.
ANY_STATE = "*"


@dataclass
class StateTransition:
    """
    状态转换定义

    Attributes:
        from_state: 源状态 (ANY_STATE matches every state)
        to_state: 目标状态
        trigger: 触发动作
        condition: 可选的转换条件, receives the caller's context dict
        rejection: message used when the condition rejects the move
    """

    from_state: str
    to_state: str
    trigger: str
    condition: Optional[Callable[[Dict[str, Any]], bool]] = None
    rejection: str = ""

    def is_allowed(self, context: Dict[str, Any]) -> bool:
        """检查转换是否被允许"""
        if self.condition is None:
            return True
        try:
            return bool(self.condition(context))
        except Exception as e:
            logger.error(f"Error checking transition condition: {e}")
            return False


@dataclass
class StateMachineConfig:
    """
    状态机配置

    Attributes:
        name: 状态机名称
        states: 所有状态的列表
        transitions: 转换列表
        initial_state: 初始状态
    """

    name: str
    states: List[str]
    transitions: List[StateTransition]
    initial_state: str


class StateMachine:
    """
    状态机引擎

    Example:
        >>> machine = StateMachine(StateMachineConfig(
        ...     name="Door",
        ...     states=["open", "closed"],
        ...     transitions=[
        ...         StateTransition("open", "closed", "close"),
        ...         StateTransition("closed", "open", "open"),
        ...     ],
        ...     initial_state="closed",
        ... ))
        >>> machine.fire("closed", "open")
        'open'
    """

    def __init__(self, config: StateMachineConfig):
        self._config = config
        self._states = set(config.states)
        # from_state -> trigger -> [transition]
        self._transition_map: Dict[str, Dict[str, List[StateTransition]]] = {}

        if config.initial_state not in self._states:
            raise ValueError(f"{config.name}: unknown initial state {config.initial_state}")

        for t in config.transitions:
            if t.from_state != ANY_STATE and t.from_state not in self._states:
                raise ValueError(f"{config.name}: unknown state {t.from_state}")
            if t.to_state not in self._states:
                raise ValueError(f"{config.name}: unknown state {t.to_state}")
            by_trigger = self._transition_map.setdefault(t.from_state, {})
            by_trigger.setdefault(t.trigger, []).append(t)

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> StateMachineConfig:
        """获取状态机配置"""
        return self._config

    @property
    def initial_state(self) -> str:
        return self._config.initial_state

    def _candidates(self, current: str, trigger: str, target: Optional[str]) -> List[StateTransition]:
        explicit = self._transition_map.get(current, {}).get(trigger, [])
        wildcard = self._transition_map.get(ANY_STATE, {}).get(trigger, [])
        candidates = explicit + wildcard
        if target is not None:
            candidates = [t for t in candidates if t.to_state == target]
        return candidates

    def find_transition(
        self,
        current: str,
        trigger: str,
        target: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Optional[StateTransition]:
        """Return the first allowed transition, or None."""
        for transition in self._candidates(current, trigger, target):
            if transition.is_allowed(context or {}):
                return transition
        return None

    def can_transition_to(
        self,
        current: str,
        target: str,
        trigger: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        检查是否可以转换到目标状态

        Args:
            current: 当前状态
            target: 目标状态
            trigger: 触发动作
            context: 可选的上下文数据
        """
        if target not in self._states:
            return False
        return self.find_transition(current, trigger, target, context) is not None

    def fire(
        self,
        current: str,
        trigger: str,
        target: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Resolve the destination state for ``trigger`` fired from ``current``.

        Args:
            current: 当前状态
            trigger: 触发动作
            target: required when the trigger can land in several states
            context: 可选的上下文数据 passed to transition conditions

        Returns:
            The destination state.

        Raises:
            InvalidTransitionError: no transition matches, or its condition rejects it
        """
        if target is not None and target not in self._states:
            raise InvalidTransitionError(
                f"{self.name}: unknown target state {target}",
                {"current": current, "trigger": trigger, "target": target},
            )

        candidates = self._candidates(current, trigger, target)
        detail = {"current": current, "trigger": trigger, "target": target}

        if not candidates:
            logger.warning(f"Invalid transition: {current} -> {target} (trigger: {trigger})")
            raise InvalidTransitionError(
                f"{self.name}: cannot {trigger} from {current}"
                + (f" to {target}" if target is not None else ""),
                detail,
            )

        targets = {t.to_state for t in candidates}
        if target is None and len(targets) > 1:
            raise InvalidTransitionError(
                f"{self.name}: {trigger} needs an explicit target state", detail
            )

        for transition in candidates:
            if transition.is_allowed(context or {}):
                return transition.to_state

        reason = next((t.rejection for t in candidates if t.rejection), "")
        logger.warning(f"Transition rejected by guard: {current} -> {target} (trigger: {trigger})")
        raise InvalidTransitionError(
            reason or f"{self.name}: {trigger} is not allowed from {current}", detail
        )

    def allowed_triggers(self, current: str, context: Optional[Dict[str, Any]] = None) -> List[str]:
        """List the triggers that currently have at least one allowed transition."""
        triggers: List[str] = []
        for source in (current, ANY_STATE):
            for trigger, transitions in self._transition_map.get(source, {}).items():
                if trigger in triggers:
                    continue
                if any(t.is_allowed(context or {}) for t in transitions):
                    triggers.append(trigger)
        return triggers


__all__ = [
    "ANY_STATE",
    "StateTransition",
    "StateMachineConfig",
    "StateMachine",
]
