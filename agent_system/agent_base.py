"""
Agent Base - Shared contract for all behavior agents.

Each agent reacts to normalized behavior events, periodically inspects a
snapshot of the session, and requests UI effects through the action bus.
"""

import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Mapping, Optional, Protocol, Set, runtime_checkable
import logging

from .action_bus import ActionBus, ActionKind, ActionRequest
from .behavior_store import BehaviorSnapshot, EventType
from .scheduler import Scheduler
from .settings import AgentSettings

logger = logging.getLogger(__name__)


class AgentCapability(Enum):
    """What an agent looks after."""

    BEHAVIOR_ANALYSIS = "behavior_analysis"
    PERSONALIZATION = "personalization"
    PERFORMANCE = "performance"
    CONVERSION = "conversion"
    SUPPORT = "support"
    SECURITY = "security"
    WORKFLOW = "workflow"


@runtime_checkable
class Agent(Protocol):
    """Anything the registry can drive."""

    name: str
    active: bool

    def handle_event(self, event_type: EventType, data: Any) -> None: ...

    def optimize(self, snapshot: BehaviorSnapshot) -> None: ...


@dataclass
class AgentConfig:
    """Configuration for an agent."""

    name: str
    capabilities: Set[AgentCapability] = field(default_factory=set)
    debug: bool = False


class AgentBase(ABC):
    """
    Base class for the built-in agents.

    Each agent must:
    1. Implement handle_event() for per-event reactions
    2. Implement optimize() for cross-event analysis
    3. Request effects only through dispatch_action()
    """

    def __init__(
        self,
        config: AgentConfig,
        action_bus: Optional[ActionBus] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[AgentSettings] = None,
    ):
        self.config = config
        self.action_bus = action_bus
        self.scheduler = scheduler
        self.settings = settings or AgentSettings()
        self.active = True
        self.last_action: Optional[ActionRequest] = None
        self.action_history: Deque[ActionRequest] = deque(
            maxlen=self.settings.action_history_limit
        )
        self._once: Set[str] = set()
        self._logger = logging.getLogger(f"Agent.{config.name}")

        if config.debug or self.settings.debug:
            self._logger.setLevel(logging.DEBUG)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def capabilities(self) -> Set[AgentCapability]:
        return self.config.capabilities

    @abstractmethod
    def handle_event(self, event_type: EventType, data: Any) -> None:
        """React to one behavior event. Called only while the agent is active."""
        pass

    @abstractmethod
    def optimize(self, snapshot: BehaviorSnapshot) -> None:
        """Analyze the session as a whole. Called once per optimization cycle."""
        pass

    def attach(self, action_bus: ActionBus, scheduler: Optional[Scheduler] = None) -> None:
        """Connect an agent built without a bus or scheduler."""
        if self.action_bus is None:
            self.action_bus = action_bus
        if self.scheduler is None:
            self.scheduler = scheduler

    def shutdown(self) -> None:
        """Drop delayed work on page teardown. Agents without timers have nothing to do."""
        pass

    def now(self) -> float:
        """Current time in ms, from the scheduler when one is attached."""
        if self.scheduler is not None:
            return self.scheduler.now()
        return time.time() * 1000

    def dispatch_action(
        self, kind: Any, data: Optional[Mapping[str, Any]] = None
    ) -> Optional[ActionRequest]:
        """
        Emit one ActionRequest.

        Unknown kinds are dropped. The request is kept in the agent's own
        history and then published on the action bus.
        """
        action_kind = ActionKind.parse(kind)
        if action_kind is None:
            self.log_debug(f"Dropping action of unknown kind {kind!r}")
            return None

        request = ActionRequest(
            kind=action_kind.value,
            data=dict(data or {}),
            source_agent=self.name,
            timestamp=self.now(),
        )

        self.last_action = request
        self.action_history.append(request)

        if self.action_bus is None:
            self.log_debug(f"No action bus attached, {request.kind} not delivered")
            return request

        self.action_bus.publish(request)
        return request

    def first_time(self, key: str) -> bool:
        """True only on the first call with this key."""
        if key in self._once:
            return False
        self._once.add(key)
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Get agent statistics."""
        return {
            "name": self.name,
            "active": self.active,
            "actions_dispatched": len(self.action_history),
            "last_action": self.last_action.kind if self.last_action else None,
        }

    def get_action_history(self, kind: Optional[str] = None) -> List[ActionRequest]:
        history = list(self.action_history)
        if kind:
            history = [a for a in history if a.kind == kind]
        return history

    def log_debug(self, message: str) -> None:
        """Log debug message."""
        self._logger.debug(f"[{self.name}] {message}")

    def log_info(self, message: str) -> None:
        """Log info message."""
        self._logger.info(f"[{self.name}] {message}")

    def log_warning(self, message: str) -> None:
        """Log warning message."""
        self._logger.warning(f"[{self.name}] {message}")

    def log_error(self, message: str) -> None:
        """Log error message."""
        self._logger.error(f"[{self.name}] {message}")
