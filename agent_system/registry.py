"""
Agent Registry - Name-keyed agents and the single fan-out point for events.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple
import logging

from .agent_base import Agent
from .behavior_store import BehaviorSnapshot, EventType
from .errors import AgentNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class DeliveryStats:
    """Per-agent delivery bookkeeping."""

    events: int = 0
    optimizations: int = 0
    faults: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "events": self.events,
            "optimizations": self.optimizations,
            "faults": self.faults,
        }


class AgentRegistry:
    """
    Holds at most one agent per name, in registration order.

    Re-registering a name replaces the agent in place; pause/resume only
    toggle the agent's active flag.
    """

    def __init__(self):
        self._agents: Dict[str, Agent] = {}
        self._stats: Dict[str, DeliveryStats] = {}

    def register(self, name: str, agent: Agent) -> None:
        if name in self._agents:
            logger.debug(f"Replacing agent '{name}'")
        self._agents[name] = agent
        self._stats[name] = DeliveryStats()

    def unregister(self, name: str) -> Optional[Agent]:
        self._stats.pop(name, None)
        return self._agents.pop(name, None)

    def get(self, name: str) -> Optional[Agent]:
        return self._agents.get(name)

    def require(self, name: str) -> Agent:
        """Like get(), but raises AgentNotFoundError."""
        agent = self._agents.get(name)
        if agent is None:
            raise AgentNotFoundError(name)
        return agent

    def pause(self, name: str) -> bool:
        agent = self._agents.get(name)
        if agent is None:
            return False
        agent.active = False
        return True

    def resume(self, name: str) -> bool:
        agent = self._agents.get(name)
        if agent is None:
            return False
        agent.active = True
        return True

    def names(self) -> List[str]:
        return list(self._agents)

    def items(self) -> List[Tuple[str, Agent]]:
        return list(self._agents.items())

    def __contains__(self, name: str) -> bool:
        return name in self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._agents))

    def notify(self, event_type: EventType, data: Any) -> int:
        """
        Deliver an event to every active agent in registration order.

        A failing agent is logged and skipped. Returns the number of agents
        that handled the event without error.
        """
        delivered = 0

        for name, agent in self.items():
            if not agent.active:
                continue
            stats = self._stats.setdefault(name, DeliveryStats())
            try:
                agent.handle_event(event_type, data)
                stats.events += 1
                delivered += 1
            except Exception as e:
                stats.faults += 1
                logger.warning(f"Agent {name} error on {getattr(event_type, 'value', event_type)}: {e}")

        return delivered

    def run_optimization_cycle(self, snapshot: BehaviorSnapshot) -> int:
        """Call optimize() on every active agent under the same fault isolation."""
        optimized = 0

        for name, agent in self.items():
            if not agent.active:
                continue
            stats = self._stats.setdefault(name, DeliveryStats())
            try:
                agent.optimize(snapshot)
                stats.optimizations += 1
                optimized += 1
            except Exception as e:
                stats.faults += 1
                logger.warning(f"Agent {name} optimization error: {e}")

        return optimized

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        """Delivery statistics keyed by agent name."""
        return {
            name: {
                "active": agent.active,
                **self._stats.get(name, DeliveryStats()).to_dict(),
            }
            for name, agent in self._agents.items()
        }
