"""
Orchestrator - Owns the behavior store, the agent registry and the timers.

Browser events come in through handle_dom_event(), are normalized by the
BehaviorRecorder and fanned out to every active agent. Independently, a
periodic optimization cycle hands each active agent a snapshot of the
session. Agents answer through the action bus, whose consumer realizes the
requested effects on the page.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional
import logging

from .action_bus import ActionBus, ActionRequest
from .agent_base import Agent
from .behavior_store import BehaviorEvent, BehaviorStore, EventType
from .effects import EffectRealizer, PageSurface
from .recorder import BehaviorRecorder
from .registry import AgentRegistry
from .scheduler import ManualScheduler, Scheduler, TimerHandle
from .settings import AgentSettings

logger = logging.getLogger(__name__)


AGENT_ACTION_EVENT = "ai-agent-action"
PREFERENCE_CHANGE_EVENT = "user-preference-change"


class Orchestrator:
    """
    Main coordinator for the behavior agents.

    One instance per page session; nothing here is global.

    Without a scheduler the orchestrator runs on a ManualScheduler, whose
    clock only moves when advance() is called: records are stamped 0 and no
    optimization cycle fires on its own. Live pages pass an AsyncioScheduler.
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[AgentSettings] = None,
        surface: Optional[PageSurface] = None,
        agents: Optional[Mapping[str, Agent]] = None,
        action_bus: Optional[ActionBus] = None,
        debug: bool = False,
    ):
        self.settings = settings or AgentSettings()
        self.debug = debug or self.settings.debug
        self.scheduler = scheduler or ManualScheduler()
        self._logger = logging.getLogger("Orchestrator")

        if self.debug:
            self._logger.setLevel(logging.DEBUG)

        # Initialize core components
        self.action_bus = action_bus or ActionBus(max_history=self.settings.action_history_limit)
        self.store = BehaviorStore()
        self.registry = AgentRegistry()
        self.recorder = BehaviorRecorder(
            self.store,
            self.notify,
            self.scheduler,
            self.settings,
        )

        self.realizer: Optional[EffectRealizer] = None
        self._detach_consumer: Optional[Callable[[], None]] = None
        if surface is not None:
            self.realizer = EffectRealizer(surface, debug=self.debug)
            self.attach_consumer(self.realizer)

        if agents is None:
            from agents import create_default_agents

            agents = create_default_agents(self.action_bus, self.scheduler, self.settings, debug=self.debug)

        for name, agent in agents.items():
            self.add_agent(name, agent)

        self._optimization_timer: Optional[TimerHandle] = None
        self._cycles = 0
        self._running = False

        # Browser event name -> handler
        self._dom_handlers: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
            "load": self.recorder.record_page_view,
            "pageview": self.recorder.record_page_view,
            "click": lambda raw: self.recorder.record_interaction({**raw, "type": "click"}),
            "submit": lambda raw: self.recorder.record_interaction({**raw, "type": "submit"}),
            "scroll": self.recorder.record_scroll,
            "focusin": lambda raw: self.recorder.record_form_interaction({**raw, "type": "focusin"}),
            "input": lambda raw: self.recorder.record_form_interaction({**raw, "type": "input"}),
            "mouseleave": self.recorder.record_mouse_leave,
            "invalid": self.recorder.record_form_error,
            "beforeunload": lambda raw: self.unload(),
            AGENT_ACTION_EVENT: self.receive_action,
            PREFERENCE_CHANGE_EVENT: self.update_user_preferences,
        }

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cycles(self) -> int:
        return self._cycles

    def start(self, page: Optional[Mapping[str, Any]] = None) -> None:
        """Record the initial page view and start the optimization timer."""
        if self._running:
            return
        self._running = True

        self.recorder.record_page_view(page)
        self._optimization_timer = self.scheduler.call_every(
            self.settings.optimization_interval_ms, self.run_optimization_cycle
        )
        self._logger.info(f"Behavior agents started: {', '.join(self.registry.names())}")

    def stop(self) -> None:
        """Cancel the optimization timer and any delayed agent work."""
        if self._optimization_timer is not None:
            self._optimization_timer.cancel()
            self._optimization_timer = None
        self._running = False

        for name, agent in self.registry.items():
            shutdown = getattr(agent, "shutdown", None)
            if not callable(shutdown):
                continue
            try:
                shutdown()
            except Exception as e:
                self._logger.warning(f"Agent {name} shutdown error: {e}")

    def unload(self) -> None:
        """Page teardown: record time on page, stop timers, drop session state."""
        self.recorder.record_time_on_page()
        self.stop()
        self.store.clear()

    def attach_consumer(self, consumer: Callable[[ActionRequest], Any]) -> Callable[[], None]:
        """Attach the action consumer, replacing any previous one."""
        if self._detach_consumer is not None:
            self._detach_consumer()
        self._detach_consumer = self.action_bus.subscribe(consumer)
        return self._detach_consumer

    def handle_dom_event(self, event_type: str, payload: Optional[Mapping[str, Any]] = None) -> bool:
        """
        Route one browser event.

        Returns False for event names the orchestrator does not know.
        """
        handler = self._dom_handlers.get(event_type)
        if handler is None:
            self._logger.debug(f"Ignoring browser event {event_type!r}")
            return False

        try:
            handler(dict(payload or {}))
        except Exception as e:
            self._logger.error(f"Error handling browser event {event_type}: {e}")
        return True

    def notify(self, event_type: EventType, data: BehaviorEvent) -> int:
        """Fan an event out to every active agent."""
        self._logger.debug(f"notify {event_type.value}")
        return self.registry.notify(event_type, data)

    def run_optimization_cycle(self) -> int:
        """Give every active agent a snapshot of the session."""
        self._cycles += 1
        snapshot = self.store.snapshot()
        optimized = self.registry.run_optimization_cycle(snapshot)
        self._logger.debug(f"Optimization cycle {self._cycles}: {optimized} agents")
        return optimized

    def receive_action(self, payload: Mapping[str, Any]) -> ActionRequest:
        """Inbound ai-agent-action: put a page-originated request on the bus."""
        request = ActionRequest.from_dict(payload)
        self.action_bus.publish(request)
        return request

    def update_user_preferences(self, preferences: Mapping[str, Any]) -> None:
        """Merge a partial preferences mapping and tell the agents."""
        self.recorder.record_preferences(preferences)

    # Public API

    def get_agent(self, name: str) -> Optional[Agent]:
        return self.registry.get(name)

    def add_agent(self, name: str, agent: Agent) -> None:
        attach = getattr(agent, "attach", None)
        if callable(attach):
            attach(self.action_bus, self.scheduler)
        self.registry.register(name, agent)

    def remove_agent(self, name: str) -> None:
        self.registry.unregister(name)

    def pause_agent(self, name: str) -> None:
        self.registry.pause(name)

    def resume_agent(self, name: str) -> None:
        self.registry.resume(name)

    def get_user_behavior(self) -> BehaviorStore:
        """The live store. Callers must treat it as read-only."""
        return self.store

    def get_stats(self) -> Dict[str, Any]:
        """Get execution statistics."""
        return {
            "running": self._running,
            "cycles": self._cycles,
            "agents": self.registry.get_stats(),
            "behavior": self.store.get_context_summary(),
            "actions_published": len(self.action_bus.get_history(limit=self.settings.action_history_limit)),
            "actions_dropped": self.action_bus.dropped_count,
            "actions_realized": self.realizer.realized if self.realizer else 0,
        }

    def list_agents(self) -> List[Dict[str, Any]]:
        result = []
        for name, agent in self.registry.items():
            describe = getattr(agent, "get_stats", None)
            info = describe() if callable(describe) else {"active": agent.active}
            result.append({"name": name, **info})
        return result
