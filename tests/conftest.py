from typing import Any, Callable, List, Optional

import pytest

from agent_system.action_bus import ActionBus, ActionRequest
from agent_system.behavior_store import BehaviorSnapshot, EventType
from agent_system.effects import InMemoryDocument
from agent_system.orchestrator import Orchestrator
from agent_system.scheduler import ManualScheduler
from agent_system.settings import AgentSettings


class ActionCapture:
    """A bus with one subscriber that keeps everything it receives."""

    def __init__(self, bus: Optional[ActionBus] = None):
        self.bus = bus or ActionBus()
        self.requests: List[ActionRequest] = []
        self.bus.subscribe(self.requests.append)

    def kinds(self) -> List[str]:
        return [r.kind for r in self.requests]

    def titles(self) -> List[Any]:
        return [r.data.get("title") for r in self.requests]

    def clear(self) -> None:
        self.requests.clear()


class RecordingAgent:
    """Minimal Agent that remembers what it was given."""

    def __init__(self, name: str, fail: bool = False):
        self.name = name
        self.active = True
        self.fail = fail
        self.events: List[Any] = []
        self.snapshots: List[BehaviorSnapshot] = []

    def handle_event(self, event_type: EventType, data: Any) -> None:
        if self.fail:
            raise RuntimeError(f"{self.name} failed")
        self.events.append((event_type, data))

    def optimize(self, snapshot: BehaviorSnapshot) -> None:
        if self.fail:
            raise RuntimeError(f"{self.name} failed")
        self.snapshots.append(snapshot)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def settings() -> AgentSettings:
    return AgentSettings()


@pytest.fixture
def capture() -> ActionCapture:
    return ActionCapture()


@pytest.fixture
def document() -> InMemoryDocument:
    return InMemoryDocument()


@pytest.fixture
def make_orchestrator(scheduler, settings, document) -> Callable[..., Orchestrator]:
    """Orchestrator on the manual clock, realizing into the in-memory document."""

    def factory(**kwargs: Any) -> Orchestrator:
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("surface", document)
        return Orchestrator(**kwargs)

    return factory
