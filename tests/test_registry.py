import logging

import pytest

from agent_system.behavior_store import BehaviorSnapshot, EventType
from agent_system.errors import AgentNotFoundError
from agent_system.registry import AgentRegistry

from conftest import RecordingAgent


def test_every_active_agent_gets_every_event_in_order():
    registry = AgentRegistry()
    first, second = RecordingAgent("first"), RecordingAgent("second")
    registry.register("first", first)
    registry.register("second", second)

    for i in range(5):
        assert registry.notify(EventType.INTERACTION, i) == 2

    assert [data for _, data in first.events] == [0, 1, 2, 3, 4]
    assert [data for _, data in second.events] == [0, 1, 2, 3, 4]


def test_delivery_follows_registration_order():
    registry = AgentRegistry()
    order = []

    class Ordered(RecordingAgent):
        def handle_event(self, event_type, data):
            order.append(self.name)

    for name in ("c", "a", "b"):
        registry.register(name, Ordered(name))

    registry.notify(EventType.PAGE_VIEW, None)
    assert order == ["c", "a", "b"]


def test_paused_agent_receives_nothing_regardless_of_position():
    registry = AgentRegistry()
    agent = RecordingAgent("paused")
    registry.register("paused", agent)

    registry.pause("paused")
    for i in range(3):
        registry.notify(EventType.SCROLL, i)
    registry.run_optimization_cycle(BehaviorSnapshot())

    assert agent.events == []
    assert agent.snapshots == []
    assert agent.active is False


def test_resume_restores_delivery_without_losing_state():
    registry = AgentRegistry()
    agent = RecordingAgent("a")
    registry.register("a", agent)

    registry.notify(EventType.SCROLL, 1)
    registry.pause("a")
    registry.notify(EventType.SCROLL, 2)
    registry.resume("a")
    registry.notify(EventType.SCROLL, 3)

    assert [data for _, data in agent.events] == [1, 3]


def test_pause_unknown_name_reports_false():
    registry = AgentRegistry()
    assert registry.pause("missing") is False
    assert registry.resume("missing") is False


def test_registering_same_name_twice_keeps_only_latest():
    registry = AgentRegistry()
    old, new = RecordingAgent("x"), RecordingAgent("x")
    registry.register("x", old)
    registry.register("x", new)

    delivered = registry.notify(EventType.INTERACTION, "event")

    assert delivered == 1
    assert len(registry) == 1
    assert registry.get("x") is new
    assert old.events == []
    assert len(new.events) == 1


def test_failing_agent_does_not_block_the_others(caplog):
    registry = AgentRegistry()
    first = RecordingAgent("first")
    broken = RecordingAgent("broken", fail=True)
    third = RecordingAgent("third")
    for agent in (first, broken, third):
        registry.register(agent.name, agent)

    with caplog.at_level(logging.WARNING, logger="agent_system.registry"):
        for i in range(4):
            assert registry.notify(EventType.INTERACTION, i) == 2
        assert registry.run_optimization_cycle(BehaviorSnapshot()) == 2

    assert len(first.events) == 4
    assert len(third.events) == 4
    assert len(first.snapshots) == 1
    assert len(third.snapshots) == 1
    assert "Agent broken error on interaction" in caplog.text
    assert registry.get_stats()["broken"]["faults"] == 5


def test_unregister_and_lookup():
    registry = AgentRegistry()
    agent = RecordingAgent("a")
    registry.register("a", agent)

    assert "a" in registry
    assert registry.unregister("a") is agent
    assert registry.get("a") is None
    assert registry.unregister("a") is None
    assert list(registry) == []


def test_require_raises_for_unknown_name():
    registry = AgentRegistry()

    with pytest.raises(AgentNotFoundError) as excinfo:
        registry.require("ghost")

    assert excinfo.value.name == "ghost"
    assert isinstance(excinfo.value, KeyError)
    assert "ghost" in str(excinfo.value)


def test_stats_count_events_and_optimizations():
    registry = AgentRegistry()
    registry.register("a", RecordingAgent("a"))

    registry.notify(EventType.PAGE_VIEW, None)
    registry.notify(EventType.SCROLL, None)
    registry.run_optimization_cycle(BehaviorSnapshot())

    assert registry.get_stats()["a"] == {
        "active": True,
        "events": 2,
        "optimizations": 1,
        "faults": 0,
    }
