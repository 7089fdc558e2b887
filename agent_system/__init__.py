"""
Agent System - Behavior telemetry and agent orchestration for a web page.

This module provides the engine the site agents run on:
- BehaviorStore / BehaviorRecorder: Normalized session history
- AgentBase / AgentRegistry: Agent contract and fan-out
- ActionBus / EffectRealizer: Agent requests and their page effects
- Orchestrator: Main coordinator

The live browser bridge lives in agent_system.browser_adapter and is
imported separately, so the engine itself does not need a browser.
"""

from .action_bus import ActionBus, ActionKind, ActionRequest
from .agent_base import Agent, AgentBase, AgentCapability, AgentConfig
from .behavior_store import (
    BehaviorEvent,
    BehaviorSnapshot,
    BehaviorStore,
    EventType,
    FormInteraction,
    Interaction,
    PageView,
    PreferencesUpdate,
    ScrollEvent,
    TimeOnPage,
)
from .effects import DomCommand, EffectRealizer, Element, InMemoryDocument, PageSurface
from .errors import AgentNotFoundError, SettingsError, SiteAgentsError
from .orchestrator import Orchestrator
from .recorder import BehaviorRecorder
from .registry import AgentRegistry
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler, TimerHandle
from .settings import AgentSettings

__all__ = [
    # Agents
    "Agent",
    "AgentBase",
    "AgentCapability",
    "AgentConfig",
    "AgentRegistry",
    # Behavior
    "BehaviorEvent",
    "BehaviorSnapshot",
    "BehaviorStore",
    "BehaviorRecorder",
    "EventType",
    "PageView",
    "Interaction",
    "ScrollEvent",
    "FormInteraction",
    "TimeOnPage",
    "PreferencesUpdate",
    # Actions
    "ActionBus",
    "ActionKind",
    "ActionRequest",
    "DomCommand",
    "EffectRealizer",
    "Element",
    "InMemoryDocument",
    "PageSurface",
    # Runtime
    "Orchestrator",
    "Scheduler",
    "ManualScheduler",
    "AsyncioScheduler",
    "TimerHandle",
    "AgentSettings",
    # Errors
    "SiteAgentsError",
    "SettingsError",
    "AgentNotFoundError",
]
