"""
Agents package - The behavior agents shipped with the site.

Contains specialized agents:
- UXOptimizerAgent: Frustration signals, click heatmap, layout hints
- ContentPersonalizationAgent: Visitor profile and copy swaps
- PerformanceMonitorAgent: Page timing and load optimizations
- ConversionOptimizerAgent: Funnel tracking, intent and exit offers
- SupportAssistantAgent: Contextual help and tooltips
- SecurityMonitorAgent: Suspicious input and URL markers
- WorkflowEnhancementAgent: Shortcuts and form auto-fill
"""

from typing import Dict, Optional

from agent_system.action_bus import ActionBus
from agent_system.agent_base import AgentBase
from agent_system.scheduler import Scheduler
from agent_system.settings import AgentSettings

from .content_personalizer import ContentPersonalizationAgent
from .conversion_optimizer import ConversionOptimizerAgent
from .performance_monitor import PerformanceMonitorAgent
from .security_monitor import SecurityMonitorAgent
from .support_assistant import SupportAssistantAgent
from .ux_optimizer import UXOptimizerAgent
from .workflow_enhancer import WorkflowEnhancementAgent

DEFAULT_AGENT_CLASSES = (
    UXOptimizerAgent,
    ContentPersonalizationAgent,
    PerformanceMonitorAgent,
    ConversionOptimizerAgent,
    SupportAssistantAgent,
    SecurityMonitorAgent,
    WorkflowEnhancementAgent,
)


def create_default_agents(
    action_bus: Optional[ActionBus] = None,
    scheduler: Optional[Scheduler] = None,
    settings: Optional[AgentSettings] = None,
    debug: bool = False,
) -> Dict[str, AgentBase]:
    """Build the seven built-in agents keyed by registry name, in delivery order."""
    agents: Dict[str, AgentBase] = {}
    for agent_class in DEFAULT_AGENT_CLASSES:
        agent = agent_class(action_bus, scheduler, settings, debug=debug)
        agents[agent.name] = agent
    return agents


__all__ = [
    "UXOptimizerAgent",
    "ContentPersonalizationAgent",
    "PerformanceMonitorAgent",
    "ConversionOptimizerAgent",
    "SupportAssistantAgent",
    "SecurityMonitorAgent",
    "WorkflowEnhancementAgent",
    "DEFAULT_AGENT_CLASSES",
    "create_default_agents",
]
