"""
Workflow Enhancer Agent - Notices repetitive clicking and helps with forms.
"""

from collections import Counter, deque
from typing import Any, Deque, Dict, Optional

from agent_system.action_bus import ActionBus, ActionKind
from agent_system.agent_base import AgentBase, AgentCapability, AgentConfig
from agent_system.behavior_store import (
    BehaviorSnapshot,
    EventType,
    FormInteraction,
    Interaction,
    url_path,
)
from agent_system.scheduler import Scheduler
from agent_system.settings import AgentSettings


# Static predictions offered for well-known fields
PREDICTED_VALUES = {
    "email": "user@company.com",
    "company": "Enterprise Corp",
    "name": "John Smith",
    "phone": "+1 (555) 123-4567",
}

SAVINGS_FOLLOW_UP = {
    "kind": ActionKind.SHOW_NOTIFICATION.value,
    "data": {
        "title": "Savings Calculator",
        "message": "Based on average usage, Signova can save your team 15+ hours per week on document processing.",
        "actionText": "See Full Analysis",
        "href": "/roi-calculator.html",
        "duration": 12000,
    },
}


class WorkflowEnhancementAgent(AgentBase):
    """
    Keeps a rolling window of recent interactions.

    When fewer than ``repetition_ratio`` of the window are distinct, the
    most repeated action is offered as a shortcut (once per action).
    """

    NAME = "workflow-enhancer"

    def __init__(
        self,
        action_bus: Optional[ActionBus] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[AgentSettings] = None,
        debug: bool = False,
    ):
        config = AgentConfig(
            name=self.NAME,
            capabilities={AgentCapability.WORKFLOW},
            debug=debug,
        )
        super().__init__(config, action_bus, scheduler, settings)

        self.workflow_patterns: Deque[Interaction] = deque(maxlen=self.settings.workflow_window)
        self.shortcuts: Dict[str, int] = {}

    def handle_event(self, event_type: EventType, data: Any) -> None:
        if event_type == EventType.INTERACTION:
            self._analyze_workflow_pattern(data)
        elif event_type == EventType.FORM_INTERACTION:
            self._optimize_form_workflow(data)

    def _analyze_workflow_pattern(self, interaction: Interaction) -> None:
        self.workflow_patterns.append(interaction)
        if len(self.workflow_patterns) < self.settings.workflow_window:
            return

        repetitive = self.detect_repetitive_action()
        if repetitive is None:
            return

        self.shortcuts[repetitive] = self.shortcuts.get(repetitive, 0) + 1
        if self.shortcuts[repetitive] == 1:
            self._suggest_workflow_improvement(repetitive)

    def detect_repetitive_action(self) -> Optional[str]:
        """Most repeated action key in the window, or None when the window is varied."""
        keys = [i.pattern_key for i in self.workflow_patterns]
        if not keys:
            return None
        if len(set(keys)) >= len(keys) * self.settings.repetition_ratio:
            return None
        return Counter(keys).most_common(1)[0][0]

    def _suggest_workflow_improvement(self, action_key: str) -> None:
        self.log_debug(f"Repetitive action: {action_key}")
        self.dispatch_action(ActionKind.SUGGEST_ACTION, {
            "text": "Create shortcut for this action?",
            "shortcut": action_key,
            "duration": 8000,
        })

    def _optimize_form_workflow(self, form_event: FormInteraction) -> None:
        if form_event.type != "form_focus":
            return

        value = PREDICTED_VALUES.get(form_event.field_name or "")
        if value is None:
            return

        self.dispatch_action(ActionKind.ENHANCE_WORKFLOW, {
            "type": "auto_fill",
            "formSelector": "form",
            "values": {form_event.field_name: value},
        })

    def optimize(self, snapshot: BehaviorSnapshot) -> None:
        path = url_path(snapshot.current_url)
        self._optimize_navigation(path)
        self._enhance_productivity(path)

    def _optimize_navigation(self, path: str) -> None:
        if "register" in path and self.first_time("progress_indicator"):
            self.dispatch_action(ActionKind.ENHANCE_WORKFLOW, {
                "type": "progress_indicator",
                "formSelector": "form",
            })

    def _enhance_productivity(self, path: str) -> None:
        if "pricing" in path and self.first_time("savings_calculator"):
            self.dispatch_action(ActionKind.SUGGEST_ACTION, {
                "text": "Calculate your potential savings",
                "followUp": SAVINGS_FOLLOW_UP,
                "duration": 10000,
            })
        elif "register" in path and self.first_time("quick_registration"):
            self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
                "title": "Quick Registration",
                "message": "Use your Google or Microsoft account for faster signup!",
                "duration": 8000,
            })

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats.update({
            "window": len(self.workflow_patterns),
            "shortcuts": dict(self.shortcuts),
        })
        return stats
