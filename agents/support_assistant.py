"""
Support Assistant Agent - Offers help when the visitor asks for it or stalls.
"""

from typing import Any, Dict, Optional

from agent_system.action_bus import ActionBus, ActionKind
from agent_system.agent_base import AgentBase, AgentCapability, AgentConfig
from agent_system.behavior_store import (
    BehaviorSnapshot,
    EventType,
    Interaction,
    PageView,
    ScrollEvent,
    url_path,
)
from agent_system.scheduler import Scheduler
from agent_system.settings import AgentSettings


HELP_WORDS = ("help", "support", "contact")
COMPLEX_ELEMENT_SELECTOR = '[data-complex="true"]'
RECENT_INTERACTIONS = 5

SUPPORT_CHAT_FOLLOW_UP = {
    "kind": ActionKind.SHOW_NOTIFICATION.value,
    "data": {
        "title": "Support Chat",
        "message": "Our support team will be with you shortly. Average response time: 2 minutes.",
        "duration": 5000,
    },
}

FORM_HELP_FOLLOW_UP = {
    "kind": ActionKind.SHOW_NOTIFICATION.value,
    "data": {
        "title": "Form Help",
        "message": "Fill out the required fields marked with *. Need specific help? Contact our support team.",
        "duration": 8000,
    },
}


class SupportAssistantAgent(AgentBase):
    """Help-seeking clicks, low engagement and form errors all lead to contextual help."""

    NAME = "support-assistant"

    def __init__(
        self,
        action_bus: Optional[ActionBus] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[AgentSettings] = None,
        debug: bool = False,
    ):
        config = AgentConfig(
            name=self.NAME,
            capabilities={AgentCapability.SUPPORT},
            debug=debug,
        )
        super().__init__(config, action_bus, scheduler, settings)

        self.support_triggers = 0
        self.current_path = ""
        # interactions already looked at, by position
        self._scanned = 0

    def handle_event(self, event_type: EventType, data: Any) -> None:
        if event_type == EventType.PAGE_VIEW:
            self._track_page(data)
        elif event_type == EventType.INTERACTION:
            self._detect_support_need(data)
        elif event_type == EventType.SCROLL:
            self._analyze_engagement(data)

    def _track_page(self, view: PageView) -> None:
        self.current_path = url_path(view.url)

    def _detect_support_need(self, interaction: Interaction) -> None:
        if interaction.type != "click":
            return

        text = (interaction.text or "").lower()
        if any(word in text for word in HELP_WORDS):
            self.support_triggers += 1
            self._provide_predictive_help()

    def _analyze_engagement(self, scroll: ScrollEvent) -> None:
        if scroll.scroll_percent >= self.settings.low_engagement_scroll_percent:
            return
        if scroll.elapsed <= self.settings.low_engagement_elapsed_ms:
            return
        if self.first_time("getting_started"):
            self._offer_assistance()

    def _provide_predictive_help(self) -> None:
        if "pricing" in self.current_path:
            message = "Need help choosing the right plan? Our team can recommend the best option for your needs."
        elif "register" in self.current_path:
            message = "Having trouble with registration? We can guide you through the process."
        else:
            message = "How can we help you get the most out of Signova?"

        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Need Assistance?",
            "message": message,
            "actionText": "Get Help",
            "followUp": SUPPORT_CHAT_FOLLOW_UP,
            "duration": 10000,
        })

    def _offer_assistance(self) -> None:
        self.dispatch_action(ActionKind.SUGGEST_ACTION, {
            "text": "Need help getting started?",
            "href": "/getting-started.html",
            "duration": 8000,
        })

    def optimize(self, snapshot: BehaviorSnapshot) -> None:
        self._provide_contextual_help(snapshot)
        self._optimize_support_flow()

    def _provide_contextual_help(self, snapshot: BehaviorSnapshot) -> None:
        interactions = snapshot.interactions
        if len(interactions) < self._scanned:
            self._scanned = 0
        start = max(len(interactions) - RECENT_INTERACTIONS, self._scanned)
        self._scanned = len(interactions)
        if not any(i.type == "form_error" for i in interactions[start:]):
            return

        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Form Help Available",
            "message": "We noticed you might need help with the form. Our support team is here to assist!",
            "actionText": "Get Form Help",
            "followUp": FORM_HELP_FOLLOW_UP,
            "duration": 8000,
        })

    def _optimize_support_flow(self) -> None:
        if not self.first_time("tooltips"):
            return

        self.dispatch_action(ActionKind.ENHANCE_WORKFLOW, {
            "type": "tooltip",
            "selector": COMPLEX_ELEMENT_SELECTOR,
        })

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats["support_triggers"] = self.support_triggers
        return stats
