"""
Content Personalizer Agent - Builds a visitor profile and tailors copy to it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from agent_system.action_bus import ActionBus, ActionKind
from agent_system.agent_base import AgentBase, AgentCapability, AgentConfig
from agent_system.behavior_store import (
    BehaviorSnapshot,
    EventType,
    Interaction,
    PageView,
    PreferencesUpdate,
    url_path,
)
from agent_system.scheduler import Scheduler
from agent_system.settings import AgentSettings


# Path fragment -> inferred interest
PATH_INTERESTS = {
    "healthcare": "healthcare",
    "financial": "finance",
    "legal": "legal",
}

ENTERPRISE_WORDS = ("enterprise", "business")
SMALL_COMPANY_WORDS = ("startup", "small")


@dataclass
class UserProfile:
    """What we have inferred about the visitor so far."""

    industry: Optional[str] = None
    company_size: Optional[str] = None
    interests: List[str] = field(default_factory=list)
    behavior_pattern: Optional[str] = None

    def add_interest(self, interest: str) -> None:
        if interest and interest not in self.interests:
            self.interests.append(interest)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "industry": self.industry,
            "companySize": self.company_size,
            "interests": list(self.interests),
            "behaviorPattern": self.behavior_pattern,
        }


class ContentPersonalizationAgent(AgentBase):
    """Infers industry, company size and interests; swaps hero and CTA copy."""

    NAME = "content-personalizer"

    def __init__(
        self,
        action_bus: Optional[ActionBus] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[AgentSettings] = None,
        debug: bool = False,
    ):
        config = AgentConfig(
            name=self.NAME,
            capabilities={AgentCapability.PERSONALIZATION},
            debug=debug,
        )
        super().__init__(config, action_bus, scheduler, settings)
        self.user_profile = UserProfile()

    def handle_event(self, event_type: EventType, data: Any) -> None:
        if event_type == EventType.PAGE_VIEW:
            self._analyze_page_interest(data)
        elif event_type == EventType.INTERACTION:
            self._analyze_user_intent(data)
        elif event_type == EventType.PREFERENCES_UPDATE:
            self._apply_preferences(data)

    def _analyze_page_interest(self, view: PageView) -> None:
        path = url_path(view.url)
        for fragment, interest in PATH_INTERESTS.items():
            if fragment in path:
                self.user_profile.add_interest(interest)
                break

    def _analyze_user_intent(self, interaction: Interaction) -> None:
        if interaction.type != "click" or not interaction.text:
            return

        text = interaction.text.lower()
        if any(word in text for word in ENTERPRISE_WORDS):
            self.user_profile.company_size = "enterprise"
        elif any(word in text for word in SMALL_COMPANY_WORDS):
            self.user_profile.company_size = "small"

    def _apply_preferences(self, update: PreferencesUpdate) -> None:
        prefs = update.preferences
        if prefs.get("industry"):
            self.user_profile.industry = str(prefs["industry"])
            self.user_profile.add_interest(self.user_profile.industry)
        for interest in prefs.get("interests") or []:
            self.user_profile.add_interest(str(interest))
        if prefs.get("companySize"):
            self.user_profile.company_size = str(prefs["companySize"])

    def optimize(self, snapshot: BehaviorSnapshot) -> None:
        self._personalize_content()
        self._personalize_recommendations()
        self._personalize_messaging()

    def _personalize_content(self) -> None:
        if not self.user_profile.interests:
            return

        primary = self.user_profile.interests[0]
        if not self.first_time(f"hero:{primary}"):
            return

        self.dispatch_action(ActionKind.PERSONALIZE_CONTENT, {
            "selector": ".hero-subtitle",
            "content": [
                f"Transform your {primary} document workflows with advanced AI processing, "
                "quantum-grade security, and seamless collaboration tools trusted by "
                "Fortune 500 companies."
            ],
        })

    def _personalize_recommendations(self) -> None:
        if self.user_profile.company_size != "enterprise" or not self.first_time("enterprise_offer"):
            return

        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Enterprise Solutions",
            "message": "Based on your interests, you might benefit from our Enterprise plan with advanced security features.",
            "actionText": "View Enterprise",
            "href": "/pricing.html#enterprise",
            "duration": 10000,
        })

    def _personalize_messaging(self) -> None:
        if "healthcare" not in self.user_profile.interests or not self.first_time("cta:healthcare"):
            return

        self.dispatch_action(ActionKind.PERSONALIZE_CONTENT, {
            "selector": ".cta-subtitle",
            "content": [
                "Join thousands of healthcare organizations already using Signova to "
                "automate their HIPAA-compliant document intelligence"
            ],
        })

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats["profile"] = self.user_profile.to_dict()
        return stats
