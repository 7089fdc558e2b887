"""
Conversion Optimizer Agent - Tracks the signup funnel and reacts to buying signals.
"""

from typing import Any, Dict, List, Optional

from agent_system.action_bus import ActionBus, ActionKind
from agent_system.agent_base import AgentBase, AgentCapability, AgentConfig
from agent_system.behavior_store import (
    BehaviorSnapshot,
    EventType,
    Interaction,
    PageView,
    url_path,
)
from agent_system.scheduler import Scheduler, TimerHandle
from agent_system.settings import AgentSettings


LANDING_PATHS = ("/", "/index.html")
HIGH_INTENT_PHRASES = ("start free trial", "get started")
PRICING_PHRASES = ("pricing", "plans")

SUPPORT_CHAT_FOLLOW_UP = {
    "kind": ActionKind.SHOW_NOTIFICATION.value,
    "data": {
        "title": "Support Chat",
        "message": "Our support team will be with you shortly. Average response time: 2 minutes.",
        "duration": 5000,
    },
}


class ConversionOptimizerAgent(AgentBase):
    """
    Counts funnel steps by page category and answers intent signals.

    Exit intent (pointer leaving through the top edge) fires once per session.
    """

    NAME = "conversion-optimizer"

    def __init__(
        self,
        action_bus: Optional[ActionBus] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[AgentSettings] = None,
        debug: bool = False,
    ):
        config = AgentConfig(
            name=self.NAME,
            capabilities={AgentCapability.CONVERSION},
            debug=debug,
        )
        super().__init__(config, action_bus, scheduler, settings)

        self.conversion_funnel: Dict[str, int] = {
            "landing": 0,
            "pricing": 0,
            "registration": 0,
            "trial": 0,
            "conversion": 0,
        }
        self.exit_intent_detected = False
        self.session_start = self.now()
        self.current_path = ""
        self._pending: List[TimerHandle] = []

    def attach(self, action_bus: ActionBus, scheduler: Optional[Scheduler] = None) -> None:
        had_scheduler = self.scheduler is not None
        super().attach(action_bus, scheduler)
        if not had_scheduler and self.scheduler is not None:
            self.session_start = self.now()

    def handle_event(self, event_type: EventType, data: Any) -> None:
        if event_type == EventType.PAGE_VIEW:
            self._track_funnel_step(data)
        elif event_type == EventType.INTERACTION:
            self._analyze_conversion_intent(data)
        elif event_type == EventType.MOUSE_LEAVE:
            self._detect_exit_intent(data)

    def _track_funnel_step(self, view: PageView) -> None:
        path = url_path(view.url)
        self.current_path = path

        if path in LANDING_PATHS:
            self.conversion_funnel["landing"] += 1
        elif "pricing" in path:
            self.conversion_funnel["pricing"] += 1
        elif "register" in path:
            self.conversion_funnel["registration"] += 1

    def _analyze_conversion_intent(self, interaction: Interaction) -> None:
        if interaction.type == "form_submit":
            if "register" in self.current_path:
                self.conversion_funnel["conversion"] += 1
            return
        if interaction.type != "click":
            return

        text = (interaction.text or "").lower()
        if any(phrase in text for phrase in HIGH_INTENT_PHRASES):
            self._handle_high_intent()
        elif any(phrase in text for phrase in PRICING_PHRASES):
            self._handle_pricing_interest()

    def _handle_high_intent(self) -> None:
        self.conversion_funnel["trial"] += 1
        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Special Offer",
            "message": "Start your free trial now and get 20% off your first month!",
            "actionText": "Claim Offer",
            "href": "/register.html?promo=TRIAL20",
            "duration": 12000,
        })

    def _handle_pricing_interest(self) -> None:
        data = {
            "text": "Questions about pricing? Chat with our team!",
            "followUp": SUPPORT_CHAT_FOLLOW_UP,
            "duration": 8000,
        }
        if self.scheduler is None:
            self.dispatch_action(ActionKind.SUGGEST_ACTION, data)
            return

        def follow_up() -> None:
            if handle in self._pending:
                self._pending.remove(handle)
            self.dispatch_action(ActionKind.SUGGEST_ACTION, data)

        handle = self.scheduler.call_later(self.settings.pricing_followup_delay_ms, follow_up)
        self._pending.append(handle)

    def _detect_exit_intent(self, interaction: Interaction) -> None:
        if self.exit_intent_detected:
            return
        y = interaction.coordinates[1] if interaction.coordinates else None
        if y is None or y > 0:
            return

        self.exit_intent_detected = True
        self.log_debug("Exit intent detected")
        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Wait! Don't Miss Out",
            "message": "Get instant access to Signova with our exclusive 30-day free trial - no credit card required!",
            "actionText": "Start Free Trial",
            "href": "/register.html?promo=EXIT30",
            "duration": 15000,
        })

    def optimize(self, snapshot: BehaviorSnapshot) -> None:
        self._optimize_conversion_path()
        self._personalize_offers()

    def _optimize_conversion_path(self) -> None:
        pricing = self.conversion_funnel["pricing"]
        if pricing == 0:
            return

        ratio = self.conversion_funnel["registration"] / pricing
        if ratio >= self.settings.registration_ratio_floor or not self.first_time("quick_signup"):
            return

        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Simplified Registration",
            "message": "We've streamlined our signup process - it now takes less than 60 seconds!",
            "actionText": "Quick Signup",
            "href": "/register.html?quick=true",
            "duration": 8000,
        })

    def _personalize_offers(self) -> None:
        time_on_site = self.now() - self.session_start
        if time_on_site <= self.settings.long_visit_ms or not self.first_time("plan_help"):
            return

        self.dispatch_action(ActionKind.SUGGEST_ACTION, {
            "text": "Ready to get started? We can help you choose the right plan!",
            "href": "/pricing.html",
            "duration": 10000,
        })

    def cancel_pending(self) -> None:
        """Cancel delayed suggestions that have not fired yet."""
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()

    def shutdown(self) -> None:
        self.cancel_pending()

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats.update({
            "funnel": dict(self.conversion_funnel),
            "exit_intent": self.exit_intent_detected,
            "pending": len(self._pending),
        })
        return stats
