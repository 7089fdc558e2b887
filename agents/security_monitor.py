"""
Security Monitor Agent - Flags script-like input and injection attempts in URLs.
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
    url_query,
)
from agent_system.scheduler import Scheduler
from agent_system.settings import AgentSettings


SUSPICIOUS_QUERY_PARAMS = ("xss", "script")
SUSPICIOUS_CLICK_MARKER = "script"
TIGHTENED_POLICY = "default-src 'self'; script-src 'self' 'unsafe-inline'"
SIGNUP_PATH_MARKERS = ("register", "signin")


class SecurityMonitorAgent(AgentBase):
    """
    Scans clicks and navigations for suspicious markers.

    A suspicious navigation raises a generic notice and, on the next
    optimization cycle, a tighter content security policy.
    """

    NAME = "security-monitor"

    def __init__(
        self,
        action_bus: Optional[ActionBus] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[AgentSettings] = None,
        debug: bool = False,
    ):
        config = AgentConfig(
            name=self.NAME,
            capabilities={AgentCapability.SECURITY},
            debug=debug,
        )
        super().__init__(config, action_bus, scheduler, settings)

        self.security_events: List[Dict[str, Any]] = []
        self.suspicious_activity = False

    def handle_event(self, event_type: EventType, data: Any) -> None:
        if event_type == EventType.INTERACTION:
            self._monitor_interactions(data)
        elif event_type == EventType.PAGE_VIEW:
            self._monitor_navigation(data)

    def _monitor_interactions(self, interaction: Interaction) -> None:
        if interaction.type != "click":
            return
        if SUSPICIOUS_CLICK_MARKER in (interaction.text or ""):
            self.security_events.append({
                "type": "suspicious_click",
                "data": interaction.to_dict(),
                "timestamp": self.now(),
            })
            self.log_debug("Suspicious click recorded")

    def _monitor_navigation(self, view: PageView) -> None:
        params = url_query(view.url)
        if any(name in params for name in SUSPICIOUS_QUERY_PARAMS):
            self._handle_security_threat("xss_attempt", view)

    def _handle_security_threat(self, threat_type: str, view: PageView) -> None:
        self.suspicious_activity = True
        self.security_events.append({
            "type": threat_type,
            "data": view.to_dict(),
            "timestamp": self.now(),
        })

        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Security Alert",
            "message": "We've detected unusual activity and have enhanced security measures.",
            "duration": 5000,
        })
        self.log_warning(f"Security threat detected: {threat_type} at {view.url}")

    def optimize(self, snapshot: BehaviorSnapshot) -> None:
        self._enhance_security_measures()
        self._educate_user(snapshot)

    def _enhance_security_measures(self) -> None:
        if not self.suspicious_activity or not self.first_time("csp"):
            return

        self.dispatch_action(ActionKind.ENHANCE_WORKFLOW, {
            "type": "content_security_policy",
            "policy": TIGHTENED_POLICY,
        })

    def _educate_user(self, snapshot: BehaviorSnapshot) -> None:
        path = url_path(snapshot.current_url)
        if not any(marker in path for marker in SIGNUP_PATH_MARKERS):
            return
        if not self.first_time(f"tip:{path}"):
            return

        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Security Tip",
            "message": "Your data is protected with bank-level encryption and SOC 2 compliance.",
            "duration": 6000,
        })

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats.update({
            "security_events": len(self.security_events),
            "suspicious": self.suspicious_activity,
        })
        return stats
