"""
UX Optimizer Agent - Spots frustration and layout problems from scrolling and clicks.
"""

from collections import Counter
from typing import Any, Dict, List, Optional

from agent_system.action_bus import ActionBus, ActionKind
from agent_system.agent_base import AgentBase, AgentCapability, AgentConfig
from agent_system.behavior_store import (
    BehaviorSnapshot,
    EventType,
    Interaction,
    ScrollEvent,
    url_path,
)
from agent_system.scheduler import Scheduler
from agent_system.settings import AgentSettings


MAX_SCROLL_BUFFER = 200

# Static guesses used until real form history is available
PREDICTED_FORM_VALUES = {
    "email": "user@company.com",
    "company": "Enterprise Corp",
}


class UXOptimizerAgent(AgentBase):
    """
    Watches scroll rhythm and click targets.

    Three scrolls in a row, each within the rapid-scroll gap of the previous
    one, count as frustration and trigger a help suggestion.
    """

    NAME = "ux-optimizer"

    def __init__(
        self,
        action_bus: Optional[ActionBus] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[AgentSettings] = None,
        debug: bool = False,
    ):
        config = AgentConfig(
            name=self.NAME,
            capabilities={AgentCapability.BEHAVIOR_ANALYSIS},
            debug=debug,
        )
        super().__init__(config, action_bus, scheduler, settings)

        self.scroll_patterns: List[ScrollEvent] = []
        self.click_heatmap: Counter = Counter()
        self.frustration_indicators: List[float] = []

    def handle_event(self, event_type: EventType, data: Any) -> None:
        if event_type == EventType.SCROLL:
            self._analyze_scroll_pattern(data)
        elif event_type == EventType.INTERACTION:
            self._analyze_interaction_pattern(data)

    def _analyze_scroll_pattern(self, scroll: ScrollEvent) -> None:
        self.scroll_patterns.append(scroll)
        if len(self.scroll_patterns) > MAX_SCROLL_BUFFER:
            del self.scroll_patterns[0]

        count = self.settings.rapid_scroll_count
        if len(self.scroll_patterns) < count:
            return

        recent = self.scroll_patterns[-count:]
        rapid = all(
            later.timestamp - earlier.timestamp < self.settings.rapid_scroll_gap_ms
            for earlier, later in zip(recent, recent[1:])
        )
        if not rapid:
            return

        self.frustration_indicators.append(recent[-1].timestamp)
        self.log_debug("Rapid scrolling detected")
        self.dispatch_action(ActionKind.SUGGEST_ACTION, {
            "text": "Need help finding something?",
            "followUp": {
                "kind": ActionKind.SHOW_NOTIFICATION.value,
                "data": {
                    "title": "Looking for something?",
                    "message": "Try our search feature or contact support!",
                },
            },
            "duration": 6000,
        })

    def _analyze_interaction_pattern(self, interaction: Interaction) -> None:
        if interaction.type == "click":
            self.click_heatmap[interaction.pattern_key] += 1

    def optimize(self, snapshot: BehaviorSnapshot) -> None:
        self._optimize_navigation(snapshot)
        self._optimize_form_experience(snapshot)
        self._optimize_content_layout()

    def _optimize_navigation(self, snapshot: BehaviorSnapshot) -> None:
        if len(snapshot.page_views) < self.settings.frequent_page_threshold:
            return

        frequent = self.get_frequent_pages(snapshot)
        if not frequent or not self.first_time(f"quick_access:{frequent[0]}"):
            return

        page = frequent[0]
        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Smart Navigation",
            "message": f"We noticed you visit {page} frequently. Would you like us to add it to your quick access?",
            "actionText": "Yes, Add It",
            "followUp": {
                "kind": ActionKind.ENHANCE_WORKFLOW.value,
                "data": {
                    "type": "smart_navigation",
                    "selector": f'a[href="{page}"]',
                    "preloadUrl": page,
                },
            },
            "duration": 8000,
        })

    def _optimize_form_experience(self, snapshot: BehaviorSnapshot) -> None:
        submits = [i for i in snapshot.interactions if i.type.startswith("form_")]
        total = len(snapshot.form_interactions) + len(submits)
        if total < self.settings.form_autofill_threshold:
            return
        if not self.first_time("form_autofill"):
            return

        self.dispatch_action(ActionKind.ENHANCE_WORKFLOW, {
            "type": "auto_fill",
            "formSelector": "form",
            "values": dict(PREDICTED_FORM_VALUES),
        })

    def _optimize_content_layout(self) -> None:
        if not self.scroll_patterns:
            return

        depth = sum(s.scroll_percent for s in self.scroll_patterns) / len(self.scroll_patterns)
        if depth >= self.settings.shallow_scroll_percent or not self.first_time("content_layout"):
            return

        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Content Optimization",
            "message": "We can move important information higher on the page for easier access.",
            "duration": 7000,
        })

    @staticmethod
    def get_frequent_pages(snapshot: BehaviorSnapshot, limit: int = 3) -> List[str]:
        """Most visited paths, most frequent first."""
        counts = Counter(url_path(view.url) for view in snapshot.page_views)
        return [path for path, _ in counts.most_common(limit) if path]

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats.update({
            "scrolls_seen": len(self.scroll_patterns),
            "frustration_events": len(self.frustration_indicators),
            "hot_elements": self.click_heatmap.most_common(3),
        })
        return stats
