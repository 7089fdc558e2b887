"""
Performance Monitor Agent - Samples page timing and asks for load optimizations.
"""

from collections import Counter
from typing import Any, Dict, List, Optional

from agent_system.action_bus import ActionBus, ActionKind
from agent_system.agent_base import AgentBase, AgentCapability, AgentConfig
from agent_system.behavior_store import BehaviorSnapshot, EventType, PageView, url_path
from agent_system.scheduler import Scheduler
from agent_system.settings import AgentSettings


DEFAULT_PREFETCH_PAGES = ["/pricing.html", "/register.html", "/portal.html"]


class PerformanceMonitorAgent(AgentBase):
    """
    Reads the timing sample attached to each page view.

    A load time above the threshold produces a notice plus lazy-loading and
    script-deferral enhancements, once per page.
    """

    NAME = "performance-monitor"

    def __init__(
        self,
        action_bus: Optional[ActionBus] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[AgentSettings] = None,
        debug: bool = False,
    ):
        config = AgentConfig(
            name=self.NAME,
            capabilities={AgentCapability.PERFORMANCE},
            debug=debug,
        )
        super().__init__(config, action_bus, scheduler, settings)

        self.performance_metrics: Dict[str, float] = {
            "loadTime": 0.0,
            "renderTime": 0.0,
            "interactionDelay": 0.0,
            "memoryUsage": 0.0,
        }
        self.current_url = ""
        self.samples = 0

    def handle_event(self, event_type: EventType, data: Any) -> None:
        if event_type == EventType.PAGE_VIEW:
            self._measure_page_performance(data)

    def _measure_page_performance(self, view: PageView) -> None:
        self.current_url = view.url
        self.samples += 1
        for key in self.performance_metrics:
            if key in view.performance:
                self.performance_metrics[key] = float(view.performance[key])

        self.log_debug(
            f"Load {self.performance_metrics['loadTime']:.0f}ms, "
            f"render {self.performance_metrics['renderTime']:.0f}ms"
        )

    def optimize(self, snapshot: BehaviorSnapshot) -> None:
        self._optimize_performance()
        self._preload_content(snapshot)

    def _optimize_performance(self) -> None:
        if self.performance_metrics["loadTime"] <= self.settings.slow_load_threshold_ms:
            return
        if not self.first_time(f"slow_load:{self.current_url}"):
            return

        self.log_info(f"Slow page load: {self.performance_metrics['loadTime']:.0f}ms")
        self.dispatch_action(ActionKind.SHOW_NOTIFICATION, {
            "title": "Performance Optimization",
            "message": "We're optimizing the page load speed for a better experience.",
            "duration": 3000,
        })
        self.dispatch_action(ActionKind.ENHANCE_WORKFLOW, {"type": "lazy_load"})
        self.dispatch_action(ActionKind.ENHANCE_WORKFLOW, {"type": "defer_scripts"})

    def _preload_content(self, snapshot: BehaviorSnapshot) -> None:
        pages = self.get_frequently_visited_pages(snapshot)
        key = "prefetch:" + ",".join(pages)
        if not pages or not self.first_time(key):
            return

        self.dispatch_action(ActionKind.ENHANCE_WORKFLOW, {"type": "prefetch", "urls": pages})

    @staticmethod
    def get_frequently_visited_pages(snapshot: BehaviorSnapshot, limit: int = 3) -> List[str]:
        """Paths worth prefetching; the static list until the visitor has a history."""
        current = url_path(snapshot.current_url)
        counts = Counter(url_path(view.url) for view in snapshot.page_views)
        pages = [path for path, count in counts.most_common() if path and path != current and count > 1]
        return pages[:limit] or list(DEFAULT_PREFETCH_PAGES)

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats.update({"samples": self.samples, "metrics": dict(self.performance_metrics)})
        return stats
