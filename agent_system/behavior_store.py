"""
Behavior Store - Session-lifetime store of normalized behavior events.

The orchestrator is the only writer. Agents get frozen snapshots for their
optimization pass and never a mutable reference.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qs, urlparse
import logging

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Event names delivered to agents."""

    PAGE_VIEW = "pageView"
    INTERACTION = "interaction"
    SCROLL = "scroll"
    FORM_INTERACTION = "formInteraction"
    TIME_ON_PAGE = "timeTracking"
    PREFERENCES_UPDATE = "preferencesUpdate"
    MOUSE_LEAVE = "mouseLeave"


@dataclass(frozen=True)
class PageView:
    """A page load."""

    url: str
    title: str
    timestamp: float
    referrer: str = ""
    user_agent: str = ""
    viewport: Mapping[str, int] = field(default_factory=dict)
    performance: Mapping[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "timestamp": self.timestamp,
            "referrer": self.referrer,
            "userAgent": self.user_agent,
            "viewport": dict(self.viewport),
            "performance": dict(self.performance),
        }


@dataclass(frozen=True)
class Interaction:
    """A click, form submit or viewport exit."""

    type: str  # click, form_submit, mouse_leave, form_error
    timestamp: float
    element: Optional[str] = None
    class_name: Optional[str] = None
    id: Optional[str] = None
    text: Optional[str] = None
    coordinates: Optional[Tuple[float, float]] = None
    form_id: Optional[str] = None
    form_action: Optional[str] = None

    @property
    def pattern_key(self) -> str:
        """Key used for heatmaps and repetition checks."""
        return f"{self.element}-{self.class_name}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "timestamp": self.timestamp}
        if self.type == "form_submit":
            data.update({"formId": self.form_id, "formAction": self.form_action})
            return data

        data.update({
            "element": self.element,
            "className": self.class_name,
            "id": self.id,
            "text": self.text,
        })
        if self.coordinates is not None:
            data["coordinates"] = {"x": self.coordinates[0], "y": self.coordinates[1]}
        return data


@dataclass(frozen=True)
class ScrollEvent:
    """A settled scroll position."""

    scroll_percent: int
    max_scroll: int
    timestamp: float
    elapsed: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "scroll",
            "scrollPercent": self.scroll_percent,
            "maxScroll": self.max_scroll,
            "timestamp": self.timestamp,
            "elapsed": self.elapsed,
        }


@dataclass(frozen=True)
class FormInteraction:
    """Focus on or input into a form field."""

    type: str  # form_focus, form_input
    field_name: Optional[str]
    field_type: Optional[str]
    timestamp: float
    value_length: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "fieldName": self.field_name,
            "fieldType": self.field_type,
            "timestamp": self.timestamp,
        }
        if self.value_length is not None:
            data["valueLength"] = self.value_length
        return data


@dataclass(frozen=True)
class TimeOnPage:
    """Emitted once when the page unloads."""

    duration: float
    url: str
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "time_on_page",
            "duration": self.duration,
            "url": self.url,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class PreferencesUpdate:
    """A partial preferences mapping pushed by the page."""

    preferences: Mapping[str, Any]
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {"preferences": dict(self.preferences), "timestamp": self.timestamp}


BehaviorEvent = Union[
    PageView, Interaction, ScrollEvent, FormInteraction, TimeOnPage, PreferencesUpdate
]


@dataclass(frozen=True)
class BehaviorSnapshot:
    """Read-only view of the store handed to agents."""

    page_views: Tuple[PageView, ...] = ()
    interactions: Tuple[Interaction, ...] = ()
    scrolls: Tuple[ScrollEvent, ...] = ()
    form_interactions: Tuple[FormInteraction, ...] = ()
    time_on_page: Tuple[TimeOnPage, ...] = ()
    preference_updates: Tuple[PreferencesUpdate, ...] = ()
    preferences: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    session_data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def current_url(self) -> Optional[str]:
        return self.page_views[-1].url if self.page_views else None


class BehaviorStore:
    """
    Ordered, append-only session history of every behavior event kind.

    Writes and snapshots share one re-entrant lock.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self.page_views: List[PageView] = []
        self.interactions: List[Interaction] = []
        self.scrolls: List[ScrollEvent] = []
        self.form_interactions: List[FormInteraction] = []
        self.time_on_page: List[TimeOnPage] = []
        self.preference_updates: List[PreferencesUpdate] = []
        self.preferences: Dict[str, Any] = {}
        self.session_data: Dict[str, Any] = {}

    def append(self, event: BehaviorEvent) -> None:
        """Append a record to the sequence of its kind."""
        with self._lock:
            if isinstance(event, PageView):
                self.page_views.append(event)
            elif isinstance(event, Interaction):
                self.interactions.append(event)
            elif isinstance(event, ScrollEvent):
                self.scrolls.append(event)
            elif isinstance(event, FormInteraction):
                self.form_interactions.append(event)
            elif isinstance(event, TimeOnPage):
                self.time_on_page.append(event)
            elif isinstance(event, PreferencesUpdate):
                self.preference_updates.append(event)
                self.preferences.update(event.preferences)
            else:
                raise TypeError(f"Unsupported behavior event: {type(event).__name__}")

    def set_session_value(self, key: str, value: Any) -> None:
        with self._lock:
            self.session_data[key] = value

    def snapshot(self) -> BehaviorSnapshot:
        """Get a frozen copy of all current values."""
        with self._lock:
            return BehaviorSnapshot(
                page_views=tuple(self.page_views),
                interactions=tuple(self.interactions),
                scrolls=tuple(self.scrolls),
                form_interactions=tuple(self.form_interactions),
                time_on_page=tuple(self.time_on_page),
                preference_updates=tuple(self.preference_updates),
                preferences=MappingProxyType(dict(self.preferences)),
                session_data=MappingProxyType(dict(self.session_data)),
            )

    def clear(self) -> None:
        """Clear all data."""
        with self._lock:
            self.page_views.clear()
            self.interactions.clear()
            self.scrolls.clear()
            self.form_interactions.clear()
            self.time_on_page.clear()
            self.preference_updates.clear()
            self.preferences.clear()
            self.session_data.clear()
        logger.debug("Behavior store cleared")

    def get_context_summary(self) -> Dict[str, Any]:
        """Get a summary of current context."""
        with self._lock:
            return {
                "url": self.page_views[-1].url if self.page_views else None,
                "page_views": len(self.page_views),
                "interactions": len(self.interactions),
                "scrolls": len(self.scrolls),
                "form_interactions": len(self.form_interactions),
                "max_scroll": self.scrolls[-1].max_scroll if self.scrolls else 0,
                "preferences": dict(self.preferences),
            }


def url_path(url: Optional[str]) -> str:
    """Path component of a page URL ("" when there is none)."""
    if not url:
        return ""
    return urlparse(url).path


def url_query(url: Optional[str]) -> Dict[str, List[str]]:
    """Query parameters of a page URL, blank values kept."""
    if not url:
        return {}
    return parse_qs(urlparse(url).query, keep_blank_values=True)
