"""
Behavior Recorder - Normalizes raw browser events into behavior records.

Raw events are plain dicts mirroring the DOM event that produced them (see
browser_adapter.CAPTURE_SCRIPT). Missing attributes degrade to None or empty
values; the recorder never raises into its caller.
"""

from typing import Any, Callable, Dict, Mapping, Optional
import logging
import math

from .behavior_store import (
    BehaviorEvent,
    BehaviorStore,
    EventType,
    FormInteraction,
    Interaction,
    PageView,
    PreferencesUpdate,
    ScrollEvent,
    TimeOnPage,
)
from .scheduler import Scheduler, TimerHandle
from .settings import AgentSettings

logger = logging.getLogger(__name__)


FOCUS_FIELD_TAGS = {"input", "textarea", "select"}
INPUT_FIELD_TAGS = {"input", "textarea"}

Notifier = Callable[[EventType, BehaviorEvent], Any]


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _number(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _target(raw: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if not raw:
        return {}
    target = raw.get("target")
    return target if isinstance(target, Mapping) else {}


class BehaviorRecorder:
    """
    Captures page views, clicks, submits, scrolls, form activity and unload.

    Every record is appended to the store and then handed to the notifier,
    which fans it out to the agents.
    """

    def __init__(
        self,
        store: BehaviorStore,
        notifier: Notifier,
        scheduler: Scheduler,
        settings: Optional[AgentSettings] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.scheduler = scheduler
        self.settings = settings or AgentSettings()

        self.start_time = scheduler.now()
        self._last_stamp = self.start_time
        self._max_scroll = 0.0
        self._pending_scroll: Optional[TimerHandle] = None
        self._last_scroll_percent = 0.0
        self._current_url = ""
        self._unload_recorded = False

    def _stamp(self) -> float:
        """Current time, never earlier than the previous stamp."""
        self._last_stamp = max(self.scheduler.now(), self._last_stamp)
        return self._last_stamp

    def _emit(self, event_type: EventType, event: BehaviorEvent) -> BehaviorEvent:
        self.store.append(event)
        try:
            self.notifier(event_type, event)
        except Exception as e:
            logger.error(f"Error notifying agents of {event_type.value}: {e}")
        return event

    def record_page_view(self, page: Optional[Mapping[str, Any]] = None) -> PageView:
        """Record the current page (url, title, referrer, user agent, viewport)."""
        page = _mapping(page)
        viewport = _mapping(page.get("viewport"))
        performance = _mapping(page.get("performance"))

        view = PageView(
            url=str(page.get("url") or ""),
            title=str(page.get("title") or ""),
            timestamp=self._stamp(),
            referrer=str(page.get("referrer") or ""),
            user_agent=str(page.get("userAgent") or ""),
            viewport={
                "width": int(_number(viewport.get("width"))),
                "height": int(_number(viewport.get("height"))),
            },
            performance={str(k): _number(v) for k, v in performance.items()},
        )
        self._current_url = view.url
        self._emit(EventType.PAGE_VIEW, view)
        return view

    def record_interaction(self, raw: Optional[Mapping[str, Any]]) -> Interaction:
        """Record a click or a form submit."""
        raw = raw or {}
        target = _target(raw)

        if raw.get("type") == "submit":
            interaction = Interaction(
                type="form_submit",
                timestamp=self._stamp(),
                form_id=_text(target.get("id")),
                form_action=_text(target.get("action")),
            )
        else:
            text = target.get("textContent")
            excerpt = None if text is None else str(text)[: self.settings.text_excerpt_length]
            interaction = Interaction(
                type="click",
                timestamp=self._stamp(),
                element=_text(target.get("tagName")),
                class_name=_text(target.get("className")),
                id=_text(target.get("id")),
                text=excerpt,
                coordinates=(_number(raw.get("clientX")), _number(raw.get("clientY"))),
            )

        self._emit(EventType.INTERACTION, interaction)
        return interaction

    def record_form_error(self, raw: Optional[Mapping[str, Any]]) -> Interaction:
        """Record a field failing validation (the DOM 'invalid' event)."""
        raw = raw or {}
        target = _target(raw)
        interaction = Interaction(
            type="form_error",
            timestamp=self._stamp(),
            element=_text(target.get("tagName")),
            class_name=_text(target.get("className")),
            id=_text(target.get("name") or target.get("id")),
        )
        self._emit(EventType.INTERACTION, interaction)
        return interaction

    def record_mouse_leave(self, raw: Optional[Mapping[str, Any]]) -> Interaction:
        """Record the pointer leaving the viewport."""
        raw = raw or {}
        interaction = Interaction(
            type="mouse_leave",
            timestamp=self._stamp(),
            coordinates=(_number(raw.get("clientX")), _number(raw.get("clientY"))),
        )
        self._emit(EventType.MOUSE_LEAVE, interaction)
        return interaction

    def record_scroll(self, raw: Optional[Mapping[str, Any]] = None) -> None:
        """
        Note a raw scroll sample.

        The record is written only after the page has been quiet for the
        debounce period; each new sample re-arms the timer.
        """
        raw = raw or {}
        scrollable = _number(raw.get("scrollHeight")) - _number(raw.get("innerHeight"))
        if scrollable > 0:
            percent = _number(raw.get("scrollY")) / scrollable * 100
        else:
            percent = 0.0

        self._last_scroll_percent = percent
        self._max_scroll = max(self._max_scroll, percent)

        if self._pending_scroll is not None:
            self._pending_scroll.cancel()
        self._pending_scroll = self.scheduler.call_later(
            self.settings.scroll_debounce_ms, self._flush_scroll
        )

    def _flush_scroll(self) -> None:
        self._pending_scroll = None
        timestamp = self._stamp()
        event = ScrollEvent(
            scroll_percent=round(self._last_scroll_percent),
            max_scroll=round(self._max_scroll),
            timestamp=timestamp,
            elapsed=timestamp - self.start_time,
        )
        self._emit(EventType.SCROLL, event)

    def record_form_interaction(self, raw: Optional[Mapping[str, Any]]) -> Optional[FormInteraction]:
        """Record focus-in or input on a form field; other targets are ignored."""
        raw = raw or {}
        target = _target(raw)
        tag = str(target.get("tagName") or "").lower()
        is_input = raw.get("type") == "input"

        if tag not in (INPUT_FIELD_TAGS if is_input else FOCUS_FIELD_TAGS):
            return None

        value = target.get("value")
        event = FormInteraction(
            type="form_input" if is_input else "form_focus",
            field_name=_text(target.get("name") or target.get("id")),
            field_type=_text(target.get("type")),
            timestamp=self._stamp(),
            value_length=len(str(value or "")) if is_input else None,
        )
        self._emit(EventType.FORM_INTERACTION, event)
        return event

    def record_time_on_page(self) -> Optional[TimeOnPage]:
        """Record elapsed time on page. Emits once per recorder."""
        if self._unload_recorded:
            return None
        self._unload_recorded = True

        if self._pending_scroll is not None:
            self._pending_scroll.cancel()
            self._pending_scroll = None

        timestamp = self._stamp()
        event = TimeOnPage(
            duration=timestamp - self.start_time,
            url=self._current_url,
            timestamp=timestamp,
        )
        self._emit(EventType.TIME_ON_PAGE, event)
        return event

    def record_preferences(self, preferences: Optional[Mapping[str, Any]]) -> PreferencesUpdate:
        """Merge a partial preferences mapping into the store."""
        update = PreferencesUpdate(
            preferences=dict(_mapping(preferences)),
            timestamp=self._stamp(),
        )
        self._emit(EventType.PREFERENCES_UPDATE, update)
        return update

    def get_stats(self) -> Dict[str, Any]:
        return {
            "started_at": self.start_time,
            "max_scroll": round(self._max_scroll),
            "scroll_pending": self._pending_scroll is not None,
            "unloaded": self._unload_recorded,
        }
