"""
Action Bus - One-way channel from agents to the effect consumer.

Agents publish ActionRequests; subscribers receive them synchronously in
subscription order. Nothing is queued: a request published while nobody is
subscribed is dropped.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional
import logging

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    """Kinds of side effects an agent may request."""

    SHOW_NOTIFICATION = "show_notification"
    OPTIMIZE_ELEMENT = "optimize_element"
    PERSONALIZE_CONTENT = "personalize_content"
    SUGGEST_ACTION = "suggest_action"
    ENHANCE_WORKFLOW = "enhance_workflow"

    @classmethod
    def parse(cls, value: Any) -> Optional["ActionKind"]:
        """Return the matching kind, or None for anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class ActionRequest:
    """A data-only request for an observable UI effect."""

    kind: str
    data: Mapping[str, Any]
    source_agent: str
    timestamp: float = field(default_factory=lambda: time.time() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "data": dict(self.data),
            "sourceAgent": self.source_agent,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ActionRequest":
        """Build a request from an inbound ``ai-agent-action`` payload."""
        kind = payload.get("kind") or payload.get("type") or ""
        data = payload.get("data") or {}
        source = payload.get("sourceAgent") or payload.get("agent") or "page"
        timestamp = payload.get("timestamp")
        if timestamp is None:
            return cls(kind=str(kind), data=dict(data), source_agent=str(source))
        return cls(
            kind=str(kind),
            data=dict(data),
            source_agent=str(source),
            timestamp=float(timestamp),
        )

    def __str__(self) -> str:
        return f"[{self.source_agent}] {self.kind}"


ActionHandler = Callable[[ActionRequest], Any]


class ActionBus:
    """
    Synchronous action bus.

    Every request is delivered exactly once to each subscriber; a failing
    subscriber is logged and does not stop delivery to the rest.
    """

    def __init__(self, max_history: int = 1000):
        self._subscribers: List[ActionHandler] = []
        self._history: Deque[ActionRequest] = deque(maxlen=max_history)
        self._dropped = 0

    @property
    def has_subscribers(self) -> bool:
        return bool(self._subscribers)

    @property
    def dropped_count(self) -> int:
        return self._dropped

    def publish(self, request: ActionRequest) -> None:
        """Publish a request to all subscribers."""
        self._history.append(request)

        if not self._subscribers:
            self._dropped += 1
            logger.debug(f"No consumer attached, dropping {request}")
            return

        for handler in list(self._subscribers):
            self._deliver(handler, request)

    def _deliver(self, handler: ActionHandler, request: ActionRequest) -> None:
        """Deliver a request to a handler with error handling."""
        try:
            handler(request)
        except Exception as e:
            logger.error(f"Error delivering {request} to consumer: {e}")

    def subscribe(self, handler: ActionHandler) -> Callable[[], None]:
        """
        Attach a consumer.

        Returns a function that can be called to unsubscribe.
        """
        self._subscribers.append(handler)

        def unsubscribe():
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def get_history(
        self,
        source_agent: Optional[str] = None,
        kind: Optional[str] = None,
        limit: int = 100,
    ) -> List[ActionRequest]:
        """Get published requests with optional filtering."""
        history = list(self._history)

        if source_agent:
            history = [r for r in history if r.source_agent == source_agent]
        if kind:
            history = [r for r in history if r.kind == kind]

        return history[-limit:]

    def clear_history(self) -> None:
        """Clear request history."""
        self._history.clear()
