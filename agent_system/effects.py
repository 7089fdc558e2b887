"""
Effects - Realizes ActionRequests as page mutations.

The EffectRealizer is the single consumer of the action bus. It turns each
request into DomCommands from a fixed vocabulary and applies them to a
PageSurface. Payloads are always treated as data: a follow-up attached to a
notification or suggestion is an ActionRequest-shaped mapping that re-enters
through the inbound action channel when the user accepts it.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, runtime_checkable
import logging

from .action_bus import ActionKind, ActionRequest

logger = logging.getLogger(__name__)


DEFAULT_NOTIFICATION_MS = 5000
DEFAULT_SUGGESTION_MS = 8000
DEFAULT_TOOLTIP_TEXT = "Need help with this?"


@dataclass(frozen=True)
class DomCommand:
    """One page mutation. ``op`` names an entry in the page runtime."""

    op: str
    args: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.op, "args": dict(self.args)}


@runtime_checkable
class PageSurface(Protocol):
    def apply(self, command: DomCommand) -> bool: ...


@dataclass
class Element:
    """A node of the in-memory document."""

    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    styles: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    value: str = ""
    children: List["Element"] = field(default_factory=list)
    hover_prefetch: Optional[str] = None
    tooltip: Optional[str] = None

    def find_field(self, name: str) -> Optional["Element"]:
        """Find a descendant form field by name attribute or id."""
        for child in self.children:
            if child.attributes.get("name") == name or child.attributes.get("id") == name:
                return child
            found = child.find_field(name)
            if found is not None:
                return found
        return None

    def fields(self) -> List["Element"]:
        result = []
        for child in self.children:
            if child.tag.lower() in ("input", "select", "textarea"):
                result.append(child)
            result.extend(child.fields())
        return result


class InMemoryDocument:
    """
    PageSurface without a browser.

    Elements are registered under the exact selector strings agents use.
    A selector that matches nothing turns the command into a no-op.
    """

    def __init__(self):
        self._elements: Dict[str, List[Element]] = {}
        self.overlays: List[Dict[str, Any]] = []
        self.prefetch_links: List[str] = []
        self.meta_tags: List[Dict[str, str]] = []
        self.applied: List[DomCommand] = []

    def add(self, selector: str, element: Element) -> Element:
        self._elements.setdefault(selector, []).append(element)
        return element

    def query(self, selector: Optional[str]) -> Optional[Element]:
        matches = self.query_all(selector)
        return matches[0] if matches else None

    def query_all(self, selector: Optional[str]) -> List[Element]:
        if not selector:
            return []
        return list(self._elements.get(selector, []))

    def notifications(self) -> List[Dict[str, Any]]:
        return [o for o in self.overlays if o["kind"] == "notification"]

    def suggestions(self) -> List[Dict[str, Any]]:
        return [o for o in self.overlays if o["kind"] == "suggestion"]

    def accept(self, index: int) -> Optional[Dict[str, Any]]:
        """Simulate the user accepting an overlay; returns its follow-up, if any."""
        overlay = self.overlays.pop(index)
        return overlay.get("followUp")

    def apply(self, command: DomCommand) -> bool:
        handler = getattr(self, f"_op_{command.op}", None)
        if handler is None:
            return False
        self.applied.append(command)
        return bool(handler(command.args))

    def _op_notification(self, args: Mapping[str, Any]) -> bool:
        self.overlays.append({"kind": "notification", **args})
        return True

    def _op_suggestion(self, args: Mapping[str, Any]) -> bool:
        self.overlays.append({"kind": "suggestion", **args})
        return True

    def _op_progress_indicator(self, args: Mapping[str, Any]) -> bool:
        progress = 0.3
        form = self.query(args.get("formSelector"))
        if form is not None:
            fields = form.fields()
            if fields:
                filled = [f for f in fields if f.value.strip()]
                progress = max(0.1, len(filled) / len(fields))
        self.overlays.append({"kind": "progress_indicator", "progress": progress})
        return True

    def _op_update_element(self, args: Mapping[str, Any]) -> bool:
        element = self.query(args.get("selector"))
        if element is None:
            return False
        element.styles.update(args.get("styles") or {})
        element.attributes.update({k: str(v) for k, v in (args.get("attributes") or {}).items()})
        return True

    def _op_replace_text(self, args: Mapping[str, Any]) -> bool:
        elements = self.query_all(args.get("selector"))
        content = list(args.get("content") or [])
        styles = args.get("styles") or {}
        for index, element in enumerate(elements):
            if index < len(content) and content[index]:
                element.text = content[index]
            element.styles.update(styles)
        return bool(elements)

    def _op_fill_form(self, args: Mapping[str, Any]) -> bool:
        form = self.query(args.get("formSelector"))
        if form is None:
            return False
        filled = False
        for name, value in (args.get("values") or {}).items():
            field_element = form.find_field(name)
            if field_element is not None and not field_element.value:
                field_element.value = str(value)
                filled = True
        return filled

    def _op_prefetch_on_hover(self, args: Mapping[str, Any]) -> bool:
        elements = self.query_all(args.get("selector"))
        for element in elements:
            element.hover_prefetch = args.get("url")
        return bool(elements)

    def _op_prefetch(self, args: Mapping[str, Any]) -> bool:
        added = False
        for url in args.get("urls") or []:
            if url not in self.prefetch_links:
                self.prefetch_links.append(url)
                added = True
        return added

    def _op_tooltip(self, args: Mapping[str, Any]) -> bool:
        elements = self.query_all(args.get("selector"))
        for element in elements:
            element.tooltip = element.attributes.get("data-help") or args.get("text")
        return bool(elements)

    def _op_lazy_load(self, args: Mapping[str, Any]) -> bool:
        changed = False
        for image in self.query_all("img"):
            if "loading" not in image.attributes:
                image.attributes["loading"] = "lazy"
                changed = True
        return changed

    def _op_defer_scripts(self, args: Mapping[str, Any]) -> bool:
        changed = False
        for script in self.query_all("script"):
            attrs = script.attributes
            if "async" in attrs or "defer" in attrs:
                continue
            if "critical" in attrs.get("src", ""):
                continue
            attrs["defer"] = ""
            changed = True
        return changed

    def _op_meta(self, args: Mapping[str, Any]) -> bool:
        tag = {"httpEquiv": str(args.get("httpEquiv", "")), "content": str(args.get("content", ""))}
        if tag in self.meta_tags:
            return False
        self.meta_tags.append(tag)
        return True


CommandBuilder = Callable[[ActionRequest], List[DomCommand]]


class EffectRealizer:
    """
    Single consumer of the action bus.

    Each request produces exactly one effect attempt. Unknown kinds and
    unknown workflow types are ignored.
    """

    def __init__(self, surface: PageSurface, debug: bool = False):
        self.surface = surface
        self._logger = logging.getLogger("EffectRealizer")
        if debug:
            self._logger.setLevel(logging.DEBUG)

        self._handlers: Dict[ActionKind, CommandBuilder] = {
            ActionKind.SHOW_NOTIFICATION: self._show_notification,
            ActionKind.OPTIMIZE_ELEMENT: self._optimize_element,
            ActionKind.PERSONALIZE_CONTENT: self._personalize_content,
            ActionKind.SUGGEST_ACTION: self._suggest_action,
            ActionKind.ENHANCE_WORKFLOW: self._enhance_workflow,
        }
        self._workflow_ops: Dict[str, Callable[[Mapping[str, Any]], DomCommand]] = {
            "auto_fill": lambda d: DomCommand(
                "fill_form",
                {"formSelector": d.get("formSelector"), "values": dict(d.get("values") or {})},
            ),
            "smart_navigation": lambda d: DomCommand(
                "prefetch_on_hover",
                {"selector": d.get("selector"), "url": d.get("preloadUrl")},
            ),
            "prefetch": lambda d: DomCommand("prefetch", {"urls": list(d.get("urls") or [])}),
            "tooltip": lambda d: DomCommand(
                "tooltip",
                {"selector": d.get("selector"), "text": d.get("text") or DEFAULT_TOOLTIP_TEXT},
            ),
            "progress_indicator": lambda d: DomCommand(
                "progress_indicator", {"formSelector": d.get("formSelector") or "form"}
            ),
            "lazy_load": lambda d: DomCommand("lazy_load"),
            "defer_scripts": lambda d: DomCommand("defer_scripts"),
            "content_security_policy": lambda d: DomCommand(
                "meta",
                {"httpEquiv": "Content-Security-Policy", "content": d.get("policy", "")},
            ),
        }

        self.realized = 0
        self.ignored = 0

    def __call__(self, request: ActionRequest) -> bool:
        """Realize one request. Returns True when the page changed."""
        kind = ActionKind.parse(request.kind)
        if kind is None:
            self.ignored += 1
            return False

        commands = self._handlers[kind](request)
        if not commands:
            self.ignored += 1
            return False

        self.realized += 1
        results = [self._apply(command) for command in commands]
        self._logger.debug(f"Realized {request} -> {[c.op for c in commands]}")
        return any(results)

    def _apply(self, command: DomCommand) -> bool:
        try:
            return bool(self.surface.apply(command))
        except Exception as e:
            self._logger.error(f"Error applying {command.op}: {e}")
            return False

    def _show_notification(self, request: ActionRequest) -> List[DomCommand]:
        data = request.data
        return [DomCommand("notification", {
            "title": str(data.get("title", "")),
            "message": str(data.get("message", "")),
            "actionText": data.get("actionText"),
            "href": data.get("href"),
            "followUp": data.get("followUp"),
            "duration": data.get("duration") or DEFAULT_NOTIFICATION_MS,
            "sourceAgent": request.source_agent,
        })]

    def _optimize_element(self, request: ActionRequest) -> List[DomCommand]:
        data = request.data
        return [DomCommand("update_element", {
            "selector": data.get("selector"),
            "styles": dict(data.get("styles") or {}),
            "attributes": dict(data.get("attributes") or {}),
        })]

    def _personalize_content(self, request: ActionRequest) -> List[DomCommand]:
        data = request.data
        return [DomCommand("replace_text", {
            "selector": data.get("selector"),
            "content": list(data.get("content") or []),
            "styles": dict(data.get("styles") or {}),
        })]

    def _suggest_action(self, request: ActionRequest) -> List[DomCommand]:
        data = request.data
        return [DomCommand("suggestion", {
            "text": str(data.get("text", "")),
            "href": data.get("href"),
            "followUp": data.get("followUp"),
            "duration": data.get("duration") or DEFAULT_SUGGESTION_MS,
            "sourceAgent": request.source_agent,
        })]

    def _enhance_workflow(self, request: ActionRequest) -> List[DomCommand]:
        build = self._workflow_ops.get(request.data.get("type"))
        if build is None:
            return []
        return [build(request.data)]
