"""
Browser Adapter - Bridge between a live browser page and the orchestrator.

A fixed capture script is installed in the page. It records raw DOM events
into an in-page queue, which the adapter drains over CDP, and it exposes a
small runtime that applies DomCommands sent as JSON. Commands are data: the
runtime only knows the ops the EffectRealizer emits, and a
follow-up accepted by the user is queued back as an ``ai-agent-action``
event instead of being executed.
"""

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set
import logging

from browser_use import BrowserSession, BrowserProfile

from .effects import DomCommand

logger = logging.getLogger(__name__)


CAPTURE_SCRIPT = r"""
(() => {
  if (window.__siteAgents) return;
  const queue = [];
  const push = (type, payload) => queue.push({type, payload: payload || {}});
  const target = (el) => !el ? {} : {
    tagName: el.tagName, className: typeof el.className === 'string' ? el.className : '',
    id: el.id, textContent: el.textContent ? el.textContent.substring(0, 200) : '',
    name: el.name, type: el.type, value: typeof el.value === 'string' ? el.value : undefined,
    action: el.action,
  };
  const pageInfo = () => {
    const t = performance.timing || {};
    return {
      url: location.href, title: document.title, referrer: document.referrer,
      userAgent: navigator.userAgent,
      viewport: {width: innerWidth, height: innerHeight},
      performance: {
        loadTime: t.loadEventEnd ? t.loadEventEnd - t.navigationStart : 0,
        renderTime: t.domContentLoadedEventEnd ? t.domContentLoadedEventEnd - t.navigationStart : 0,
        memoryUsage: performance.memory ? performance.memory.usedJSHeapSize : 0,
      },
    };
  };
  document.addEventListener('click', e => push('click', {target: target(e.target), clientX: e.clientX, clientY: e.clientY}), true);
  document.addEventListener('submit', e => push('submit', {target: target(e.target)}), true);
  document.addEventListener('focusin', e => push('focusin', {target: target(e.target)}), true);
  document.addEventListener('input', e => push('input', {target: target(e.target)}), true);
  document.addEventListener('invalid', e => push('invalid', {target: target(e.target)}), true);
  document.addEventListener('mouseleave', e => push('mouseleave', {clientX: e.clientX, clientY: e.clientY}));
  addEventListener('scroll', () => push('scroll', {
    scrollY: scrollY, scrollHeight: document.documentElement.scrollHeight, innerHeight: innerHeight,
  }), {passive: true});
  addEventListener('beforeunload', () => push('beforeunload', {}));
  document.addEventListener('ai-agent-action', e => push('ai-agent-action', e.detail));
  document.addEventListener('user-preference-change', e => push('user-preference-change', e.detail));
  const onReady = () => setTimeout(() => push('pageview', pageInfo()), 0);
  if (document.readyState === 'complete') onReady(); else addEventListener('load', onReady);

  const overlay = (args, css, onAccept) => {
    const box = document.createElement('div');
    box.className = 'ai-agent-overlay';
    box.style.cssText = css;
    const text = document.createElement('div');
    if (args.title) { const h = document.createElement('strong'); h.textContent = args.title; box.appendChild(h); }
    text.textContent = args.message || args.text || '';
    box.appendChild(text);
    if (args.followUp || args.href) {
      const button = document.createElement('button');
      button.textContent = args.actionText || 'OK';
      button.addEventListener('click', () => {
        box.remove();
        if (args.followUp) push('ai-agent-action', args.followUp);
        if (args.href) location.href = args.href;
      });
      box.appendChild(button);
    }
    document.body.appendChild(box);
    setTimeout(() => box.remove(), args.duration || 5000);
    return true;
  };
  const ops = {
    notification: a => overlay(a, 'position:fixed;top:20px;right:20px;z-index:10000;max-width:350px;padding:1rem 1.5rem;border-radius:12px;background:#667eea;color:#fff;'),
    suggestion: a => overlay(a, 'position:fixed;bottom:20px;right:20px;z-index:9999;padding:1rem 1.5rem;border-radius:50px;background:#2563eb;color:#fff;cursor:pointer;'),
    update_element: a => {
      const el = document.querySelector(a.selector); if (!el) return false;
      Object.assign(el.style, a.styles || {});
      Object.entries(a.attributes || {}).forEach(([k, v]) => el.setAttribute(k, v));
      return true;
    },
    replace_text: a => {
      const els = document.querySelectorAll(a.selector);
      els.forEach((el, i) => { if (a.content && a.content[i]) el.textContent = a.content[i]; Object.assign(el.style, a.styles || {}); });
      return els.length > 0;
    },
    fill_form: a => {
      const form = document.querySelector(a.formSelector); if (!form) return false;
      let filled = false;
      Object.entries(a.values || {}).forEach(([name, value]) => {
        const f = form.querySelector(`[name="${CSS.escape(name)}"], #${CSS.escape(name)}`);
        if (f && !f.value) { f.value = value; f.dispatchEvent(new Event('input', {bubbles: true})); filled = true; }
      });
      return filled;
    },
    prefetch_on_hover: a => {
      const els = document.querySelectorAll(a.selector);
      els.forEach(el => el.addEventListener('mouseenter', () => ops.prefetch({urls: [a.url]}), {once: true}));
      return els.length > 0;
    },
    prefetch: a => (a.urls || []).map(url => {
      const link = document.createElement('link'); link.rel = 'prefetch'; link.href = url;
      document.head.appendChild(link); return true;
    }).length > 0,
    tooltip: a => {
      const els = document.querySelectorAll(a.selector);
      els.forEach(el => el.setAttribute('title', el.getAttribute('data-help') || a.text));
      return els.length > 0;
    },
    progress_indicator: a => {
      const bar = document.createElement('div');
      bar.className = 'ai-progress-indicator';
      bar.style.cssText = 'position:fixed;top:0;left:0;right:0;height:4px;background:#2563eb;z-index:10001;transform-origin:left;';
      const form = document.querySelector(a.formSelector);
      let progress = 0.3;
      if (form) {
        const fields = form.querySelectorAll('input, select, textarea');
        if (fields.length) progress = Math.max(0.1, Array.from(fields).filter(f => f.value.trim() !== '').length / fields.length);
      }
      bar.style.transform = `scaleX(${progress})`;
      document.body.appendChild(bar);
      return true;
    },
    lazy_load: () => { document.querySelectorAll('img:not([loading])').forEach(img => img.loading = 'lazy'); return true; },
    defer_scripts: () => {
      document.querySelectorAll('script:not([async]):not([defer])').forEach(s => { if (!s.src.includes('critical')) s.defer = true; });
      return true;
    },
    meta: a => {
      const meta = document.createElement('meta'); meta.httpEquiv = a.httpEquiv; meta.content = a.content;
      document.head.appendChild(meta); return true;
    },
  };
  window.__siteAgents = {
    drain: () => queue.splice(0, queue.length),
    pageInfo,
    apply: cmd => { const op = ops[cmd.op]; return op ? !!op(cmd.args || {}) : false; },
  };
})();
"""


@dataclass
class BrowserState:
    """Page facts captured at load time."""

    url: str
    title: str
    referrer: str = ""
    user_agent: str = ""
    viewport_width: int = 0
    viewport_height: int = 0
    performance: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "referrer": self.referrer,
            "userAgent": self.user_agent,
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "performance": dict(self.performance),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BrowserState":
        data = data or {}
        viewport = data.get("viewport")
        if not isinstance(viewport, Mapping):
            viewport = {}
        performance = data.get("performance")
        return cls(
            url=data.get("url") or "",
            title=data.get("title") or "",
            referrer=data.get("referrer") or "",
            user_agent=data.get("userAgent") or "",
            viewport_width=int(viewport.get("width") or 0),
            viewport_height=int(viewport.get("height") or 0),
            performance=dict(performance) if isinstance(performance, Mapping) else {},
        )


class BrowserAdapter:
    """
    Adapter for a browser-use session.

    Every CDP call is guarded: failures are logged and turned into empty
    results so a flaky page never stops the orchestrator.
    """

    def __init__(
        self,
        browser_session: BrowserSession,
        debug: bool = False,
    ):
        self.browser_session = browser_session
        self.debug = debug
        self._logger = logging.getLogger("BrowserAdapter")

        if debug:
            self._logger.setLevel(logging.DEBUG)

        self._installed = False
        self._commands_sent = 0
        self._events_drained = 0

    async def _evaluate(self, expression: str) -> Any:
        """Evaluate an expression in the current page and return its JSON value."""
        try:
            cdp_session = await self.browser_session.get_or_create_cdp_session()
            result = await cdp_session.cdp_client.send.Runtime.evaluate(
                params={"expression": expression, "returnByValue": True, "awaitPromise": True},
                session_id=cdp_session.session_id,
            )
        except Exception as e:
            self._logger.error(f"Error evaluating in page: {e}")
            return None

        if result.get("exceptionDetails"):
            self._logger.error(f"Page script error: {result['exceptionDetails'].get('text')}")
            return None
        return result.get("result", {}).get("value")

    async def install(self) -> bool:
        """Install the capture script for the current and every future document."""
        try:
            cdp_session = await self.browser_session.get_or_create_cdp_session()
            await cdp_session.cdp_client.send.Page.addScriptToEvaluateOnNewDocument(
                params={"source": CAPTURE_SCRIPT},
                session_id=cdp_session.session_id,
            )
        except Exception as e:
            self._logger.error(f"Error installing capture script: {e}")
            return False

        await self._evaluate(CAPTURE_SCRIPT)
        self._installed = True
        self._logger.debug("Capture script installed")
        return True

    async def navigate(self, url: str) -> bool:
        try:
            cdp_session = await self.browser_session.get_or_create_cdp_session()
            await cdp_session.cdp_client.send.Page.navigate(
                params={"url": url},
                session_id=cdp_session.session_id,
            )
        except Exception as e:
            self._logger.error(f"Error navigating to {url}: {e}")
            return False
        return True

    async def get_state(self) -> BrowserState:
        """Current page facts; an empty state before the script is installed."""
        data = await self._evaluate("window.__siteAgents ? window.__siteAgents.pageInfo() : null")
        if not isinstance(data, dict):
            return BrowserState(url="", title="")
        return BrowserState.from_dict(data)

    async def drain_events(self) -> List[Dict[str, Any]]:
        """Take every queued raw event out of the page, oldest first."""
        events = await self._evaluate("window.__siteAgents ? window.__siteAgents.drain() : []")
        if not isinstance(events, list):
            return []
        valid = [e for e in events if isinstance(e, dict) and e.get("type")]
        self._events_drained += len(valid)
        return valid

    async def apply_command(self, command: DomCommand) -> bool:
        """Send one DomCommand to the in-page runtime."""
        payload = json.dumps(command.to_dict())
        result = await self._evaluate(
            f"window.__siteAgents ? window.__siteAgents.apply({payload}) : false"
        )
        self._commands_sent += 1
        self._logger.debug(f"Applied {command.op}: {result}")
        return bool(result)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "installed": self._installed,
            "commands_sent": self._commands_sent,
            "events_drained": self._events_drained,
        }


class BrowserSurface:
    """
    PageSurface that forwards commands to a live page.

    apply() is fire-and-forget: it schedules the CDP call and returns
    immediately. flush() waits for everything still in flight.
    """

    def __init__(self, adapter: BrowserAdapter, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.adapter = adapter
        self._loop = loop
        self._tasks: Set[asyncio.Task] = set()

    def apply(self, command: DomCommand) -> bool:
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self.adapter.apply_command(command))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def flush(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)


async def create_browser_session(
    headless: bool = False,
    user_data_dir: Optional[Path] = None,
    keep_alive: bool = True,
) -> BrowserSession:
    """
    Create a browser session with the given configuration.

    Args:
        headless: Whether to run browser in headless mode
        user_data_dir: Directory for user data (persistent session)
        keep_alive: Keep browser alive after session ends

    Returns:
        BrowserSession instance
    """
    browser_profile = BrowserProfile(
        headless=headless,
        user_data_dir=str(user_data_dir or Path.home() / ".site-agents" / "profile"),
        keep_alive=keep_alive,
    )

    return BrowserSession(browser_profile=browser_profile)
