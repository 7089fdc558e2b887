#!/usr/bin/env python3
"""
Site Agents - behavior agents running against a live page.

Opens a browser, installs the capture script and feeds every page event
to an Orchestrator. Each new document gets a fresh orchestrator, so agent
state lives exactly as long as the page does.

Usage:
    python main.py https://example.com
"""

import asyncio
import logging
import sys
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from browser_use import BrowserSession

from agent_system.browser_adapter import BrowserAdapter, BrowserState, BrowserSurface, create_browser_session
from agent_system.errors import SettingsError
from agent_system.orchestrator import Orchestrator
from agent_system.scheduler import AsyncioScheduler
from agent_system.settings import AgentSettings


load_dotenv()


class PageSessionRunner:
	"""Pumps page events into one orchestrator per loaded document."""

	def __init__(
		self,
		browser_session: BrowserSession,
		settings: AgentSettings,
		poll_interval: float = 0.25,
		debug: bool = False,
	):
		self.browser_session = browser_session
		self.settings = settings
		self.poll_interval = poll_interval
		self.debug = debug
		self.adapter = BrowserAdapter(browser_session, debug=debug)
		self.surface = BrowserSurface(self.adapter)
		self.orchestrator: Optional[Orchestrator] = None
		self.pages = 0

	def _new_orchestrator(self, page: Dict[str, Any]) -> Orchestrator:
		previous_url = None
		if self.orchestrator is not None:
			summary = self.orchestrator.store.get_context_summary()
			previous_url = summary["url"]
			if self.orchestrator.running:
				self.orchestrator.unload()

		orchestrator = Orchestrator(
			scheduler=AsyncioScheduler(),
			settings=self.settings,
			surface=self.surface,
			debug=self.debug,
		)
		self.pages += 1
		orchestrator.store.set_session_value("page_number", self.pages)
		if previous_url:
			orchestrator.store.set_session_value("previous_url", previous_url)
		orchestrator.start(page)
		print(f"📄 {page.get('url', '')}")
		return orchestrator

	def dispatch(self, event: Dict[str, Any]) -> None:
		event_type = event.get("type")
		payload = event.get("payload") or {}

		if event_type == "pageview":
			self.orchestrator = self._new_orchestrator(payload)
			return

		if self.orchestrator is None:
			return
		self.orchestrator.handle_dom_event(event_type, payload)

	async def run(self, url: str) -> None:
		if not await self.adapter.install():
			raise RuntimeError("Could not install the capture script")
		await self.adapter.navigate(url)

		while True:
			for event in await self.adapter.drain_events():
				self.dispatch(event)
			await asyncio.sleep(self.poll_interval)

	def print_stats(self, state: Optional[BrowserState] = None) -> None:
		print("\n" + "=" * 50)
		print("📊 Session statistics:")
		print(f"  Pages: {self.pages}")
		if state is not None and state.url:
			print(f"  Last page: {state.title or state.url}")
		adapter_stats = self.adapter.get_stats()
		print(f"  Events drained: {adapter_stats['events_drained']}")
		print(f"  Commands sent: {adapter_stats['commands_sent']}")
		if self.orchestrator is not None:
			stats = self.orchestrator.get_stats()
			print(f"  Optimization cycles (current page): {stats['cycles']}")
			print(f"  Actions realized (current page): {stats['actions_realized']}")
			for agent in self.orchestrator.list_agents():
				state = "active" if agent.get("active") else "paused"
				print(f"    {agent['name']}: {state}, {agent.get('actions_dispatched', 0)} actions")
		print("=" * 50)


async def run_site(url: str, settings: AgentSettings, headless: bool = False, debug: bool = False):
	"""Run the behavior agents on url until interrupted."""
	print(f"Opening: {url}")
	print(f"Optimization interval: {settings.optimization_interval_ms / 1000:g}s")
	print(f"Browser mode: {'headless' if headless else 'visible'}")
	print("-" * 50)

	browser_session = await create_browser_session(headless=headless, keep_alive=False)
	await browser_session.start()
	runner = PageSessionRunner(browser_session, settings, debug=debug)

	try:
		await runner.run(url)
	except asyncio.CancelledError:
		print("\n🛑 Interrupted")
	finally:
		if runner.orchestrator is not None:
			runner.orchestrator.unload()
		await runner.surface.flush()
		runner.print_stats(await runner.adapter.get_state())
		await browser_session.stop()


def main():
	"""CLI entry point."""
	if len(sys.argv) < 2:
		print("Site Agents - behavior agents for a live page")
		print("")
		print("Usage:")
		print("  python main.py URL")
		print("")
		print("Options:")
		print("  --headless          Run the browser headless")
		print("  --debug             Verbose agent logging")
		print("  --interval SECONDS  Optimization interval (default: 30)")
		print("")
		print("Settings are also read from SITE_AGENTS_* variables and .env")
		sys.exit(1)

	url = None
	headless = False
	debug = False
	overrides: Dict[str, Any] = {}

	i = 1
	while i < len(sys.argv):
		arg = sys.argv[i]
		if arg == "--interval" and i + 1 < len(sys.argv):
			try:
				overrides["optimization_interval_ms"] = float(sys.argv[i + 1]) * 1000
			except ValueError:
				print(f"Invalid interval: {sys.argv[i + 1]}")
				sys.exit(1)
			i += 2
		elif arg == "--headless":
			headless = True
			i += 1
		elif arg == "--debug":
			debug = True
			i += 1
		elif arg.startswith("--"):
			print(f"Unknown option: {arg}")
			sys.exit(1)
		else:
			url = arg
			i += 1

	if not url:
		print("No URL given")
		sys.exit(1)

	if debug:
		overrides["debug"] = True

	try:
		settings = AgentSettings.from_env(**overrides)
	except SettingsError as e:
		print(f"Configuration error: {e}")
		sys.exit(1)

	logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)

	try:
		asyncio.run(run_site(url, settings, headless=headless, debug=settings.debug))
	except KeyboardInterrupt:
		print("\n🛑 Stopped by user")


if __name__ == "__main__":
	main()
