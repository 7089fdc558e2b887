import logging

from agent_system.behavior_store import BehaviorSnapshot, EventType, Interaction, PageView
from agents.security_monitor import TIGHTENED_POLICY, SecurityMonitorAgent


def view(path):
    return PageView(url=f"https://signova.test{path}", title="", timestamp=0)


def make_agent(capture, scheduler, settings):
    return SecurityMonitorAgent(capture.bus, scheduler, settings)


def test_injection_in_query_raises_an_alert(capture, scheduler, settings, caplog):
    agent = make_agent(capture, scheduler, settings)

    with caplog.at_level(logging.WARNING, logger="Agent.security-monitor"):
        agent.handle_event(EventType.PAGE_VIEW, view("/search?xss=%3Cb%3E"))

    assert agent.suspicious_activity
    assert capture.titles() == ["Security Alert"]
    assert agent.security_events[0]["type"] == "xss_attempt"
    assert "[security-monitor] Security threat detected" in caplog.text


def test_empty_script_parameter_still_counts(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    agent.handle_event(EventType.PAGE_VIEW, view("/?script"))

    assert agent.suspicious_activity


def test_clean_navigation_is_quiet(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    agent.handle_event(EventType.PAGE_VIEW, view("/pricing.html?plan=pro"))
    agent.optimize(BehaviorSnapshot(page_views=(view("/pricing.html?plan=pro"),)))

    assert capture.requests == []
    assert not agent.suspicious_activity


def test_script_like_click_is_logged_without_action(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    agent.handle_event(EventType.INTERACTION, Interaction(type="click", timestamp=0, text="<script>alert(1)"))

    assert [e["type"] for e in agent.security_events] == ["suspicious_click"]
    assert capture.requests == []


def test_suspicious_session_tightens_policy_once(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    agent.handle_event(EventType.PAGE_VIEW, view("/?xss=1"))
    capture.clear()

    agent.optimize(BehaviorSnapshot())
    agent.optimize(BehaviorSnapshot())

    assert capture.kinds() == ["enhance_workflow"]
    assert capture.requests[0].data == {"type": "content_security_policy", "policy": TIGHTENED_POLICY}


def test_signup_pages_get_a_security_tip(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    agent.optimize(BehaviorSnapshot(page_views=(view("/register.html"),)))
    agent.optimize(BehaviorSnapshot(page_views=(view("/register.html"),)))
    agent.optimize(BehaviorSnapshot(page_views=(view("/signin.html"),)))

    assert capture.titles() == ["Security Tip", "Security Tip"]
