from agent_system.behavior_store import BehaviorSnapshot, EventType, Interaction, PageView, ScrollEvent
from agents.support_assistant import COMPLEX_ELEMENT_SELECTOR, SupportAssistantAgent


def make_agent(capture, scheduler, settings):
    return SupportAssistantAgent(capture.bus, scheduler, settings)


def visit(agent, path):
    agent.handle_event(EventType.PAGE_VIEW, PageView(url=f"https://signova.test{path}", title="", timestamp=0))


def click(agent, text):
    agent.handle_event(EventType.INTERACTION, Interaction(type="click", timestamp=0, text=text))


def test_help_click_on_pricing_offers_plan_advice(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    visit(agent, "/pricing.html")

    click(agent, "Contact sales")

    assert capture.titles() == ["Need Assistance?"]
    assert "choosing the right plan" in capture.requests[0].data["message"]
    assert capture.requests[0].data["followUp"]["data"]["title"] == "Support Chat"
    assert agent.support_triggers == 1


def test_help_click_on_register_offers_registration_help(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    visit(agent, "/register.html")

    click(agent, "Need HELP?")

    assert "registration" in capture.requests[0].data["message"]


def test_help_click_elsewhere_is_generic(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    visit(agent, "/features.html")

    click(agent, "Support")

    assert capture.requests[0].data["message"] == "How can we help you get the most out of Signova?"


def test_ordinary_click_is_ignored(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    click(agent, "Read more")

    assert capture.requests == []


def test_low_engagement_after_a_while_suggests_getting_started_once(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    stalled = ScrollEvent(scroll_percent=10, max_scroll=10, timestamp=31000, elapsed=31000)

    agent.handle_event(EventType.SCROLL, stalled)
    agent.handle_event(EventType.SCROLL, stalled)

    assert capture.kinds() == ["suggest_action"]
    assert capture.requests[0].data["href"] == "/getting-started.html"


def test_early_or_deep_scrolling_is_not_low_engagement(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    agent.handle_event(EventType.SCROLL, ScrollEvent(scroll_percent=10, max_scroll=10, timestamp=5000, elapsed=5000))
    agent.handle_event(EventType.SCROLL, ScrollEvent(scroll_percent=60, max_scroll=60, timestamp=40000, elapsed=40000))

    assert capture.requests == []


def test_first_cycle_adds_tooltips(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    agent.optimize(BehaviorSnapshot())
    agent.optimize(BehaviorSnapshot())

    assert capture.kinds() == ["enhance_workflow"]
    assert capture.requests[0].data == {"type": "tooltip", "selector": COMPLEX_ELEMENT_SELECTOR}


def test_recent_form_error_offers_form_help_once_per_error(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    agent.optimize(BehaviorSnapshot())
    capture.clear()

    error = Interaction(type="form_error", timestamp=100, id="email")
    snapshot = BehaviorSnapshot(interactions=(error,))
    agent.optimize(snapshot)
    agent.optimize(snapshot)

    assert capture.titles() == ["Form Help Available"]

    later = Interaction(type="form_error", timestamp=200, id="phone")
    agent.optimize(BehaviorSnapshot(interactions=(error, later)))

    assert capture.titles() == ["Form Help Available", "Form Help Available"]


def test_old_form_errors_are_out_of_the_window(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    agent.optimize(BehaviorSnapshot())
    capture.clear()

    error = Interaction(type="form_error", timestamp=100)
    clicks = tuple(Interaction(type="click", timestamp=200 + i) for i in range(5))
    agent.optimize(BehaviorSnapshot(interactions=(error,) + clicks))

    assert capture.requests == []


def test_form_error_at_time_zero_is_surfaced(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    agent.optimize(BehaviorSnapshot())
    capture.clear()

    agent.optimize(BehaviorSnapshot(interactions=(Interaction(type="form_error", timestamp=0),)))

    assert capture.titles() == ["Form Help Available"]


def test_second_error_in_the_same_millisecond_is_not_lost(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    agent.optimize(BehaviorSnapshot())
    capture.clear()

    first = Interaction(type="form_error", timestamp=100, id="email")
    second = Interaction(type="form_error", timestamp=100, id="phone")
    agent.optimize(BehaviorSnapshot(interactions=(first,)))
    agent.optimize(BehaviorSnapshot(interactions=(first, second)))

    assert capture.titles() == ["Form Help Available", "Form Help Available"]


def test_cleared_session_starts_counting_again(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    agent.optimize(BehaviorSnapshot())
    capture.clear()

    clicks = tuple(Interaction(type="click", timestamp=i) for i in range(3))
    agent.optimize(BehaviorSnapshot(interactions=clicks))
    agent.optimize(BehaviorSnapshot(interactions=(Interaction(type="form_error", timestamp=5),)))

    assert capture.titles() == ["Form Help Available"]
