from agent_system.behavior_store import BehaviorSnapshot, EventType, Interaction, PageView
from agents.conversion_optimizer import ConversionOptimizerAgent


def make_agent(capture, scheduler, settings):
    return ConversionOptimizerAgent(capture.bus, scheduler, settings)


def visit(agent, path):
    agent.handle_event(EventType.PAGE_VIEW, PageView(url=f"https://signova.test{path}", title="", timestamp=0))


def click(agent, text):
    agent.handle_event(EventType.INTERACTION, Interaction(type="click", timestamp=0, text=text))


def leave(agent, y):
    agent.handle_event(EventType.MOUSE_LEAVE, Interaction(type="mouse_leave", timestamp=0, coordinates=(200, y)))


def test_funnel_counts_page_categories(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    for path in ("/", "/pricing", "/pricing", "/register"):
        visit(agent, path)

    funnel = agent.conversion_funnel
    assert (funnel["landing"], funnel["pricing"], funnel["registration"]) == (1, 2, 1)


def test_index_page_counts_as_landing(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    visit(agent, "/index.html")

    assert agent.conversion_funnel["landing"] == 1


def test_high_intent_click_makes_an_offer(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    click(agent, "Start Free Trial")

    assert capture.titles() == ["Special Offer"]
    assert agent.conversion_funnel["trial"] == 1


def test_pricing_interest_is_answered_after_a_delay(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    click(agent, "Compare plans")
    assert capture.requests == []

    scheduler.advance(4999)
    assert capture.requests == []
    scheduler.advance(1)

    assert capture.kinds() == ["suggest_action"]
    assert capture.requests[0].data["followUp"]["data"]["title"] == "Support Chat"
    assert capture.requests[0].timestamp == 5000


def test_pending_pricing_suggestion_can_be_cancelled(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    click(agent, "See pricing")
    agent.cancel_pending()
    scheduler.advance(10000)

    assert capture.requests == []


def test_pricing_interest_without_scheduler_is_immediate(capture, settings):
    agent = ConversionOptimizerAgent(capture.bus, None, settings)

    click(agent, "See pricing")

    assert capture.kinds() == ["suggest_action"]


def test_exit_through_the_top_edge_is_one_shot(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    leave(agent, 0)
    leave(agent, -5)

    assert capture.titles() == ["Wait! Don't Miss Out"]
    assert agent.exit_intent_detected


def test_leaving_sideways_is_not_exit_intent(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    leave(agent, 300)

    assert capture.requests == []
    assert not agent.exit_intent_detected


def test_registration_on_register_page_counts_as_conversion(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    visit(agent, "/register.html")

    agent.handle_event(EventType.INTERACTION, Interaction(type="form_submit", timestamp=0, form_id="signup"))

    assert agent.conversion_funnel["conversion"] == 1


def test_weak_registration_ratio_suggests_quick_signup_once(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    visit(agent, "/pricing")
    visit(agent, "/pricing")

    agent.optimize(BehaviorSnapshot())
    agent.optimize(BehaviorSnapshot())

    assert capture.titles() == ["Simplified Registration"]


def test_no_pricing_views_means_no_ratio_check(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)
    visit(agent, "/register")

    agent.optimize(BehaviorSnapshot())

    assert capture.requests == []


def test_long_visit_gets_plan_help(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    scheduler.advance(120000)
    agent.optimize(BehaviorSnapshot())
    assert capture.requests == []

    scheduler.advance(1)
    agent.optimize(BehaviorSnapshot())
    agent.optimize(BehaviorSnapshot())

    assert capture.kinds() == ["suggest_action"]
    assert capture.requests[0].data["href"] == "/pricing.html"


def test_fired_pricing_suggestions_are_not_kept_pending(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    click(agent, "See pricing")
    click(agent, "Compare plans")
    assert agent.get_stats()["pending"] == 2

    scheduler.advance(settings.pricing_followup_delay_ms)

    assert capture.kinds() == ["suggest_action", "suggest_action"]
    assert agent.get_stats()["pending"] == 0


def test_shutdown_cancels_pending_suggestions(capture, scheduler, settings):
    agent = make_agent(capture, scheduler, settings)

    click(agent, "See pricing")
    agent.shutdown()
    scheduler.advance(10000)

    assert capture.requests == []
