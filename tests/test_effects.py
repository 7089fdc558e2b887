import logging

from agent_system.action_bus import ActionRequest
from agent_system.effects import (
    DEFAULT_NOTIFICATION_MS,
    DEFAULT_SUGGESTION_MS,
    DomCommand,
    EffectRealizer,
    Element,
    InMemoryDocument,
)


def request(kind, data, source="tester"):
    return ActionRequest(kind=kind, data=data, source_agent=source, timestamp=0.0)


def test_notification_is_rendered_with_defaults(document):
    realizer = EffectRealizer(document)

    assert realizer(request("show_notification", {"title": "Hello", "message": "World"}))

    [overlay] = document.notifications()
    assert overlay["title"] == "Hello"
    assert overlay["message"] == "World"
    assert overlay["duration"] == DEFAULT_NOTIFICATION_MS
    assert overlay["sourceAgent"] == "tester"
    assert realizer.realized == 1


def test_suggestion_keeps_follow_up_as_data(document):
    realizer = EffectRealizer(document)
    follow_up = {"kind": "show_notification", "data": {"title": "Later"}}

    realizer(request("suggest_action", {"text": "Try this", "followUp": follow_up}))

    [overlay] = document.suggestions()
    assert overlay["duration"] == DEFAULT_SUGGESTION_MS
    assert document.accept(0) == follow_up
    assert document.overlays == []


def test_unknown_kind_is_ignored(document):
    realizer = EffectRealizer(document)

    assert realizer(request("dance", {"selector": "body"})) is False

    assert document.applied == []
    assert realizer.ignored == 1
    assert realizer.realized == 0


def test_missing_selector_is_a_no_op(document):
    realizer = EffectRealizer(document)

    assert realizer(request("optimize_element", {"selector": "#nowhere", "styles": {"color": "red"}})) is False
    assert realizer(request("personalize_content", {"selector": ".absent", "content": ["x"]})) is False


def test_optimize_element_updates_styles_and_attributes(document):
    button = document.add("#cta", Element("button"))
    realizer = EffectRealizer(document)

    realizer(request("optimize_element", {
        "selector": "#cta",
        "styles": {"background": "green"},
        "attributes": {"aria-label": "Start"},
    }))

    assert button.styles == {"background": "green"}
    assert button.attributes == {"aria-label": "Start"}


def test_personalize_content_replaces_text_in_order(document):
    first = document.add(".hero-subtitle", Element("p", text="old one"))
    second = document.add(".hero-subtitle", Element("p", text="old two"))
    realizer = EffectRealizer(document)

    realizer(request("personalize_content", {"selector": ".hero-subtitle", "content": ["new one"]}))

    assert first.text == "new one"
    assert second.text == "old two"


def test_auto_fill_only_fills_empty_fields(document):
    email = Element("input", attributes={"name": "email"})
    company = Element("input", attributes={"id": "company"}, value="Acme")
    document.add("form", Element("form", children=[Element("div", children=[email]), company]))
    realizer = EffectRealizer(document)

    changed = realizer(request("enhance_workflow", {
        "type": "auto_fill",
        "formSelector": "form",
        "values": {"email": "user@company.com", "company": "Enterprise Corp", "phone": "1"},
    }))

    assert changed
    assert email.value == "user@company.com"
    assert company.value == "Acme"


def test_unknown_workflow_type_is_ignored(document):
    realizer = EffectRealizer(document)

    assert realizer(request("enhance_workflow", {"type": "teleport"})) is False
    assert realizer.ignored == 1


def test_smart_navigation_marks_links_for_hover_prefetch(document):
    link = document.add('a[href="/pricing"]', Element("a"))
    realizer = EffectRealizer(document)

    realizer(request("enhance_workflow", {
        "type": "smart_navigation",
        "selector": 'a[href="/pricing"]',
        "preloadUrl": "/pricing",
    }))

    assert link.hover_prefetch == "/pricing"


def test_prefetch_adds_each_url_once(document):
    realizer = EffectRealizer(document)
    data = {"type": "prefetch", "urls": ["/pricing.html", "/register.html"]}

    assert realizer(request("enhance_workflow", data))
    assert realizer(request("enhance_workflow", data)) is False

    assert document.prefetch_links == ["/pricing.html", "/register.html"]


def test_tooltip_prefers_data_help(document):
    helped = document.add('[data-complex="true"]', Element("input", attributes={"data-help": "Use your work email"}))
    plain = document.add('[data-complex="true"]', Element("select"))
    realizer = EffectRealizer(document)

    realizer(request("enhance_workflow", {"type": "tooltip", "selector": '[data-complex="true"]'}))

    assert helped.tooltip == "Use your work email"
    assert plain.tooltip == "Need help with this?"


def test_progress_indicator_reflects_filled_fields(document):
    form = Element("form", children=[
        Element("input", value="filled"),
        Element("input"),
    ])
    document.add("form", form)
    realizer = EffectRealizer(document)

    realizer(request("enhance_workflow", {"type": "progress_indicator", "formSelector": "form"}))

    assert document.overlays[-1] == {"kind": "progress_indicator", "progress": 0.5}


def test_load_optimizations(document):
    plain = document.add("img", Element("img"))
    eager = document.add("img", Element("img", attributes={"loading": "eager"}))
    blocking = document.add("script", Element("script", attributes={"src": "/app.js"}))
    critical = document.add("script", Element("script", attributes={"src": "/critical.js"}))
    realizer = EffectRealizer(document)

    realizer(request("enhance_workflow", {"type": "lazy_load"}))
    realizer(request("enhance_workflow", {"type": "defer_scripts"}))

    assert plain.attributes["loading"] == "lazy"
    assert eager.attributes["loading"] == "eager"
    assert "defer" in blocking.attributes
    assert "defer" not in critical.attributes


def test_content_security_policy_becomes_a_meta_tag(document):
    realizer = EffectRealizer(document)
    data = {"type": "content_security_policy", "policy": "default-src 'self'"}

    realizer(request("enhance_workflow", data))
    realizer(request("enhance_workflow", data))

    assert document.meta_tags == [{"httpEquiv": "Content-Security-Policy", "content": "default-src 'self'"}]


def test_surface_failure_is_contained(caplog):
    class BrokenSurface:
        def apply(self, command):
            raise RuntimeError("page went away")

    realizer = EffectRealizer(BrokenSurface())

    with caplog.at_level(logging.ERROR, logger="EffectRealizer"):
        assert realizer(request("show_notification", {"title": "x"})) is False

    assert "page went away" in caplog.text


def test_dom_command_serializes():
    command = DomCommand("prefetch", {"urls": ["/a"]})
    assert command.to_dict() == {"op": "prefetch", "args": {"urls": ["/a"]}}
    assert InMemoryDocument().apply(DomCommand("explode")) is False
