"""Tests for worldline descriptor parsing and branch linkage."""

from worldlines.interaction.linkage import (
    descendants,
    parse_descriptor,
    parse_worldline_value,
    resolve_parent,
    transition_target,
    with_alpha,
)
from worldlines.models import EventRow


def _event(id, scope="beta", position=0.0, **kwargs):
    return EventRow(id=id, date=id, title=id, position=position, scope=scope, **kwargs)


class TestParsing:
    def test_descriptor(self):
        assert parse_descriptor("β: 1.130205%") == ("β", 1.130205)
        assert parse_descriptor("  α : 0.000000 % ") == ("α", 0.0)

    def test_descriptor_malformed(self):
        assert parse_descriptor("somewhere around beta") is None
        assert parse_descriptor("β: 1.1") is None
        assert parse_descriptor("") is None
        assert parse_descriptor(None) is None

    def test_value_is_lenient(self):
        assert parse_worldline_value("β: 1.075432%") == 1.075432
        assert parse_worldline_value("approx 0.5% drift") == 0.5
        assert parse_worldline_value("no number here") is None
        assert parse_worldline_value(None) is None

    def test_transition_target(self):
        assert transition_target(_event("a", to_worldline="β: 1.040402%")) == 1.040402
        assert transition_target(_event("a", to_worldline="unknown")) is None
        assert transition_target(_event("a")) is None


class TestResolveParent:
    def test_matches_to_worldline(self):
        x2022 = _event("x2022", from_worldline="β: 1.130205%")
        x2020 = _event("x2020", to_worldline="β: 1.130205%")
        assert resolve_parent(x2022, [x2022, x2020]) == "x2020"

    def test_matches_id(self):
        child = _event("child", from_worldline="root")
        root = _event("root")
        assert resolve_parent(child, [root, child]) == "root"

    def test_matches_id_substring(self):
        child = _event("child", from_worldline="after root event")
        root = _event("root")
        assert resolve_parent(child, [root, child]) == "root"

    def test_first_match_wins(self):
        child = _event("child", from_worldline="β: 1.1%")
        first = _event("first", to_worldline="β: 1.1%")
        second = _event("second", to_worldline="β: 1.1%")
        assert resolve_parent(child, [second, first, child]) == "second"

    def test_ignores_self_and_other_scopes(self):
        event = _event("loop", from_worldline="β: 1.1%", to_worldline="β: 1.1%")
        other = _event("other", scope="alpha", to_worldline="β: 1.1%")
        assert resolve_parent(event, [event, other]) is None

    def test_no_source_means_main_line(self):
        assert resolve_parent(_event("a"), [_event("b")]) is None


class TestDescendants:
    def test_transitive_chain(self):
        root = _event("root", to_worldline="β: 1.0%")
        child = _event("child", from_worldline="β: 1.0%", to_worldline="β: 1.5%")
        grandchild = _event("grandchild", from_worldline="β: 1.5%")
        unrelated = _event("unrelated")
        events = [root, child, grandchild, unrelated]
        assert [e.id for e in descendants("root", events)] == ["child", "grandchild"]

    def test_cycle_terminates(self):
        a = _event("a", from_worldline="b")
        b = _event("b", from_worldline="a")
        assert descendants("root", [a, b]) == []


class TestWithAlpha:
    def test_replaces_alpha(self):
        assert with_alpha("rgba(255, 102, 0, 0.8)", 0.3) == "rgba(255, 102, 0, 0.3)"

    def test_other_alpha_unchanged(self):
        assert with_alpha("rgba(255, 102, 0, 0.5)", 0.3) == "rgba(255, 102, 0, 0.5)"
