"""Unit tests for the rule matcher — path lookup, exact matching, fan-out sets."""

from __future__ import annotations

import pytest

from destined.core.matcher import MISSING, explain, lookup_path, match, rule_matches
from destined.models.rules import DEFAULT_RULES, Rule


def _rule(rule_id: str, destination: str = "d", **paths: list[str]) -> Rule:
    return Rule(
        rule_id=rule_id,
        destination=destination,
        pattern={path.replace("__", "."): frozenset(v) for path, v in paths.items()},
    )


class TestLookupPath:
    def test_nested_lookup(self):
        doc = {"a": {"b": {"c": "x"}}}
        assert lookup_path(doc, "a.b.c") == "x"
        assert lookup_path(doc, "a.b") == {"c": "x"}

    def test_missing_segment(self):
        assert lookup_path({"a": {}}, "a.b") is MISSING

    def test_traversing_scalar_is_missing(self):
        assert lookup_path({"a": "scalar"}, "a.b") is MISSING

    def test_missing_is_falsy(self):
        assert not MISSING


class TestRuleMatches:
    def test_all_paths_must_match(self):
        rule = _rule("r", requestContext__condition=["Success"], responsePayload__source=["s"])
        assert rule_matches(rule, {"requestContext": {"condition": "Success"}, "responsePayload": {"source": "s"}})
        assert not rule_matches(rule, {"requestContext": {"condition": "Success"}, "responsePayload": {"source": "t"}})

    def test_any_listed_value_matches(self):
        rule = _rule("r", responsePayload__errorType=["Error", "TypeError"])
        assert rule_matches(rule, {"responsePayload": {"errorType": "TypeError"}})

    def test_absent_field_fails(self):
        rule = _rule("r", responsePayload__errorType=["Error"])
        assert not rule_matches(rule, {"responsePayload": {}})
        assert not rule_matches(rule, {})

    def test_unconstrained_fields_ignored(self):
        rule = _rule("r", responsePayload__errorType=["Error"])
        assert rule_matches(
            rule, {"responsePayload": {"errorType": "Error", "anything": "else"}}
        )

    @pytest.mark.parametrize("value", ["error", "ERROR", "Error ", " Error", ""])
    def test_exact_case_sensitive(self, value):
        rule = _rule("r", responsePayload__errorType=["Error"])
        assert not rule_matches(rule, {"responsePayload": {"errorType": value}})

    @pytest.mark.parametrize("value", [None, 1, ["Error"], {"Error": True}])
    def test_non_string_values_never_match(self, value):
        rule = _rule("r", responsePayload__errorType=["Error"])
        assert not rule_matches(rule, {"responsePayload": {"errorType": value}})


class TestMatch:
    def test_success_envelope_matches_success_rule(self, success_envelope):
        assert match(success_envelope, DEFAULT_RULES) == frozenset({"destined-success"})

    def test_failure_envelope_matches_failure_rule(self, failure_envelope):
        assert match(failure_envelope, DEFAULT_RULES) == frozenset({"destined-failure"})

    def test_success_with_other_source_matches_nothing(self, make_success_envelope):
        env = make_success_envelope(source="someone-else")
        assert match(env, DEFAULT_RULES) == frozenset()

    def test_other_error_type_matches_nothing(self, make_failure_envelope):
        env = make_failure_envelope(error_type="TypeError")
        assert match(env, DEFAULT_RULES) == frozenset()

    def test_failure_rule_is_broad(self):
        """Any envelope carrying errorType=Error lands on the failure rule."""
        malformed = {
            "requestContext": {"condition": "Success"},
            "responsePayload": {"errorType": "Error", "source": "x"},
        }
        assert match(malformed, DEFAULT_RULES) == frozenset({"destined-failure"})

    def test_multiple_rules_can_match(self, failure_envelope):
        rules = [
            *DEFAULT_RULES,
            _rule("all-failures", "audit", requestContext__condition=["Failure"]),
        ]
        assert match(failure_envelope, rules) == frozenset(
            {"destined-failure", "all-failures"}
        )

    def test_idempotent(self, success_envelope):
        first = match(success_envelope, DEFAULT_RULES)
        second = match(success_envelope, DEFAULT_RULES)
        assert first == second

    def test_order_independent(self, failure_envelope):
        rules = [
            *DEFAULT_RULES,
            _rule("all-failures", "audit", requestContext__condition=["Failure"]),
        ]
        assert match(failure_envelope, rules) == match(failure_envelope, reversed(rules))

    def test_no_rules(self, success_envelope):
        assert match(success_envelope, []) == frozenset()


class TestExplain:
    def test_per_path_results(self, make_success_envelope):
        env = make_success_envelope(action="other")
        success_rule = DEFAULT_RULES[0]
        assert explain(env, success_rule) == {
            "requestContext.condition": True,
            "responsePayload.action": False,
            "responsePayload.source": True,
        }
