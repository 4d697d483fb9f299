"""Rule matcher — evaluates declarative rules against an outcome envelope.

Evaluation is structural and exact:

1. Each constrained dotted path is looked up in the envelope's wire form.
2. A missing path, a non-string value, or a value outside the allowed set
   fails the rule.
3. A rule matches only when every constrained path matches.

Rules are evaluated independently, so any number of them may match one
envelope.  Matching is a pure read of immutable inputs and is safe to call
from many threads at once.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from destined.models.envelopes import OutcomeEnvelope
from destined.models.rules import Rule


class _Missing:
    """Sentinel for a path that does not resolve."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def as_document(envelope: OutcomeEnvelope | Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the mapping the matcher reads for *envelope*."""
    if isinstance(envelope, OutcomeEnvelope):
        return envelope.to_wire()
    return envelope


def lookup_path(document: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted *path* in a nested mapping.

    Returns ``MISSING`` when any segment is absent or traverses a
    non-mapping value.
    """
    current: Any = document
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return MISSING
        current = current[segment]
    return current


def rule_matches(rule: Rule, document: Mapping[str, Any]) -> bool:
    """Return ``True`` if every constrained path of *rule* matches."""
    for path, allowed in rule.pattern.items():
        value = lookup_path(document, path)
        if not isinstance(value, str) or value not in allowed:
            return False
    return True


def match(
    envelope: OutcomeEnvelope | Mapping[str, Any], rules: Iterable[Rule]
) -> frozenset[str]:
    """Return the ids of all rules matching *envelope*.

    Accepts a typed envelope or any mapping, so malformed envelopes can
    still be classified by the broader rules.
    """
    document = as_document(envelope)
    return frozenset(rule.rule_id for rule in rules if rule_matches(rule, document))


def explain(
    envelope: OutcomeEnvelope | Mapping[str, Any], rule: Rule
) -> dict[str, bool]:
    """Per-path match results for *rule*, for diagnostics."""
    document = as_document(envelope)
    results: dict[str, bool] = {}
    for path in rule.paths:
        value = lookup_path(document, path)
        results[path] = isinstance(value, str) and value in rule.pattern[path]
    return results
