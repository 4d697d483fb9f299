"""Declarative destination rules.

A rule maps dotted field paths of an outcome envelope to the set of literal
string values allowed at that path.  Paths are ANDed, values are ORed, and
a path the rule does not mention is unconstrained.

Rules are static configuration: built once at start-up and never mutated.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator


class RuleDefinitionError(ValueError):
    """Raised when a rule or rules file is malformed."""


class Rule(BaseModel):
    """A field-pattern predicate bound to a named destination."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    destination: str
    pattern: Mapping[str, frozenset[str]]
    description: str = ""

    @field_validator("pattern")
    @classmethod
    def _pattern_not_empty(
        cls, value: Mapping[str, frozenset[str]]
    ) -> Mapping[str, frozenset[str]]:
        if not value:
            raise ValueError("rule pattern must constrain at least one field")
        for path, allowed in value.items():
            if not path or any(not part for part in path.split(".")):
                raise ValueError(f"invalid field path: {path!r}")
            if not allowed:
                raise ValueError(f"field {path!r} has no allowed values")
        # Read-only view: frozen=True alone still allows item assignment.
        return MappingProxyType(dict(value))

    @field_serializer("pattern")
    def _serialize_pattern(
        self, value: Mapping[str, frozenset[str]]
    ) -> dict[str, list[str]]:
        return {path: sorted(allowed) for path, allowed in value.items()}

    @property
    def paths(self) -> list[str]:
        return sorted(self.pattern)

    @classmethod
    def from_event_pattern(
        cls,
        rule_id: str,
        destination: str,
        event_pattern: Mapping[str, Any],
        description: str = "",
    ) -> Rule:
        """Build a rule from a nested pattern literal.

        >>> rule = Rule.from_event_pattern(
        ...     "ok", "success", {"requestContext": {"condition": ["Success"]}}
        ... )
        >>> dict(rule.pattern)
        {'requestContext.condition': frozenset({'Success'})}
        """
        return cls(
            rule_id=rule_id,
            destination=destination,
            pattern=flatten_event_pattern(event_pattern),
            description=description,
        )


def flatten_event_pattern(
    event_pattern: Mapping[str, Any], prefix: str = ""
) -> dict[str, frozenset[str]]:
    """Flatten ``{"a": {"b": ["x"]}}`` into ``{"a.b": frozenset({"x"})}``."""
    if not isinstance(event_pattern, Mapping):
        raise RuleDefinitionError(
            f"event pattern {prefix or '<root>'!r} must be an object, "
            f"got {type(event_pattern).__name__}"
        )
    flat: dict[str, frozenset[str]] = {}
    for key, value in event_pattern.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, Mapping):
            flat.update(flatten_event_pattern(value, path))
        elif isinstance(value, list):
            if not all(isinstance(v, str) for v in value):
                raise RuleDefinitionError(
                    f"values for {path!r} must all be strings"
                )
            flat[path] = frozenset(value)
        else:
            raise RuleDefinitionError(
                f"pattern leaf {path!r} must be a list of strings, "
                f"got {type(value).__name__}"
            )
    return flat


def load_rules(path: Path | str) -> list[Rule]:
    """Load rules from a JSON file.

    The file holds a list of objects with ``rule_id``, ``destination`` and
    either ``pattern`` (dotted keys) or ``eventPattern`` (nested form).
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RuleDefinitionError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(raw, list):
        raise RuleDefinitionError(
            f"Rules file must hold a JSON list, got {type(raw).__name__}"
        )

    rules: list[Rule] = []
    for item in raw:
        if not isinstance(item, dict):
            raise RuleDefinitionError("Each rule must be a JSON object")
        try:
            if "eventPattern" in item:
                rules.append(
                    Rule.from_event_pattern(
                        item["rule_id"],
                        item["destination"],
                        item["eventPattern"],
                        item.get("description", ""),
                    )
                )
            else:
                rules.append(Rule.model_validate(item))
        except (KeyError, ValueError) as exc:
            raise RuleDefinitionError(f"Invalid rule {item!r}: {exc}") from exc
    return rules


SUCCESS_RULE = Rule.from_event_pattern(
    "destined-success",
    "success",
    {
        "requestContext": {"condition": ["Success"]},
        "responsePayload": {
            "source": ["the-destined-lambda"],
            "action": ["message"],
        },
    },
    description="Successful invocations of the destined worker",
)

# Keyed only on errorType so any failure lands here, not just forced ones.
FAILURE_RULE = Rule.from_event_pattern(
    "destined-failure",
    "failure",
    {"responsePayload": {"errorType": ["Error"]}},
    description="Invocations that raised a generic Error",
)

DEFAULT_RULES: tuple[Rule, ...] = (SUCCESS_RULE, FAILURE_RULE)
