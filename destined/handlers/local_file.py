"""Local file handler — writes routed envelopes to JSON files.

Layout: {base_path}/{condition}/{request_id}.json

Each envelope is serialized to canonical JSON in its wire (camelCase) form.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from destined.models.envelopes import OutcomeEnvelope

logger = logging.getLogger(__name__)


def canonical_json_bytes(obj: Any) -> bytes:
    """Sorted-key, compact, ASCII-only JSON encoded as UTF-8."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


class LocalFileHandler:
    """Writes envelopes to local JSON files.

    Parameters
    ----------
    name:
        Handler name.
    base_path:
        Root directory for event files.  Defaults to ``.destined/events``.
    """

    def __init__(self, name: str, base_path: Path | str | None = None) -> None:
        self._name = name
        self._base = Path(base_path) if base_path else Path(".destined/events")
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def handler_name(self) -> str:
        return self._name

    @property
    def base_path(self) -> Path:
        return self._base

    def handle(self, envelope: OutcomeEnvelope) -> None:
        condition = envelope.request_context.condition.value
        target_dir = self._base / condition
        target_dir.mkdir(parents=True, exist_ok=True)

        target_file = target_dir / f"{envelope.request_id}.json"
        target_file.write_bytes(canonical_json_bytes(envelope.to_wire()))

        logger.debug("LocalFileHandler: wrote %s to %s", envelope.request_id, target_file)

    def list_events(self, condition: str | None = None) -> list[Path]:
        """List written event files, optionally filtered by condition."""
        if condition:
            condition_dir = self._base / condition
            if not condition_dir.exists():
                return []
            return sorted(condition_dir.glob("*.json"))
        return sorted(self._base.rglob("*.json"))

    def read_event(self, path: Path) -> dict:
        """Read and parse a single event file."""
        return json.loads(path.read_bytes())
