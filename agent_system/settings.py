"""
Settings - Tunable constants for the recorder, orchestrator and agents.

Values can be overridden from the environment (or a .env file) with
SITE_AGENTS_<FIELD>, e.g. SITE_AGENTS_OPTIMIZATION_INTERVAL_MS=10000.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import SettingsError

ENV_PREFIX = "SITE_AGENTS_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class AgentSettings:
    """Design constants. Times are milliseconds."""

    # Orchestrator / recorder
    optimization_interval_ms: float = 30000
    scroll_debounce_ms: float = 500
    text_excerpt_length: int = 50
    action_history_limit: int = 1000

    # UX optimizer
    rapid_scroll_gap_ms: float = 200
    rapid_scroll_count: int = 3
    frequent_page_threshold: int = 3
    form_autofill_threshold: int = 5
    shallow_scroll_percent: float = 30

    # Performance monitor
    slow_load_threshold_ms: float = 3000

    # Conversion optimizer
    pricing_followup_delay_ms: float = 5000
    long_visit_ms: float = 120000
    registration_ratio_floor: float = 0.3

    # Support assistant
    low_engagement_scroll_percent: float = 20
    low_engagement_elapsed_ms: float = 30000

    # Workflow enhancer
    workflow_window: int = 5
    repetition_ratio: float = 0.6

    debug: bool = False

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides: Any) -> "AgentSettings":
        """
        Build settings from SITE_AGENTS_* variables.

        Args:
            env_file: Optional .env path; the default lookup is used otherwise
            **overrides: Values that win over the environment
        """
        load_dotenv(env_file)

        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, raw, f.type)

        values.update(overrides)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(name: str, raw: str, kind: type) -> Any:
    """Convert an environment string to the field's type."""
    value = raw.strip()

    if kind is bool:
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise SettingsError(f"{ENV_PREFIX}{name.upper()}: expected a boolean, got {raw!r}")

    try:
        return kind(value)
    except ValueError:
        raise SettingsError(
            f"{ENV_PREFIX}{name.upper()}: expected {kind.__name__}, got {raw!r}"
        ) from None
