"""
Configuration Manager for GuideX.

Every tunable used by the metrics and session code is declared here and can
be overridden from config/runtime.yaml.

Usage:
    from guidex.config_manager import config
    window = config.ANALYTICS_TREND_WINDOW
"""
import os
from dataclasses import dataclass
from typing import List, Optional

import yaml

from guidex.paths import RUNTIME_CONFIG_PATH


@dataclass
class SystemConfig:
    """
    Runtime constants.

    Values are rules of thumb carried over from the dashboard; adjust them
    per deployment in runtime.yaml.
    """

    # === Weekly effort ===

    # Hours credited per journal entry written on a day
    REFLECTION_HOURS_PER_ENTRY: float = 0.5

    # Hours credited per milestone completed on a day
    DEEP_WORK_HOURS_PER_TASK: float = 1.5

    # === Mood trend ===

    # Points on the journal page sentiment chart
    JOURNAL_TREND_WINDOW: int = 7

    # Points on the analytics page mood line
    ANALYTICS_TREND_WINDOW: int = 10

    # === Dashboard ===

    # Active goals shown on the dashboard card
    DASHBOARD_TOP_GOALS: int = 3

    # Journal entries listed in the history sidebar
    RECENT_JOURNAL_ENTRIES: int = 5

    # === Profile ===

    # Streak assigned when a profile is first created (all creation paths)
    DEFAULT_STREAK: int = 1

    # Name used when the email has no usable local part
    DEFAULT_PROFILE_NAME: str = "Explorer"

    AVATAR_URL_TEMPLATE: str = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"

    # === Journal ===

    # Used when an entry is saved without an analysis result
    DEFAULT_SENTIMENT: int = 75
    DEFAULT_SUMMARY: str = "Self-reflective session."
    DEFAULT_MOOD: str = "Focused"

    # === Focus session ===

    SESSION_TICK_SECONDS: float = 1.0
    SESSION_STATE_FILE: str = "session_state.json"

    # === Record store ===

    # "memory" | "supabase"
    STORE_BACKEND: str = "memory"
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    STORE_TIMEOUT_SECONDS: float = 15.0

    # === Reports ===

    # Score used when the model omits one
    DEFAULT_REPORT_SCORE: int = 70

    GOAL_CATEGORIES: Optional[List[str]] = None
    MOODS: Optional[List[str]] = None

    def __post_init__(self):
        if self.GOAL_CATEGORIES is None:
            self.GOAL_CATEGORIES = ["Coding", "Design", "Business", "Health", "Psychology", "Marketing"]
        if self.MOODS is None:
            self.MOODS = ["Calm", "Focused", "Anxious", "Excited", "Tired"]


def _load_runtime_config() -> dict:
    """Load runtime overrides, if present."""
    if not RUNTIME_CONFIG_PATH.exists():
        return {}

    try:
        with open(RUNTIME_CONFIG_PATH, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError):
        return {}


def get_config() -> SystemConfig:
    """
    Build the config instance.

    Priority: environment > runtime.yaml > defaults
    """
    base = SystemConfig()
    overrides = _load_runtime_config()

    for key, value in overrides.items():
        if hasattr(base, key):
            setattr(base, key, value)

    for key in ("STORE_BACKEND", "SUPABASE_URL", "SUPABASE_ANON_KEY"):
        env_value = os.environ.get(key, "").strip()
        if env_value:
            setattr(base, key, env_value)

    return base


# Process-wide config
config = get_config()
