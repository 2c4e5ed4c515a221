"""
Where GuideX reads config from and writes runtime state to.

Read-only inputs live under config/ in the checkout. Everything the service
writes (logs, the focus-session file) goes under the data directory, which
GUIDEX_DATA_DIR can move outside the checkout.
"""
import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
PROMPTS_DIR = CONFIG_DIR / "prompts"
RUNTIME_CONFIG_PATH = CONFIG_DIR / "runtime.yaml"
MODEL_CONFIG_PATH = CONFIG_DIR / "model.yaml"
LOCAL_MODEL_CONFIG_PATH = CONFIG_DIR / "local_model.yaml"


def get_data_dir() -> Path:
    raw = os.getenv("GUIDEX_DATA_DIR", "").strip()
    if raw:
        return Path(raw).expanduser()
    return PROJECT_ROOT / "data"


DATA_DIR = get_data_dir()
LOGS_DIR = DATA_DIR / "logs"

