import json
from pathlib import Path
from typing import Any

from hn_forest.constants import (
    EXTERNAL_REQUEST_SEMAPHORE,
    FRONT_PAGE_SIZE,
    HN_API_BASE,
    HTTP_TIMEOUT,
)

CONFIG_DIR = Path.home() / ".config" / "hn_forest"
CONFIG_FILE = CONFIG_DIR / "config.json"


def load_config() -> dict:
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            data = json.load(f)
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(key: str, value: Any):
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    config = load_config()
    config[key] = value
    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


def _positive(value: Any, default, cast):
    try:
        out = cast(value)
    except (TypeError, ValueError):
        return default
    return out if out > 0 else default


def get_api_base() -> str:
    base = load_config().get("api_base")
    if not isinstance(base, str) or not base:
        return HN_API_BASE
    return base.rstrip("/")


def get_max_concurrency() -> int:
    """Configured request bound; 0 means unbounded."""
    value = load_config().get("max_concurrency")
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return EXTERNAL_REQUEST_SEMAPHORE


def get_request_timeout() -> float:
    return _positive(load_config().get("timeout"), HTTP_TIMEOUT, float)


def get_front_page_size() -> int:
    return _positive(load_config().get("front_page_size"), FRONT_PAGE_SIZE, int)
