import os
from dataclasses import dataclass
from typing import Optional

import yaml

from .report import DEFAULT_LIMIT
from .storage import DEFAULT_PREFIX

ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_CONFIG = os.path.join(ROOT, "config.yaml")

DEFAULT_URL = "https://www.planity.com/anna-belle-institut-68000-colmar"
DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass(frozen=True)
class Settings:
    url: str = DEFAULT_URL
    navigation_timeout_sec: float = 60
    content_timeout_sec: float = 30
    user_agent: str = DEFAULT_UA
    snapshot_dir: str = "snapshots"
    prefix: str = DEFAULT_PREFIX
    debug_dir: str = "debug"
    webhook_url: Optional[str] = None
    max_message_chars: int = DEFAULT_LIMIT
    request_timeout_sec: float = 15


def config_path(path=None):
    return path or os.environ.get("CATALOG_WATCH_CONFIG") or DEFAULT_CONFIG


def load_config(path=None):
    path = config_path(path)
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path=None, env=None) -> Settings:
    """Build Settings from config.yaml (if any) and the environment."""
    env = os.environ if env is None else env
    path = config_path(path)
    cfg = load_config(path)
    base = os.path.dirname(os.path.abspath(path))

    source = cfg.get("source", {}) or {}
    storage = cfg.get("storage", {}) or {}
    notify = cfg.get("notify", {}) or {}

    def _dir(value):
        return value if os.path.isabs(value) else os.path.join(base, value)

    return Settings(
        url=source.get("url", DEFAULT_URL),
        navigation_timeout_sec=float(source.get("navigation_timeout_sec", 60)),
        content_timeout_sec=float(source.get("content_timeout_sec", 30)),
        user_agent=source.get("user_agent", DEFAULT_UA),
        snapshot_dir=_dir(storage.get("snapshot_dir", "snapshots")),
        prefix=storage.get("prefix", DEFAULT_PREFIX),
        debug_dir=_dir(storage.get("debug_dir", "debug")),
        webhook_url=env.get("DISCORD_WEBHOOK_URL") or notify.get("webhook_url") or None,
        max_message_chars=int(notify.get("max_message_chars", DEFAULT_LIMIT)),
        request_timeout_sec=float(notify.get("request_timeout_sec", 15)),
    )
