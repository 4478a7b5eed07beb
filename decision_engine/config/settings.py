from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        value = int(raw)
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_float(name: str, default: float, min_value: float | None = None) -> float:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        value = float(raw)
    if min_value is not None:
        value = max(min_value, value)
    return value


@dataclass(frozen=True)
class Settings:
    data_dir: str
    log_level: str
    dashboard_enabled: bool
    dashboard_port: int
    snapshot_background: bool
    bandit_ucb_c: float
    bandit_decay: float
    bandit_max_arms: int
    bandit_prune_every: int
    pricing_interval_min: float
    pricing_epsilon: float
    pricing_tick_sec: float
    pricing_history_cap: int
    pricing_status_recent: int
    featured_rate: float
    sponsored_rate: float
    demand_window_hours: float
    seed_rotate_min: float
    reward_adapt_min: float


def load_settings(env_file: str | None = None) -> Settings:
    path = env_file or os.environ.get("ENGINE_ENV_FILE", "~/.decision-engine.env")
    load_dotenv(os.path.expanduser(path))
    return Settings(
        data_dir=os.environ.get("DATA_DIR", "/data"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper(),
        dashboard_enabled=_env_bool("DASHBOARD_ENABLED", True),
        dashboard_port=_env_int("DASHBOARD_PORT", 8080, min_value=1),
        snapshot_background=_env_bool("SNAPSHOT_BACKGROUND", True),
        bandit_ucb_c=_env_float("BANDIT_UCB_C", 1.4, min_value=0.0),
        bandit_decay=_env_float("BANDIT_DECAY", 0.0001, min_value=0.0),
        bandit_max_arms=_env_int("BANDIT_MAX_ARMS", 10000, min_value=1),
        bandit_prune_every=_env_int("BANDIT_PRUNE_EVERY", 500, min_value=1),
        pricing_interval_min=_env_float("PRICING_INTERVAL_MIN", 10.0, min_value=0.0),
        pricing_epsilon=_env_float("PRICING_EPSILON", 0.08, min_value=0.0),
        pricing_tick_sec=_env_float("PRICING_TICK_SEC", 60.0, min_value=1.0),
        pricing_history_cap=_env_int("PRICING_HISTORY_CAP", 200, min_value=1),
        pricing_status_recent=_env_int("PRICING_STATUS_RECENT", 50, min_value=1),
        featured_rate=_env_float("FEATURED_DAILY_RATE_ETH", 0.0008, min_value=0.0),
        sponsored_rate=_env_float("SPONSORED_SLOT_RATE_ETH", 0.004, min_value=0.0),
        demand_window_hours=_env_float("DEMAND_WINDOW_HOURS", 6.0, min_value=0.0),
        seed_rotate_min=_env_float("FAIR_SEED_ROTATE_MIN", 0.0, min_value=0.0),
        reward_adapt_min=_env_float("REWARD_ADAPT_MIN", 15.0, min_value=1.0),
    )
