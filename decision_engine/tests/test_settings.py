from pathlib import Path

import pytest

from decision_engine.config.settings import Settings, load_settings


def test_settings_type() -> None:
    s = Settings(
        data_dir="/data",
        log_level="INFO",
        dashboard_enabled=True,
        dashboard_port=8080,
        snapshot_background=True,
        bandit_ucb_c=1.4,
        bandit_decay=0.0001,
        bandit_max_arms=10000,
        bandit_prune_every=500,
        pricing_interval_min=10.0,
        pricing_epsilon=0.08,
        pricing_tick_sec=60.0,
        pricing_history_cap=200,
        pricing_status_recent=50,
        featured_rate=0.0008,
        sponsored_rate=0.004,
        demand_window_hours=6.0,
        seed_rotate_min=0.0,
        reward_adapt_min=15.0,
    )
    assert s.pricing_status_recent < s.pricing_history_cap


def test_load_settings_reads_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("DATA_DIR", "BANDIT_UCB_C", "PRICING_EPSILON", "DASHBOARD_PORT"):
        # set first so monkeypatch restores whatever load_dotenv writes
        monkeypatch.setenv(key, "unset")
        monkeypatch.delenv(key)
    env_file = tmp_path / "engine.env"
    env_file.write_text(f"DATA_DIR={tmp_path}\nBANDIT_UCB_C=1.25\nPRICING_EPSILON=0\n")
    monkeypatch.setenv("DASHBOARD_PORT", "0")

    s = load_settings(str(env_file))

    assert s.data_dir == str(tmp_path)
    assert s.bandit_ucb_c == pytest.approx(1.25)
    assert s.pricing_epsilon == 0.0
    # clamped to min_value
    assert s.dashboard_port == 1
    assert s.featured_rate == pytest.approx(0.0008)
