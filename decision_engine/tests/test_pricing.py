import random
from pathlib import Path

import pytest

from decision_engine.data.snapshot_store import SnapshotStore
from decision_engine.pricing.advisor import suggest_actions
from decision_engine.pricing.controller import AdaptivePricingController, classify
from decision_engine.pricing.streams import CREDIT_PACK, FEATURED, SPONSORED, default_streams


class _ScriptedRng:
    """Returns queued values from random() and picks the first choice."""

    def __init__(self, values):
        self.values = list(values)

    def random(self) -> float:
        return self.values.pop(0)

    def choice(self, seq):
        return seq[0]


def _controller(**kw) -> AdaptivePricingController:
    kw.setdefault("rng", random.Random(7))
    kw.setdefault("epsilon", 0.0)
    return AdaptivePricingController(**kw)


def test_high_featured_demand_raises_rate_five_percent() -> None:
    ctl = _controller()
    point = ctl.tick(now=1_000_000.0, demand={FEATURED: 15, SPONSORED: 3, CREDIT_PACK: 10})

    assert point is not None
    assert ctl.value(FEATURED) == pytest.approx(0.0008 * 1.05)
    assert point.signals[FEATURED] == "increase_5pct_high_demand"
    # normal demand leaves the other streams alone
    assert ctl.value(SPONSORED) == pytest.approx(0.004)
    assert ctl.value(CREDIT_PACK) == pytest.approx(1.0)


def test_tick_inside_min_interval_is_noop() -> None:
    ctl = _controller(min_interval=600.0)
    ctl.tick(now=1_000_000.0, demand={FEATURED: 15})
    value = ctl.value(FEATURED)

    assert ctl.tick(now=1_000_000.0 + 599.0, demand={FEATURED: 15}) is None
    assert ctl.value(FEATURED) == value
    assert len(ctl.status(full=True)["history"]) == 1

    assert ctl.tick(now=1_000_000.0 + 600.0, demand={FEATURED: 15}) is not None
    assert len(ctl.status(full=True)["history"]) == 2


def test_force_bypasses_debounce() -> None:
    ctl = _controller()
    ctl.tick(now=1_000_000.0, demand={})
    assert ctl.tick(now=1_000_001.0, demand={}, force=True) is not None


@pytest.mark.parametrize("count", [0, 10**9])
def test_values_stay_bounded_under_extreme_demand(count: int) -> None:
    ctl = _controller(min_interval=0.0, epsilon=0.5)
    demand = {FEATURED: count, SPONSORED: count, CREDIT_PACK: count}
    for i in range(300):
        ctl.tick(now=float(i), demand=demand)
        for rule in ctl.rules.values():
            assert rule.floor <= ctl.value(rule.name) <= rule.ceiling


def test_credit_pack_multiplier_limits() -> None:
    ctl = _controller(min_interval=0.0)
    for i in range(200):
        ctl.tick(now=float(i), demand={CREDIT_PACK: 0})
    assert ctl.value(CREDIT_PACK) == pytest.approx(1.8)
    assert ctl.status()["values"][CREDIT_PACK] == pytest.approx(1.8)


def test_exploration_nudges_explorable_stream() -> None:
    # random() calls: epsilon gate, then direction
    ctl = AdaptivePricingController(epsilon=0.08, rng=_ScriptedRng([0.01, 0.9]))
    point = ctl.tick(now=1_000_000.0, demand={FEATURED: 5, SPONSORED: 3, CREDIT_PACK: 10})
    assert point.signals == {"explore": "featured_up"}
    assert ctl.value(FEATURED) == pytest.approx(0.0008 * 1.02)


def test_exploration_skipped_above_epsilon() -> None:
    ctl = AdaptivePricingController(epsilon=0.08, rng=_ScriptedRng([0.5]))
    point = ctl.tick(now=1_000_000.0, demand={FEATURED: 5, SPONSORED: 3, CREDIT_PACK: 10})
    assert point.signals == {}


def test_history_cap_and_status_slice() -> None:
    ctl = _controller(min_interval=0.0, history_cap=20, status_recent=5)
    for i in range(30):
        ctl.tick(now=float(i), demand={})
    full = ctl.status(full=True)["history"]
    short = ctl.status()["history"]
    assert len(full) == 20
    assert full[0]["ts"] == 10.0
    assert [p["ts"] for p in short] == [25.0, 26.0, 27.0, 28.0, 29.0]


def test_classify_thresholds() -> None:
    featured = default_streams()[0]
    assert classify(featured, 13) == "high"
    assert classify(featured, 12) == "normal"
    assert classify(featured, 2) == "normal"
    assert classify(featured, 1) == "low"


def test_state_restores_and_reclamps(tmp_path: Path) -> None:
    first = _controller(store=SnapshotStore(str(tmp_path), "pricing_state.json"))
    first.tick(now=1_000_000.0, demand={FEATURED: 15})

    second = _controller(store=SnapshotStore(str(tmp_path), "pricing_state.json")).load()
    assert second.value(FEATURED) == pytest.approx(first.value(FEATURED))
    assert second.last_adjust_at == 1_000_000.0
    assert second.tick(now=1_000_100.0, demand={FEATURED: 15}) is None

    # a lower configured base pulls the restored value back into range
    lowered = AdaptivePricingController(
        default_streams(featured_rate=0.0004),
        store=SnapshotStore(str(tmp_path), "pricing_state.json"),
    ).load()
    assert lowered.value(FEATURED) == pytest.approx(0.0004 * 1.5)


def test_suggestions() -> None:
    ctl = _controller()
    out = suggest_actions(ctl, {FEATURED: 0, SPONSORED: 5, CREDIT_PACK: 40, "mystery": 10})
    assert "Run intro discount for first featured purchaser" in out["ideas"]
    assert "Add larger credit pack tier" in out["ideas"]
    assert "Offer free 1h sponsored trial" not in out["ideas"]
    assert out["stats"]["mystery"] == 10


def test_tick_succeeds_while_snapshot_writes_fail(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file where a directory should be")
    store = SnapshotStore(str(blocker), "pricing_state.json")
    ctl = _controller(store=store)

    point = ctl.tick(now=1_000_000.0, demand={FEATURED: 15})

    assert point is not None
    assert ctl.value(FEATURED) == pytest.approx(0.0008 * 1.05)
    assert store.failures == 1


def test_first_tick_runs_with_early_clock() -> None:
    ctl = _controller(min_interval=600.0)
    assert ctl.status()["lastAdjust"] is None
    assert ctl.tick(now=100.0, demand={FEATURED: 15}) is not None
    assert ctl.tick(now=200.0, demand={FEATURED: 15}) is None


def test_credit_pack_signals_use_volume_labels() -> None:
    ctl = _controller()
    high = ctl.tick(now=1_000_000.0, demand={FEATURED: 5, SPONSORED: 3, CREDIT_PACK: 25})
    low = ctl.tick(now=1_000_000.0, demand={FEATURED: 5, SPONSORED: 3, CREDIT_PACK: 1}, force=True)

    assert high.signals == {CREDIT_PACK: "trim_2pct_high_volume"}
    assert low.signals == {CREDIT_PACK: "boost_3pct_low_volume"}


def test_malformed_pricing_snapshot_keeps_base_values(tmp_path: Path) -> None:
    (tmp_path / "pricing_state.json").write_text('{"values":{"featured":"abc"},"last_adjust_at":5}')
    store = SnapshotStore(str(tmp_path), "pricing_state.json")
    ctl = _controller(store=store).load()

    assert store.failures == 1
    assert ctl.value(FEATURED) == pytest.approx(0.0008)
    assert ctl.last_adjust_at is None
