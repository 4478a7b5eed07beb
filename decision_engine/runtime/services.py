from __future__ import annotations

import logging
from dataclasses import dataclass

from decision_engine.config import Settings
from decision_engine.data import DemandLedger, SnapshotStore
from decision_engine.fairness import FairnessSeedAuthority
from decision_engine.infra import RuntimeEventLogger
from decision_engine.pricing import AdaptivePricingController, default_streams
from decision_engine.rewards import FairDrawService
from decision_engine.strategy import ContextualBanditEngine, volatility_regime

SEEDS_FILE = "fair_seeds.json"
TIERS_FILE = "reward_tiers.json"
BANDIT_FILE = "bandit_state.json"
PRICING_FILE = "pricing_state.json"


@dataclass
class Services:
    """Component handles owned by one process; built once at startup."""

    authority: FairnessSeedAuthority
    draws: FairDrawService
    bandit: ContextualBanditEngine
    pricing: AdaptivePricingController
    demand: DemandLedger
    events: RuntimeEventLogger
    stores: tuple[SnapshotStore, ...] = ()

    def close(self) -> None:
        for store in self.stores:
            store.close()


def build_services(settings: Settings, log: logging.Logger) -> Services:
    events = RuntimeEventLogger(settings.data_dir)

    def _store(filename: str) -> SnapshotStore:
        return SnapshotStore(
            settings.data_dir,
            filename,
            background=settings.snapshot_background,
            log=log,
            events=events,
        )

    seeds_store = _store(SEEDS_FILE)
    tiers_store = _store(TIERS_FILE)
    bandit_store = _store(BANDIT_FILE)
    pricing_store = _store(PRICING_FILE)

    authority = FairnessSeedAuthority(store=seeds_store, log=log, events=events).load()
    draws = FairDrawService(authority, store=tiers_store, log=log, events=events).load()
    bandit = ContextualBanditEngine(
        ucb_c=settings.bandit_ucb_c,
        decay_rate=settings.bandit_decay,
        max_arms=settings.bandit_max_arms,
        prune_every=settings.bandit_prune_every,
        regime_fn=volatility_regime(),
        store=bandit_store,
        log=log,
        events=events,
    ).load()
    pricing = AdaptivePricingController(
        default_streams(settings.featured_rate, settings.sponsored_rate),
        min_interval=settings.pricing_interval_min * 60.0,
        epsilon=settings.pricing_epsilon,
        history_cap=settings.pricing_history_cap,
        status_recent=settings.pricing_status_recent,
        store=pricing_store,
        log=log,
        events=events,
    ).load()
    demand = DemandLedger(window_sec=settings.demand_window_hours * 3600.0)
    return Services(
        authority=authority,
        draws=draws,
        bandit=bandit,
        pricing=pricing,
        demand=demand,
        events=events,
        stores=(seeds_store, tiers_store, bandit_store, pricing_store),
    )
