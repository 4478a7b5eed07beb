from decision_engine.data.demand_ledger import DemandLedger


def test_counts_trailing_window() -> None:
    now = [100_000.0]
    ledger = DemandLedger(window_sec=3600.0, clock=lambda: now[0])
    ledger.record("featured", ts=now[0] - 4000.0)
    ledger.record("featured", ts=now[0] - 100.0, count=3)
    ledger.record("sponsored")

    assert ledger.counts() == {"featured": 3, "sponsored": 1}


def test_daily_counts_survive_short_window_queries() -> None:
    now = [200_000.0]
    ledger = DemandLedger(window_sec=3600.0, clock=lambda: now[0])
    ledger.record("mystery", ts=now[0] - 10 * 3600.0)
    ledger.counts()
    assert ledger.counts(window_sec=24 * 3600.0)["mystery"] == 1
    now[0] += 24 * 3600.0
    assert ledger.counts(window_sec=24 * 3600.0)["mystery"] == 0


def test_batched_record_is_one_entry() -> None:
    now = [300_000.0]
    ledger = DemandLedger(window_sec=3600.0, clock=lambda: now[0])
    ledger.record("featured", count=5_000_000)
    ledger.record("featured", count=0)
    ledger.record("featured", count=-4)

    assert len(ledger._events["featured"]) == 1
    assert ledger.counts() == {"featured": 5_000_000}
