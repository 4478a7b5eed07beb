import asyncio
import logging
from pathlib import Path

from aiohttp.test_utils import TestClient, TestServer

from decision_engine.config.settings import Settings
from decision_engine.dashboard.server import build_app
from decision_engine.fairness.authority import FairnessSeedAuthority
from decision_engine.runtime.services import build_services


def _settings(data_dir: Path) -> Settings:
    return Settings(
        data_dir=str(data_dir),
        log_level="INFO",
        dashboard_enabled=False,
        dashboard_port=8080,
        snapshot_background=False,
        bandit_ucb_c=1.4,
        bandit_decay=0.0001,
        bandit_max_arms=100,
        bandit_prune_every=50,
        pricing_interval_min=10.0,
        pricing_epsilon=0.0,
        pricing_tick_sec=60.0,
        pricing_history_cap=200,
        pricing_status_recent=50,
        featured_rate=0.0008,
        sponsored_rate=0.004,
        demand_window_hours=6.0,
        seed_rotate_min=0.0,
        reward_adapt_min=15.0,
    )


def _run(tmp_path: Path, scenario) -> None:
    services = build_services(_settings(tmp_path), logging.getLogger("test-dashboard"))

    async def _inner() -> None:
        async with TestClient(TestServer(build_app(services))) as client:
            await scenario(client)

    try:
        asyncio.run(_inner())
    finally:
        services.close()


def test_draw_then_reveal_and_verify(tmp_path: Path) -> None:
    async def scenario(client: TestClient) -> None:
        cur = await (await client.get("/api/fair/current")).json()

        r = await client.post("/api/rewards/draw", json={"set": "wheel", "clientSeed": "abc"})
        assert r.status == 200
        draw = await r.json()
        assert draw["seed_hash"] == cur["serverSeedHash"]
        assert "secret" not in draw

        reveal = await (await client.post("/api/fair/reveal")).json()
        prev = reveal["previous"]
        assert prev["id"] == cur["activeSeedId"]
        assert FairnessSeedAuthority.verify(prev["secret"], cur["serverSeedHash"])
        assert reveal["newHash"] != cur["serverSeedHash"]

        check = await (await client.post("/api/fair/verify", json={"seedId": prev["id"], "hash": cur["serverSeedHash"]})).json()
        assert check["ok"] is True
        bad = await (await client.post("/api/fair/verify", json={"seed": "forged", "hash": cur["serverSeedHash"]})).json()
        assert bad == {"ok": False, "reason": "hash_mismatch"}

    _run(tmp_path, scenario)
    assert (tmp_path / "fair_seeds.json").exists()


def test_pricing_adjust_and_status(tmp_path: Path) -> None:
    async def scenario(client: TestClient) -> None:
        r = await client.post("/api/pricing/adjust", json={"demand": {"featured": 15, "sponsored": 3, "credit_pack_multiplier": 10}})
        body = await r.json()
        assert body["adjusted"] is True
        assert abs(body["values"]["featured"] - 0.00084) < 1e-12

        short = await (await client.get("/api/pricing/status")).json()
        full = await (await client.get("/api/pricing/status?full=1")).json()
        assert len(short["history"]) == len(full["history"]) == 1

        bad = await client.post("/api/pricing/adjust", json={"demand": [1, 2]})
        assert bad.status == 400

    _run(tmp_path, scenario)


def test_bandit_outcome_and_rank(tmp_path: Path) -> None:
    async def scenario(client: TestClient) -> None:
        r = await client.post(
            "/api/bandit/outcome",
            json={"actionName": "arb", "reward": 1.0, "success": True, "context": {"regimeHint": "calm"}},
        )
        assert (await r.json())["totalPlays"] == 1

        ranked = await (
            await client.post(
                "/api/bandit/rank",
                json={"candidates": ["arb", {"actionName": "new"}], "context": {"regimeHint": "calm"}},
            )
        ).json()
        assert [row["actionName"] for row in ranked["ranked"]] == ["new", "arb"]
        assert ranked["ranked"][0]["score"] == "inf"

        missing = await client.post("/api/bandit/outcome", json={"reward": 1})
        assert missing.status == 400

    _run(tmp_path, scenario)


def test_unknown_tier_set_is_bad_request(tmp_path: Path) -> None:
    async def scenario(client: TestClient) -> None:
        r = await client.post("/api/rewards/draw", json={"set": "jackpot"})
        assert r.status == 400

    _run(tmp_path, scenario)


def test_demand_and_outcome_payloads_are_validated(tmp_path: Path) -> None:
    async def scenario(client: TestClient) -> None:
        ok = await client.post("/api/demand", json={"stream": "featured", "count": 3})
        assert (await ok.json())["counts"] == {"featured": 3}

        for count in (0, -1, "5", 10_000_000, True):
            r = await client.post("/api/demand", json={"stream": "featured", "count": count})
            assert r.status == 400

        r = await client.post("/api/bandit/outcome", json={"actionName": "arb", "success": "false"})
        assert r.status == 400

    _run(tmp_path, scenario)


def test_malformed_snapshots_do_not_block_startup(tmp_path: Path) -> None:
    (tmp_path / "bandit_state.json").write_text('{"arms":[{"n":1}]}')
    (tmp_path / "fair_seeds.json").write_text('[{"id":"seed_1"}]')
    (tmp_path / "pricing_state.json").write_text('{"values":{"featured":"abc"}}')
    (tmp_path / "reward_tiers.json").write_text('{"tier_sets":{"basic":{"tiers":[[1]]}}}')

    services = build_services(_settings(tmp_path), logging.getLogger("test-dashboard"))
    try:
        assert services.bandit.arms == {}
        assert services.pricing.value("featured") == 0.0008
        assert services.draws.draw("basic").nonce == 1
        errors = [e for e in services.events.tail(20) if e["event"] == "snapshot.error"]
        assert len(errors) == 4
    finally:
        services.close()
