from __future__ import annotations

import asyncio
import json
import math
from dataclasses import asdict

from aiohttp import web

from decision_engine.domain import Candidate, DecisionContext, InvalidWeights
from decision_engine.infra.log import get_logger
from decision_engine.pricing import suggest_actions
from decision_engine.runtime.services import Services


HTML = """<!doctype html><html><head><meta charset='utf-8'><title>Decision Engine</title></head>
<body style='font-family:system-ui;background:#060b16;color:#dbe4ff;padding:16px'>
<h2>Decision Engine</h2>
<pre id='out'>loading...</pre>
<script>
async function tick(){
  try{
    const r=await fetch('/api/pricing/status',{cache:'no-store'});
    const j=await r.json();
    document.getElementById('out').textContent=JSON.stringify(j,null,2);
  }catch(e){document.getElementById('out').textContent='dashboard error: '+e;}
}
setInterval(tick,2000);tick();
</script>
</body></html>"""

MYSTERY_SETS = ("basic", "premium")
MAX_DEMAND_BATCH = 10_000


def _json(payload, status: int = 200) -> web.Response:
    return web.json_response(payload, status=status, headers={"Cache-Control": "no-store"})


def _bad_request(msg: str) -> web.Response:
    return _json({"error": msg}, status=400)


async def _body(req: web.Request) -> dict:
    if not req.can_read_body:
        return {}
    try:
        raw = await req.json()
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid json: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError("json body must be an object")
    return raw


def _score_out(score: float) -> float | str:
    # JSON has no infinity; unexplored arms report a marker instead
    return "inf" if math.isinf(score) else score


def build_app(services: Services) -> web.Application:
    async def handle_html(_req: web.Request) -> web.Response:
        return web.Response(text=HTML, content_type="text/html")

    async def fair_current(_req: web.Request) -> web.Response:
        cur = services.authority.current()
        return _json(
            {
                "algorithm": "hmac_sha256(serverSeed, clientSeed:nonce)",
                "serverSeedHash": cur.commit_hash,
                "activeSeedId": cur.id,
                "created": cur.created_at,
            }
        )

    async def fair_reveal(_req: web.Request) -> web.Response:
        previous, current = services.authority.rotate()
        return _json(
            {
                "previous": asdict(previous) if previous is not None else None,
                "newHash": current.commit_hash,
                "activeSeedId": current.id,
            }
        )

    async def fair_history(req: web.Request) -> web.Response:
        return _json({"seeds": services.authority.history(include_active=req.query.get("all") == "1")})

    async def fair_verify(req: web.Request) -> web.Response:
        body = await _body(req)
        if "seed" in body:
            ok = services.authority.verify(str(body["seed"]), str(body.get("hash", "")))
            return _json({"ok": ok, "reason": "ok" if ok else "hash_mismatch"})
        result = services.authority.check(str(body.get("seedId", "")), str(body.get("hash", "")))
        return _json(asdict(result))

    async def rewards_draw(req: web.Request) -> web.Response:
        body = await _body(req)
        set_name = str(body.get("set", ""))
        if set_name not in services.draws.tier_sets:
            return _bad_request(f"unknown tier set: {set_name}")
        result = services.draws.draw(set_name, client_seed=str(body.get("clientSeed", "")))
        if set_name in MYSTERY_SETS:
            services.demand.record("mystery", ts=result.ts)
        return _json(asdict(result))

    async def pricing_status(req: web.Request) -> web.Response:
        return _json(services.pricing.status(full=req.query.get("full") == "1"))

    async def pricing_adjust(req: web.Request) -> web.Response:
        body = await _body(req)
        demand = body.get("demand")
        if demand is None:
            demand = services.demand.counts()
        elif not isinstance(demand, dict):
            return _bad_request("demand must be an object of stream -> count")
        point = services.pricing.tick(demand=demand, force=bool(body.get("force", True)))
        return _json(
            {
                "ok": True,
                "adjusted": point is not None,
                "values": services.pricing.status()["values"],
                "signals": point.signals if point is not None else {},
            }
        )

    async def pricing_suggestions(_req: web.Request) -> web.Response:
        counts = services.demand.counts(window_sec=24 * 3600.0)
        return _json(suggest_actions(services.pricing, counts))

    async def demand_record(req: web.Request) -> web.Response:
        body = await _body(req)
        stream = str(body.get("stream", ""))
        if not stream:
            return _bad_request("stream is required")
        count = body.get("count", 1)
        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= MAX_DEMAND_BATCH:
            return _bad_request(f"count must be an integer in 1..{MAX_DEMAND_BATCH}")
        services.demand.record(stream, count=count)
        return _json({"ok": True, "counts": services.demand.counts()})

    async def bandit_outcome(req: web.Request) -> web.Response:
        body = await _body(req)
        action = str(body.get("actionName", ""))
        if not action:
            return _bad_request("actionName is required")
        success = body.get("success", False)
        if not isinstance(success, bool):
            return _bad_request("success must be a boolean")
        stat = services.bandit.record_outcome(
            action,
            float(body.get("reward", 0.0)),
            success,
            DecisionContext.from_dict(body.get("context")),
        )
        return _json({"ok": True, "stats": asdict(stat), "totalPlays": services.bandit.total_plays})

    async def bandit_rank(req: web.Request) -> web.Response:
        body = await _body(req)
        candidates = []
        for row in body.get("candidates") or []:
            if isinstance(row, str):
                candidates.append(Candidate(action=row))
            else:
                candidates.append(
                    Candidate(
                        action=str(row["actionName"]),
                        profit=float(row.get("profit", 0.0) or 0.0),
                        size=float(row.get("size", 0.0) or 0.0),
                    )
                )
        ranked = services.bandit.rank(candidates, DecisionContext.from_dict(body.get("context")))
        return _json({"ranked": [{"actionName": r.action, "score": _score_out(r.score)} for r in ranked]})

    async def events_tail(req: web.Request) -> web.Response:
        return _json({"events": services.events.tail(int(req.query.get("limit", "50")))})

    @web.middleware
    async def errors(req: web.Request, handler):
        try:
            return await handler(req)
        except (InvalidWeights, KeyError, ValueError, TypeError) as exc:
            return _bad_request(str(exc))

    app = web.Application(middlewares=[errors])
    app.router.add_get("/", handle_html)
    app.router.add_get("/api/fair/current", fair_current)
    app.router.add_post("/api/fair/reveal", fair_reveal)
    app.router.add_get("/api/fair/history", fair_history)
    app.router.add_post("/api/fair/verify", fair_verify)
    app.router.add_post("/api/rewards/draw", rewards_draw)
    app.router.add_get("/api/pricing/status", pricing_status)
    app.router.add_post("/api/pricing/adjust", pricing_adjust)
    app.router.add_get("/api/pricing/suggestions", pricing_suggestions)
    app.router.add_post("/api/demand", demand_record)
    app.router.add_post("/api/bandit/outcome", bandit_outcome)
    app.router.add_post("/api/bandit/rank", bandit_rank)
    app.router.add_get("/api/events", events_tail)
    return app


async def run_dashboard(services: Services, *, port: int, log_level: str = "INFO") -> None:
    log = get_logger("decision-engine-dashboard", log_level)
    app = build_app(services)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    log.info("dashboard running on :%s", port)

    while True:
        await asyncio.sleep(3600)
