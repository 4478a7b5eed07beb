from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from decision_engine.config import Settings
from decision_engine.runtime.services import Services
from decision_engine.runtime.supervisor import LoopSupervisor, RuntimeHealth


class ModularEngine:
    """Periodic timers for the decision components, each under supervision.

    Every timer is the only caller of its operation, so ``tick``, ``rotate`` and
    ``adapt`` never run concurrently with themselves from here.
    """

    def __init__(self, settings: Settings, services: Services, log):
        self.settings = settings
        self.services = services
        self.log = log
        self.health = RuntimeHealth()
        self.supervisor = LoopSupervisor(log, health=self.health, events=services.events)

    async def pricing_loop(self) -> None:
        while True:
            counts = self.services.demand.counts()
            self.services.pricing.tick(demand=counts)
            await asyncio.sleep(self.settings.pricing_tick_sec)

    async def seed_rotation_loop(self) -> None:
        interval = self.settings.seed_rotate_min * 60.0
        while True:
            await asyncio.sleep(interval)
            self.services.authority.rotate()

    async def reward_adapt_loop(self) -> None:
        interval = self.settings.reward_adapt_min * 60.0
        while True:
            await asyncio.sleep(interval)
            self.services.draws.adapt()

    async def health_loop(self) -> None:
        while True:
            self.log.info("runtime-health %s", self.health.summary())
            await asyncio.sleep(30.0)

    def loops(self) -> dict[str, Callable[[], Awaitable[None]]]:
        out: dict[str, Callable[[], Awaitable[None]]] = {
            "pricing_loop": self.pricing_loop,
            "reward_adapt_loop": self.reward_adapt_loop,
        }
        if self.settings.seed_rotate_min > 0:
            out["seed_rotation_loop"] = self.seed_rotation_loop
        else:
            self.log.info("seed auto-rotation disabled (FAIR_SEED_ROTATE_MIN=0)")
        return out

    async def run(self) -> None:
        self.services.events.emit("engine.start", loops=list(self.loops()))
        tasks: list[asyncio.Task] = [asyncio.create_task(self.health_loop(), name="runtime-health")]
        for name, fn in self.loops().items():
            tasks.append(asyncio.create_task(self.supervisor.run(name, fn), name=f"loop:{name}"))
        await asyncio.gather(*tasks)
