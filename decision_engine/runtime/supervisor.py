from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from decision_engine.infra.telemetry import NullEventLogger


@dataclass
class LoopHealth:
    name: str
    restarts: int = 0
    last_error: str = ""
    alive: bool = False


@dataclass
class RuntimeHealth:
    loops: dict[str, LoopHealth] = field(default_factory=dict)

    def touch(self, name: str, *, alive: bool | None = None, err: str = "") -> None:
        h = self.loops.get(name)
        if h is None:
            h = LoopHealth(name=name)
            self.loops[name] = h
        if alive is not None:
            h.alive = alive
        if err:
            h.last_error = err

    def restarted(self, name: str, err: Exception) -> None:
        self.touch(name, alive=False, err=str(err))
        self.loops[name].restarts += 1

    def summary(self) -> str:
        if not self.loops:
            return "loops=0"
        up = sum(1 for h in self.loops.values() if h.alive)
        total = len(self.loops)
        restarts = sum(int(h.restarts) for h in self.loops.values())
        return f"loops={up}/{total} restarts={restarts}"


class LoopSupervisor:
    """Restarts managed async loops after failure with bounded backoff."""

    def __init__(
        self,
        log,
        *,
        health: RuntimeHealth | None = None,
        events=None,
        base_delay: float = 2.0,
        max_delay: float = 20.0,
    ):
        self.log = log
        self.health = health or RuntimeHealth()
        self.events = events or NullEventLogger()
        self.base_delay = base_delay
        self.max_delay = max_delay

    async def run(self, name: str, fn: Callable[[], Awaitable[None]]) -> None:
        delay = self.base_delay
        while True:
            try:
                self.health.touch(name, alive=True)
                self.events.emit("loop.start", name=name)
                await fn()
                self.health.touch(name, alive=False)
                self.events.emit("loop.exit", name=name)
                return
            except asyncio.CancelledError:
                self.health.touch(name, alive=False)
                raise
            except Exception as exc:
                self.health.restarted(name, exc)
                self.log.exception("loop %s crashed: %s", name, exc)
                self.events.emit("loop.crash", name=name, error=str(exc), restarts=self.health.loops[name].restarts)
            await asyncio.sleep(delay)
            delay = min(self.max_delay, max(self.base_delay, delay * 1.5))
