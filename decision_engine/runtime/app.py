from __future__ import annotations

import asyncio

from decision_engine.config import Settings, load_settings
from decision_engine.dashboard import run_dashboard
from decision_engine.infra import get_logger
from decision_engine.runtime.modular_engine import ModularEngine
from decision_engine.runtime.services import build_services


class App:
    """Top-level orchestrator: builds the components, then runs timers and API."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.log = get_logger("decision-engine", settings.log_level)

    async def run(self) -> None:
        self.log.info(
            "starting decision engine data_dir=%s dashboard=%s port=%s",
            self.settings.data_dir,
            self.settings.dashboard_enabled,
            self.settings.dashboard_port,
        )
        services = build_services(self.settings, self.log)
        engine = ModularEngine(self.settings, services, self.log)
        try:
            if self.settings.dashboard_enabled:
                await asyncio.gather(
                    engine.run(),
                    run_dashboard(
                        services,
                        port=self.settings.dashboard_port,
                        log_level=self.settings.log_level,
                    ),
                )
            else:
                await engine.run()
        finally:
            services.close()


def run_main(settings: Settings) -> None:
    asyncio.run(App(settings).run())


def main() -> None:
    run_main(load_settings())
