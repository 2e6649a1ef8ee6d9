# eval_bar/containers.py
"""
Defines the Dependency Injection (DI) container for the application.

This module uses the `punq` library to wire the evaluation services. The engine
supervisor is registered as a singleton: it is the one process-wide resource
every session shares, handed to sessions by the container instead of living in
a module-level global.
"""

from typing import Optional

import punq

from eval_bar.config.settings import Settings
from eval_bar.output.evaluation_bar import EvaluationBar
from eval_bar.services.candidates import candidates_from_settings
from eval_bar.services.engine_supervisor import EngineSupervisor
from eval_bar.services.eval_session import EvalSession
from eval_bar.services.uci_process import UciProcess
from eval_bar.types import ProcessFactory


def get_container(settings: Settings, process_factory: Optional[ProcessFactory] = None) -> punq.Container:
    """
    Initializes and returns a DI container for the given settings.

    Args:
        settings: The application settings.
        process_factory: Spawns one engine build. Defaults to `UciProcess.create`.
    """
    container = punq.Container()
    factory = process_factory or UciProcess.create

    container.register(Settings, instance=settings)
    container.register(
        EngineSupervisor,
        factory=lambda: EngineSupervisor(candidates_from_settings(settings.engine), factory, settings.engine),
        scope=punq.Scope.singleton,
    )
    container.register(EvalSession, factory=lambda: EvalSession(container.resolve(EngineSupervisor), settings.search))
    container.register(EvaluationBar, factory=lambda: EvaluationBar(settings.display))

    return container
