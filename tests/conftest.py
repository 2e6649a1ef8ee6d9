# tests/conftest.py
import asyncio
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from eval_bar.config.settings import DisplaySettings, EngineSettings, SearchSettings
from eval_bar.exceptions import EngineProcessError, EngineStartError, EngineUnsupportedError
from eval_bar.services.engine_supervisor import EngineSupervisor

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
AFTER_E4_FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


class FakeEngineProcess:
    """An in-process stand-in for a UCI engine. Replies are scheduled, never synchronous."""

    def __init__(self, identifier, on_line, on_error, acks_handshake: bool = True):
        self.identifier = identifier
        self._on_line = on_line
        self._on_error = on_error
        self._acks_handshake = acks_handshake
        self.sent: List[str] = []
        self.terminated = False

    def send(self, command: str) -> None:
        self.sent.append(command)
        if self.terminated or not self._acks_handshake:
            return
        if command == "uci":
            asyncio.get_running_loop().call_soon(self.emit, "uciok")
        elif command == "isready":
            asyncio.get_running_loop().call_soon(self.emit, "readyok")

    def emit(self, line: str) -> None:
        if not self.terminated:
            self._on_line(line)

    def crash(self, message: str = "worker died") -> None:
        self._on_error(EngineProcessError(message, candidate=self.identifier))

    def terminate(self) -> None:
        self.terminated = True

    def is_running(self) -> bool:
        return not self.terminated

    def search_commands(self) -> List[str]:
        return [c for c in self.sent if c not in ("uci", "isready")]


class FakeProcessFactory:
    """
    Builds fake engines. Per-candidate behavior:
    "ok" (default), "silent" (never acknowledges), "raise" (construction fails),
    "broken" (the factory itself has a bug), "unsupported" (host cannot run processes).
    """

    def __init__(self, behaviors: Optional[Dict[str, str]] = None):
        self.behaviors = behaviors or {}
        self.attempts: List[str] = []
        self.processes: List[FakeEngineProcess] = []

    async def __call__(self, identifier, on_line, on_error) -> FakeEngineProcess:
        self.attempts.append(identifier)
        await asyncio.sleep(0)  # a real spawn yields to the loop
        behavior = self.behaviors.get(identifier, "ok")
        if behavior == "raise":
            raise EngineStartError(f"cannot start {identifier}", candidate=identifier)
        if behavior == "broken":
            raise RuntimeError(f"factory bug while building {identifier}")
        if behavior == "unsupported":
            raise EngineUnsupportedError("no subprocesses", candidate=identifier)
        process = FakeEngineProcess(identifier, on_line, on_error, acks_handshake=behavior != "silent")
        self.processes.append(process)
        return process

    @property
    def latest(self) -> FakeEngineProcess:
        return self.processes[-1]


async def settle(ticks: int = 5) -> None:
    """Lets scheduled callbacks and tasks run."""
    for _ in range(ticks):
        await asyncio.sleep(0)


@pytest.fixture
def engine_settings():
    return EngineSettings(compatible_candidates=["lite", "asm"], threaded_candidate="threaded", init_timeout_s=0.05)


@pytest.fixture
def search_settings():
    return SearchSettings(movetime_ms=10, safety_timeout_s=0.05)


@pytest.fixture
def display_settings():
    return DisplaySettings()


@pytest.fixture
def factory():
    return FakeProcessFactory()


@pytest_asyncio.fixture
async def supervisor(factory, engine_settings):
    supervisor = EngineSupervisor(["lite", "asm", "threaded"], factory, engine_settings)
    yield supervisor
    await supervisor.close()
