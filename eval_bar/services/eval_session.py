# eval_bar/services/eval_session.py
"""
Provides the per-consumer evaluation session.

An `EvalSession` turns a stream of positions into a continuously updated
`EvalState`. Each new position supersedes the previous request: the session
stops the running search, sets the new position, starts a short bounded search,
and arms a safety timer that clears the thinking flag if the engine never
answers. Engine output arrives through the supervisor's listener registry and
refines the evaluation while the search runs.
"""

import asyncio
import dataclasses
import itertools
from typing import Callable, List, Optional, TYPE_CHECKING

import structlog

from eval_bar.core.evaluation import is_valid_fen, normalize_for_fen, parse_bestmove, parse_info_line
from eval_bar.types import EvalState, FEN
from eval_bar.utils import metrics

if TYPE_CHECKING:
    from eval_bar.config.settings import SearchSettings
    from eval_bar.services.engine_supervisor import EngineSupervisor

logger = structlog.get_logger(__name__)

StateListener = Callable[[EvalState], None]

_session_ids = itertools.count(1)


class EvalSession:
    """
    Evaluates positions on the shared engine for a single consumer.

    Usage:
        async with EvalSession(supervisor, settings.search) as session:
            await session.observe(fen)
            state = await session.wait_until_settled()
    """

    def __init__(
        self,
        supervisor: "EngineSupervisor",
        settings: "SearchSettings",
        on_change: Optional[StateListener] = None,
    ):
        """
        Initializes the session. Nothing is subscribed until `mount`.

        Args:
            supervisor: The shared engine supervisor.
            settings: Search budget and safety timeout.
            on_change: Optional callback invoked with every new `EvalState`.
        """
        self._supervisor = supervisor
        self._settings = settings
        self._listeners: List[StateListener] = [on_change] if on_change else []
        self._log = logger.bind(session_id=next(_session_ids))

        self._state = EvalState()
        self._settled = asyncio.Event()
        self._settled.set()
        self._mounted = False
        self._sequence = 0
        self._active_fen: Optional[FEN] = None
        self._refresh_token = 0
        self._safety_timer: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> EvalState:
        return self._state

    @property
    def sequence(self) -> int:
        """Number of the most recent analysis request. Only its timer is authoritative."""
        return self._sequence

    @property
    def mounted(self) -> bool:
        return self._mounted

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    # --- Mounting ---

    def mount(self) -> None:
        """Subscribes to engine output, whether or not the engine is ready yet."""
        if self._mounted:
            return
        self._mounted = True
        self._supervisor.subscribe(self._handle_line)
        metrics.ACTIVE_SESSIONS.inc()

    def unmount(self) -> None:
        """Unsubscribes and cancels the safety timer. Safe to call repeatedly."""
        if not self._mounted:
            self._cancel_safety_timer()
            return
        self._mounted = False
        self._supervisor.unsubscribe(self._handle_line)
        self._cancel_safety_timer()
        metrics.ACTIVE_SESSIONS.dec()

    async def __aenter__(self) -> "EvalSession":
        self.mount()
        # Warm up: the shared process is created lazily on the first mount.
        if await self._supervisor.acquire() is None:
            self._log.error("Engine unavailable - eval bar disabled.")
            self._set_state(EvalState())
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unmount()

    # --- Requests ---

    async def observe(self, fen: Optional[FEN], depth: Optional[int] = None, refresh_token: int = 0) -> EvalState:
        """
        Submits a new position, superseding any earlier one.

        Args:
            fen: The position to evaluate. None (or an invalid FEN) clears the evaluation.
            depth: Accepted for interface completeness; the movetime budget bounds the search.
            refresh_token: A new non-zero value hard-resets the shared engine first.

        Returns:
            The state right after the request was issued. Later engine output
            keeps updating `state`.
        """
        self._sequence += 1
        sequence = self._sequence

        if not fen or not is_valid_fen(fen):
            if fen:
                self._log.warning("Ignoring invalid FEN.", fen=fen)
            self._active_fen = None
            self._cancel_safety_timer()
            self._set_state(EvalState())
            return self._state

        if refresh_token and refresh_token != self._refresh_token:
            # A new token means the caller suspects a stuck engine.
            await self._supervisor.reset()
        self._refresh_token = refresh_token

        engine = await self._supervisor.acquire()
        if sequence != self._sequence:
            # Superseded while waiting for the engine; the newer request owns it.
            return self._state
        if engine is None:
            self._log.error("Engine unavailable - eval bar disabled.")
            self._cancel_safety_timer()
            self._set_state(EvalState())
            return self._state

        self._active_fen = fen
        self._log.debug(
            "Analyzing position.", fen=fen, sequence=sequence,
            depth=depth or self._settings.default_depth, refresh=refresh_token,
        )
        metrics.ANALYSIS_REQUESTS_TOTAL.inc()
        self._set_state(dataclasses.replace(self._state, thinking=True))
        self._cancel_safety_timer()

        # No awaits between these: the triplet for one position is never interleaved.
        engine.send("stop")
        engine.send(f"position fen {fen}")
        engine.send(f"go movetime {self._settings.movetime_ms}")

        self._safety_timer = asyncio.get_running_loop().call_later(
            self._settings.safety_timeout_s, self._on_safety_timeout, sequence
        )
        return self._state

    async def wait_until_settled(self, timeout: Optional[float] = None) -> EvalState:
        """Waits until the current search finished (or was given up on) and returns the state."""
        await asyncio.wait_for(self._settled.wait(), timeout)
        return self._state

    # --- Engine output ---

    def _handle_line(self, line: str) -> None:
        if not line or line == "uciok":
            return
        if line.startswith("info "):
            parsed = parse_info_line(line)
            if parsed:
                # Progressive refinement: update even while the search is still running.
                self._set_state(dataclasses.replace(self._state, evaluation=normalize_for_fen(parsed, self._active_fen)))
            return
        if line.startswith("bestmove"):
            self._cancel_safety_timer()
            self._set_state(dataclasses.replace(self._state, thinking=False, best_move=parse_bestmove(line)))

    def _on_safety_timeout(self, sequence: int) -> None:
        if sequence != self._sequence:
            return
        self._safety_timer = None
        if not self._state.thinking:
            return
        self._log.warning("No bestmove before the safety timeout.", sequence=sequence, timeout_s=self._settings.safety_timeout_s)
        metrics.SAFETY_TIMEOUTS_TOTAL.inc()
        self._set_state(dataclasses.replace(self._state, thinking=False))

    # --- Internal helpers ---

    def _cancel_safety_timer(self) -> None:
        if self._safety_timer is not None:
            self._safety_timer.cancel()
            self._safety_timer = None

    def _set_state(self, state: EvalState) -> None:
        if state == self._state:
            return
        self._state = state
        if state.thinking:
            self._settled.clear()
        else:
            self._settled.set()
        for listener in list(self._listeners):
            listener(state)
