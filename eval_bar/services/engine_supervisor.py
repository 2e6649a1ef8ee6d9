# eval_bar/services/engine_supervisor.py
"""
Owns the single engine process shared by every evaluation session.

The `EngineSupervisor` starts engine builds in order of preference, waits a
bounded time for each to acknowledge the UCI handshake, and moves on to the
next build when one cannot be constructed, never answers, or dies later. When
every build has failed it reports the engine as unavailable rather than
raising, and only tries again on the next demand.

States:
    UNINITIALIZED -> STARTING(i) -> READY(i)
    STARTING(i) / READY(i) --failure--> STARTING(i+1) or FAILED
    FAILED --next acquire()--> STARTING(0)
    any --reset()--> UNINITIALIZED
    UNSUPPORTED is terminal: the host cannot run background processes at all.
"""

import asyncio
import functools
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

import structlog

from eval_bar.exceptions import EngineError, EngineUnsupportedError
from eval_bar.services.listener_registry import BroadcastChannel, ListenerRegistry
from eval_bar.types import EngineProcess, LineListener, ProcessFactory, SupervisorState
from eval_bar.utils import metrics

if TYPE_CHECKING:
    from eval_bar.config.settings import EngineSettings

logger = structlog.get_logger(__name__)

HANDSHAKE_ACKS = frozenset({"uciok", "readyok"})


class EngineSupervisor:
    """
    A process-wide manager for one expensive engine process.

    Sessions share the process but none of them owns its teardown; they
    subscribe to its output and demand it through `acquire`. Inject a single
    instance into every session (see `eval_bar.containers`).
    """

    def __init__(self, candidates: Sequence[str], process_factory: ProcessFactory, settings: "EngineSettings"):
        """
        Initializes the supervisor. No process is started until the first `acquire`.

        Args:
            candidates: Engine build identifiers, most broadly compatible first.
            process_factory: An async callable (e.g. `UciProcess.create`) that spawns one build.
            settings: Engine settings; provides the handshake timeout.
        """
        self._candidates: Tuple[str, ...] = tuple(candidates)
        self._factory = process_factory
        self._init_timeout_s = settings.init_timeout_s
        self._registry = ListenerRegistry()
        self._lock = asyncio.Lock()

        self._state = SupervisorState.UNINITIALIZED
        self._process: Optional[EngineProcess] = None
        self._channel: Optional[BroadcastChannel] = None
        self._candidate_index: Optional[int] = None
        self._resume_index = 0
        self._init_timer: Optional[asyncio.TimerHandle] = None
        self._advance_task: Optional[asyncio.Task] = None
        self._failures: List[Tuple[str, str]] = []

    # --- Read-only views ---

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def candidates(self) -> Tuple[str, ...]:
        return self._candidates

    @property
    def active_candidate(self) -> Optional[str]:
        if self._process is None or self._candidate_index is None:
            return None
        return self._candidates[self._candidate_index]

    @property
    def failures(self) -> List[Tuple[str, str]]:
        """(candidate, reason) pairs abandoned during the current demand cycle."""
        return list(self._failures)

    @property
    def registry(self) -> ListenerRegistry:
        return self._registry

    # --- Subscriptions ---

    def subscribe(self, listener: LineListener) -> None:
        self._registry.add(listener)

    def unsubscribe(self, listener: LineListener) -> None:
        self._registry.discard(listener)

    # --- Lifecycle ---

    async def acquire(self) -> Optional[EngineProcess]:
        """
        Returns the shared engine process, starting it if necessary.

        Returns:
            The live process (possibly still completing its handshake), or None
            when the engine is unavailable.
        """
        async with self._lock:
            if self._state is SupervisorState.UNSUPPORTED:
                return None
            if self._state is SupervisorState.FAILED:
                logger.info("Retrying engine candidates after previous exhaustion.")
                self._reset_state()
            if self._process is None:
                await self._start_from(self._resume_index)
            return self._process

    async def reset(self) -> None:
        """Hard reset: terminates the current process and returns to UNINITIALIZED."""
        async with self._lock:
            if self._state is SupervisorState.UNSUPPORTED:
                return
            logger.info("Hard-resetting engine.", candidate=self.active_candidate)
            self._discard_process()
            self._reset_state()

    async def close(self) -> None:
        """Terminates the engine process and cancels any pending fallback."""
        if self._advance_task is not None and not self._advance_task.done():
            self._advance_task.cancel()
            try:
                await self._advance_task
            except asyncio.CancelledError:
                pass
        async with self._lock:
            self._discard_process()
            if self._state is not SupervisorState.UNSUPPORTED:
                self._reset_state()

    async def _start_from(self, start: int) -> None:
        """
        Tries candidates from `start` onwards until one can be constructed.

        Must be called with the lock held. A constructed candidate is left in
        STARTING with its handshake sent and the init timer armed.
        """
        for index in range(start, len(self._candidates)):
            candidate = self._candidates[index]
            channel = BroadcastChannel(self._registry, candidate)
            self._channel = channel
            self._state = SupervisorState.STARTING
            logger.info("Loading evaluation engine.", candidate=candidate, attempt=index + 1, of=len(self._candidates))

            try:
                process = await self._factory(
                    candidate,
                    functools.partial(self._handle_line, channel),
                    functools.partial(self._handle_error, channel),
                )
            except EngineUnsupportedError as e:
                channel.close()
                self._channel = None
                self._state = SupervisorState.UNSUPPORTED
                logger.error("Background engine processes are not supported here.", error=str(e))
                return
            except (EngineError, OSError) as e:
                channel.close()
                self._record_failure(candidate, "construction")
                logger.warning("Failed to start engine candidate. Trying next fallback.", candidate=candidate, error=str(e))
                continue
            except Exception:
                channel.close()
                self._record_failure(candidate, "construction")
                logger.error("Unexpected error while starting engine candidate. Trying next fallback.", candidate=candidate, exc_info=True)
                continue

            self._process = process
            self._candidate_index = index
            metrics.ENGINE_STARTS_TOTAL.labels(candidate=candidate).inc()
            self._arm_init_timer(channel)
            process.send("uci")
            process.send("isready")
            return

        self._channel = None
        self._mark_exhausted()

    # --- Callbacks from the engine process and timers ---

    def _handle_line(self, channel: BroadcastChannel, line: str) -> None:
        if channel is not self._channel or channel.closed:
            return
        if line in HANDSHAKE_ACKS and self._state is SupervisorState.STARTING:
            self._cancel_init_timer()
            self._state = SupervisorState.READY
            metrics.ENGINE_READY.set(1)
            logger.info("Engine ready.", candidate=channel.candidate)
        # Control lines are broadcast too; sessions filter what they need.
        channel.publish(line)

    def _handle_error(self, channel: BroadcastChannel, error: BaseException) -> None:
        if channel is not self._channel or channel.closed:
            return
        logger.error("Engine process error.", candidate=channel.candidate, state=self._state.value, error=str(error))
        self._fail_current("runtime_error")

    def _on_init_timeout(self, channel: BroadcastChannel) -> None:
        self._init_timer = None
        if channel is not self._channel or channel.closed or self._state is not SupervisorState.STARTING:
            return
        logger.warning("Engine init timed out.", candidate=channel.candidate, timeout_s=self._init_timeout_s)
        self._fail_current("init_timeout")

    def _fail_current(self, reason: str) -> None:
        """Abandons the active candidate and schedules the next one, or marks exhaustion."""
        if self._candidate_index is None:
            logger.warning("Engine failure reported with no active candidate. Ignoring.", reason=reason, state=self._state.value)
            return
        failed_index = self._candidate_index
        self._record_failure(self._candidates[failed_index], reason)
        self._discard_process()

        next_index = failed_index + 1
        if next_index >= len(self._candidates):
            self._mark_exhausted()
            return

        logger.warning(
            "Falling back to next engine candidate.",
            failed=self._candidates[failed_index],
            next=self._candidates[next_index],
        )
        self._resume_index = next_index
        self._state = SupervisorState.STARTING
        self._advance_task = asyncio.get_running_loop().create_task(self._advance())

    async def _advance(self) -> None:
        async with self._lock:
            # A concurrent acquire() or reset() may already have moved on.
            if self._process is None and self._state is SupervisorState.STARTING:
                await self._start_from(self._resume_index)

    # --- Internal helpers ---

    def _arm_init_timer(self, channel: BroadcastChannel) -> None:
        self._cancel_init_timer()
        self._init_timer = asyncio.get_running_loop().call_later(
            self._init_timeout_s, self._on_init_timeout, channel
        )

    def _cancel_init_timer(self) -> None:
        if self._init_timer is not None:
            self._init_timer.cancel()
            self._init_timer = None

    def _discard_process(self) -> None:
        self._cancel_init_timer()
        if self._channel is not None:
            self._channel.close()
            self._channel = None
        process, self._process = self._process, None
        metrics.ENGINE_READY.set(0)
        if process is None:
            return
        try:
            process.terminate()
        except Exception:
            logger.warning("Error while terminating engine process.", candidate=process.identifier, exc_info=True)

    def _reset_state(self) -> None:
        self._state = SupervisorState.UNINITIALIZED
        self._candidate_index = None
        self._resume_index = 0
        self._failures = []

    def _record_failure(self, candidate: str, reason: str) -> None:
        self._failures.append((candidate, reason))
        metrics.ENGINE_CANDIDATE_FAILURES_TOTAL.labels(reason=reason).inc()

    def _mark_exhausted(self) -> None:
        self._state = SupervisorState.FAILED
        self._resume_index = 0
        metrics.ENGINE_EXHAUSTED_TOTAL.inc()
        logger.error("Exhausted all engine fallbacks.", failures=self._failures or None, candidates=len(self._candidates))
