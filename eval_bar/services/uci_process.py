# eval_bar/services/uci_process.py
"""
Provides a concrete implementation of the `EngineProcess` protocol over an
asyncio subprocess.

This module acts as an adapter to a native UCI engine executable. Commands are
written to the engine's stdin as they are issued (fire and forget); a reader
task delivers every stdout line to a callback, and reports an engine that
exits on its own through a separate error callback.
"""

import asyncio
from typing import Optional

import structlog

from eval_bar.exceptions import EngineProcessError, EngineStartError, EngineUnsupportedError
from eval_bar.types import ErrorListener, LineListener
from eval_bar.utils.logging_config import ENGINE_IO_LOGGER
from eval_bar.utils.system_utils import resolve_engine_executable

logger = structlog.get_logger(__name__)
io_logger = structlog.get_logger(ENGINE_IO_LOGGER)


class UciProcess:
    """
    A running UCI engine subprocess.

    Use the `create` class method to spawn one; it conforms to the
    `ProcessFactory` signature expected by `EngineSupervisor`.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        identifier: str,
        on_line: LineListener,
        on_error: ErrorListener,
    ):
        """
        Private constructor. Use the `create` class method for safe instantiation.

        Args:
            process: The spawned subprocess with piped stdin and stdout.
            identifier: The candidate identifier this process was built from.
            on_line: Called with every non-empty line the engine prints.
            on_error: Called once if the engine dies without being told to.
        """
        self.identifier = identifier
        self._process = process
        self._on_line = on_line
        self._on_error = on_error
        self._terminated = False
        self._reader: Optional[asyncio.Task] = None

    @classmethod
    async def create(cls, identifier: str, on_line: LineListener, on_error: ErrorListener) -> "UciProcess":
        """
        Spawns the engine named by `identifier` and starts reading its output.

        Raises:
            EngineStartError: The identifier resolves to no executable, or the OS refused to run it.
            EngineUnsupportedError: The running event loop cannot spawn subprocesses.
        """
        try:
            executable = resolve_engine_executable(identifier)
        except FileNotFoundError as e:
            raise EngineStartError(str(e), candidate=identifier) from e

        try:
            process = await asyncio.create_subprocess_exec(
                str(executable),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except NotImplementedError as e:
            raise EngineUnsupportedError(
                "The event loop does not support subprocesses.", candidate=identifier
            ) from e
        except OSError as e:
            raise EngineStartError(f"Failed to spawn engine '{executable}': {e}", candidate=identifier) from e

        instance = cls(process, identifier, on_line, on_error)
        instance._reader = asyncio.create_task(instance._read_loop(), name=f"uci-reader-{process.pid}")
        logger.debug("Engine process spawned.", candidate=identifier, pid=process.pid)
        return instance

    @property
    def pid(self) -> int:
        return self._process.pid

    def is_running(self) -> bool:
        return not self._terminated and self._process.returncode is None

    def send(self, command: str) -> None:
        if self._terminated or self._process.stdin is None:
            return
        io_logger.debug("Engine command sent.", candidate=self.identifier, command=command)
        try:
            self._process.stdin.write(f"{command}\n".encode())
        except (BrokenPipeError, ConnectionResetError) as e:
            self._report_failure(EngineProcessError(f"Engine stdin closed: {e}", candidate=self.identifier))

    async def _read_loop(self) -> None:
        if self._process.stdout is None:
            return
        try:
            while True:
                raw = await self._process.stdout.readline()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").strip()
                if not line or self._terminated:
                    continue
                io_logger.debug("Engine line received.", candidate=self.identifier, line=line)
                self._on_line(line)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._report_failure(EngineProcessError(f"Engine output unreadable: {e}", candidate=self.identifier))
            return

        if not self._terminated:
            returncode = await self._process.wait()
            self._report_failure(
                EngineProcessError(f"Engine exited unexpectedly with code {returncode}.", candidate=self.identifier)
            )

    def _report_failure(self, error: EngineProcessError) -> None:
        if self._terminated:
            return
        self._terminated = True
        logger.warning("Engine process failed.", candidate=self.identifier, error=str(error))
        self._on_error(error)

    def terminate(self) -> None:
        """Stops the engine. Idempotent; no callbacks fire afterwards."""
        if self._reader is not None and not self._reader.done() and self._reader is not asyncio.current_task():
            self._reader.cancel()
        already_terminated = self._terminated
        self._terminated = True
        if self._process.returncode is not None:
            return
        if not already_terminated and self._process.stdin is not None:
            try:
                self._process.stdin.write(b"quit\n")
                self._process.stdin.close()
            except (BrokenPipeError, ConnectionResetError):
                pass
        try:
            self._process.terminate()
        except ProcessLookupError:
            pass
        logger.debug("Engine process terminated.", candidate=self.identifier, pid=self._process.pid)
