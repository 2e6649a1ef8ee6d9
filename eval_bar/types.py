# eval_bar/types.py
"""
A central module for shared data structures and service interfaces (Protocols).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol, TypeAlias, runtime_checkable

FEN: TypeAlias = str

class ScoreType(str, Enum):
    CP = "cp"; MATE = "mate"

class SupervisorState(str, Enum):
    UNINITIALIZED = "uninitialized"; STARTING = "starting"; READY = "ready"
    FAILED = "failed"; UNSUPPORTED = "unsupported"

# --- DATA CONTRACTS ---

@dataclass(frozen=True, slots=True)
class EngineEval:
    """
    A score in centipawns or moves to mate.

    `winner` is only set for a delivered mate (`mate 0`), where the sign of the
    value cannot say who won: "w" or "b" once the position is known.
    """
    type: ScoreType; value: int
    winner: Optional[str] = None

    @property
    def is_mate(self) -> bool:
        return self.type is ScoreType.MATE

    @property
    def favors_white(self) -> bool:
        if self.value != 0:
            return self.value > 0
        return self.winner == "w"

@dataclass(frozen=True, slots=True)
class EvalState:
    """The reactive value a session exposes to its consumer."""
    evaluation: Optional[EngineEval] = None
    thinking: bool = False
    best_move: Optional[str] = None

@dataclass(frozen=True, slots=True)
class BarFrame:
    fraction: float; white_fill_percent: float; white_fill_px: int
    label: str; title: str; thinking: bool; height: int; width: int

    def as_text(self, columns: int = 40) -> str:
        """Renders the bar horizontally, White's share filled from the left."""
        filled = round(self.fraction * columns)
        bar = "#" * filled + "." * (columns - filled)
        suffix = " ..." if self.thinking else ""
        return f"[{bar}] {self.label}{suffix}"


# --- PROTOCOLS ---

LineListener: TypeAlias = Callable[[str], None]
ErrorListener: TypeAlias = Callable[[BaseException], None]

@runtime_checkable
class EngineProcess(Protocol):
    """A live background engine speaking the line-based UCI protocol."""
    identifier: str
    def send(self, command: str) -> None: ...
    def terminate(self) -> None: ...
    def is_running(self) -> bool: ...

# Called with (candidate identifier, on_line, on_error). Raises EngineStartError
# when the candidate cannot be built and EngineUnsupportedError when the host
# cannot run background processes at all.
ProcessFactory: TypeAlias = Callable[[str, LineListener, ErrorListener], Awaitable[EngineProcess]]
