# eval_bar/exceptions.py
"""
Defines custom exceptions for the evaluation bar engine layer.

None of these cross into consumer code: the supervisor catches them and turns
every failure into an observable state (`READY`, `FAILED`, `UNSUPPORTED`),
and sessions report an unavailable engine as an empty evaluation.
"""

from typing import Optional


class EvalBarError(Exception):
    """Base class for all application-specific, catchable errors."""
    pass


class EngineError(EvalBarError):
    """
    Base class for errors related to an engine process.

    Attributes:
        candidate: The identifier of the engine build that failed, if known.
    """
    def __init__(self, message: str, candidate: Optional[str] = None):
        super().__init__(message)
        self.candidate = candidate


class EngineUnsupportedError(EngineError):
    """
    Raised when the host cannot spawn background processes at all.

    This is fatal for the whole supervisor lifetime; no other candidate is tried.
    """
    pass


class EngineStartError(EngineError):
    """
    Raised when a specific engine build could not be instantiated.

    Typically the executable does not exist, is not executable, or the OS
    refused to spawn it. The supervisor recovers by moving to the next candidate.
    """
    pass


class EngineProcessError(EngineError):
    """Raised (and reported through the error callback) when a running engine dies or its pipe breaks."""
    pass
