# eval_bar/core/evaluation.py
"""
Pure functions that turn raw UCI output into typed evaluations.

Engine scores are relative to the side to move. Everything leaving this module
through `normalize_for_fen` is absolute: positive favors White.
"""

import re
from typing import Final, Optional

import chess

from eval_bar.types import EngineEval, FEN, ScoreType

_MATE_RE: Final = re.compile(r"score\s+mate\s+(-?\d+)")
_CP_RE: Final = re.compile(r"score\s+cp\s+(-?\d+)")


def parse_info_line(line: str) -> Optional[EngineEval]:
    """
    Extracts the score from an `info` search-progress line.

    Mate wins over centipawns when both patterns are present. Lines that are
    not `info` lines, or carry no usable score, yield None.
    """
    if not line.startswith("info "):
        return None

    mate_match = _MATE_RE.search(line)
    if mate_match:
        return EngineEval(ScoreType.MATE, int(mate_match.group(1)))

    cp_match = _CP_RE.search(line)
    if cp_match:
        return EngineEval(ScoreType.CP, int(cp_match.group(1)))

    return None


def parse_bestmove(line: str) -> Optional[str]:
    """Returns the move of a `bestmove` line, or None when the engine had no move."""
    parts = line.split()
    if len(parts) < 2 or parts[0] != "bestmove" or parts[1] == "(none)":
        return None
    return parts[1]


def side_to_move(fen: Optional[FEN]) -> Optional[str]:
    if not fen:
        return None
    fields = fen.split()
    if len(fields) < 2 or fields[1] not in ("w", "b"):
        return None
    return fields[1]


def normalize_for_fen(evaluation: EngineEval, fen: Optional[FEN]) -> EngineEval:
    """
    Flips the score to White's perspective when Black is to move in `fen`.

    `mate 0` means the side to move has been mated, so it is resolved to an
    explicit winner instead of a sign.
    """
    mover = side_to_move(fen)
    if evaluation.is_mate and evaluation.value == 0 and mover is not None:
        return EngineEval(ScoreType.MATE, 0, winner="b" if mover == "w" else "w")
    if mover != "b":
        return evaluation
    return EngineEval(evaluation.type, -evaluation.value)


def is_valid_fen(fen: str) -> bool:
    """Checks a FEN with python-chess before it is allowed anywhere near an engine."""
    try:
        board = chess.Board(fen)
    except ValueError:
        return False
    return board.is_valid()
