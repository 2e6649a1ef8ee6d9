# eval_bar/services/candidates.py
"""
Builds the ordered list of engine builds the supervisor will try.
"""

from typing import Iterable, Optional, Tuple, TYPE_CHECKING

import structlog

from eval_bar.utils.system_utils import probe_threaded_support

if TYPE_CHECKING:
    from eval_bar.config.settings import EngineSettings

logger = structlog.get_logger(__name__)


def select_candidates(
    compatible: Iterable[str], threaded: Optional[str], supports_threads: bool
) -> Tuple[str, ...]:
    """
    Orders candidates most-compatible-first.

    Compatible builds keep their configured order (blanks and repeats dropped);
    the threaded build is appended last, and only when the host supports it.
    """
    ordered: list[str] = []
    for identifier in compatible:
        identifier = identifier.strip()
        if identifier and identifier not in ordered:
            ordered.append(identifier)

    if supports_threads and threaded and threaded.strip() and threaded.strip() not in ordered:
        ordered.append(threaded.strip())

    return tuple(ordered)


def candidates_from_settings(settings: "EngineSettings") -> Tuple[str, ...]:
    supports_threads = probe_threaded_support(settings.force_threaded)
    candidates = select_candidates(settings.compatible_candidates, settings.threaded_candidate, supports_threads)
    logger.info("Engine candidates selected.", candidates=list(candidates), threaded_support=supports_threads)
    return candidates
