# main.py
"""
The command-line entry point: evaluates positions on the shared engine and
prints an evaluation bar for each.

Usage:
    python main.py "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
    python main.py --engine /usr/games/stockfish --movetime 500 FEN [FEN ...]
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import structlog
from prometheus_client import start_http_server

from eval_bar.config.settings import EngineSettings, SearchSettings, Settings, settings as default_settings
from eval_bar.containers import get_container
from eval_bar.output.evaluation_bar import EvaluationBar
from eval_bar.services.engine_supervisor import EngineSupervisor
from eval_bar.services.eval_session import EvalSession
from eval_bar.utils.logging_config import setup_logging

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show an engine evaluation bar for chess positions.")
    parser.add_argument("fens", nargs="+", metavar="FEN", help="Positions to evaluate, in FEN.")
    parser.add_argument(
        "--engine", action="append", dest="engines", metavar="PATH",
        help="Engine build to try; repeat to give fallbacks in order. Replaces the configured candidates.",
    )
    parser.add_argument("--movetime", type=int, metavar="MS", help="Search budget per position in milliseconds.")
    parser.add_argument("--columns", type=int, default=40, help="Width of the printed bar.")
    parser.add_argument("--log-level", default=default_settings.log_level)
    parser.add_argument("--json-logs", action="store_true", help="Render console logs as JSON.")
    parser.add_argument("--log-file", type=Path, help="Also append JSON logs to this file.")
    parser.add_argument("--trace-engine-io", action="store_true", help="Log every line sent to and read from the engine.")
    parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port.")
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    """Applies command-line overrides on top of the environment-derived settings."""
    engine, search = base.engine, base.search
    if args.engines:
        engine = EngineSettings(**{**engine.model_dump(), "compatible_candidates": args.engines, "threaded_candidate": None})
    if args.movetime:
        search = SearchSettings(
            **{**search.model_dump(), "movetime_ms": args.movetime,
               "safety_timeout_s": max(search.safety_timeout_s, args.movetime / 1000 + 1)}
        )
    return base.model_copy(update={"engine": engine, "search": search, "log_level": args.log_level})


async def evaluate_positions(settings: Settings, fens: List[str], columns: int) -> int:
    container = get_container(settings)
    supervisor: EngineSupervisor = container.resolve(EngineSupervisor)
    bar: EvaluationBar = container.resolve(EvaluationBar)
    evaluated = 0

    try:
        async with container.resolve(EvalSession) as session:
            for fen in fens:
                await session.observe(fen)
                state = await session.wait_until_settled(settings.search.safety_timeout_s + 1)
                frame = bar.render(state.evaluation, state.thinking)
                if state.evaluation is not None:
                    evaluated += 1
                best = f"  best {state.best_move}" if state.best_move else ""
                print(f"{frame.as_text(columns)}{best}  {fen}")
    finally:
        await supervisor.close()

    if evaluated == 0:
        logger.error("No position could be evaluated.", engine_state=supervisor.state.value, failures=supervisor.failures)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to set up logging and run the evaluation."""
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args, default_settings)
    setup_logging(
        log_level=settings.log_level,
        log_file=args.log_file,
        json_console=args.json_logs,
        trace_engine_io=args.trace_engine_io or settings.trace_engine_io,
    )
    if args.metrics_port:
        start_http_server(args.metrics_port)
        logger.info("Serving Prometheus metrics.", port=args.metrics_port)

    return asyncio.run(evaluate_positions(settings, args.fens, args.columns))


if __name__ == "__main__":
    sys.exit(main())
