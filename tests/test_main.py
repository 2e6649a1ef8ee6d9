# tests/test_main.py
from unittest.mock import patch

import pytest

import main
from eval_bar.config.settings import Settings
from eval_bar.containers import get_container

from conftest import STARTING_FEN, FakeProcessFactory


def test_parser_collects_fens_and_engines():
    args = main.build_parser().parse_args(["--engine", "a", "--engine", "b", "--movetime", "400", STARTING_FEN])
    assert args.engines == ["a", "b"]
    assert args.movetime == 400
    assert args.fens == [STARTING_FEN]

def test_command_line_overrides_settings():
    args = main.build_parser().parse_args(["--engine", "/opt/sf", "--movetime", "4000", STARTING_FEN])
    settings = main.settings_from_args(args, Settings())

    assert settings.engine.compatible_candidates == ["/opt/sf"]
    assert settings.engine.threaded_candidate is None
    assert settings.search.movetime_ms == 4000
    assert settings.search.safety_timeout_s > 4.0

@pytest.mark.asyncio
async def test_unavailable_engine_exits_with_error(capsys):
    factory = FakeProcessFactory({"missing": "raise"})
    settings = main.settings_from_args(main.build_parser().parse_args(["--engine", "missing", STARTING_FEN]), Settings())

    with patch("main.get_container", lambda s: get_container(s, process_factory=factory)):
        status = await main.evaluate_positions(settings, [STARTING_FEN], columns=10)

    assert status == 1
    assert "[#####.....] 0.0" in capsys.readouterr().out
