# tests/output/test_evaluation_bar.py
import pytest

from eval_bar.output.evaluation_bar import EvaluationBar
from eval_bar.types import EngineEval, ScoreType


@pytest.fixture
def bar(display_settings):
    return EvaluationBar(display_settings)


def test_render_centipawn(bar):
    frame = bar.render(EngineEval(ScoreType.CP, 134), thinking=True, height=500, width=20)

    assert frame.label == "+1.3"
    assert frame.title == "Eval: +1.3"
    assert 0.5 < frame.fraction < 0.99
    assert frame.white_fill_percent == pytest.approx(frame.fraction * 100)
    assert frame.white_fill_px == round(frame.fraction * 500)
    assert (frame.height, frame.width, frame.thinking) == (500, 20, True)

def test_render_uses_configured_size(bar, display_settings):
    frame = bar.render(None)
    assert (frame.height, frame.width) == (display_settings.height, display_settings.width)

def test_empty_bar_is_neutral(bar):
    frame = bar.render(None)
    assert frame.fraction == 0.5
    assert frame.label == "0.0"

def test_last_evaluation_is_held_when_engine_goes_quiet(bar):
    bar.render(EngineEval(ScoreType.MATE, -2))
    frame = bar.render(None)

    assert frame.label == "-M2"
    assert frame.fraction == 0.01
    assert bar.last_evaluation == EngineEval(ScoreType.MATE, -2)

def test_text_rendering(bar):
    frame = bar.render(EngineEval(ScoreType.MATE, 3), thinking=True)
    text = frame.as_text(columns=10)

    assert text.startswith("[##########]")
    assert text.endswith("M3 ...")

def test_text_rendering_of_even_position(bar):
    assert bar.render(None).as_text(columns=10) == "[#####.....] 0.0"
