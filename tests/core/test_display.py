# tests/core/test_display.py
import pytest

from eval_bar.config.settings import DisplaySettings
from eval_bar.core.display import cp_to_fraction, eval_label, eval_to_fraction
from eval_bar.core.evaluation import normalize_for_fen, parse_info_line
from eval_bar.types import EngineEval, ScoreType

# Black is checkmated with Black to move, and White likewise.
SCHOLARS_MATE = "r1bqkb1r/pppp1Qpp/2n2n2/4p3/2B1P3/8/PPPP1PPP/RNB1K1NR b KQkq - 0 4"
FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


@pytest.fixture
def settings():
    return DisplaySettings()

def cp(value):
    return EngineEval(ScoreType.CP, value)

def mate(value):
    return EngineEval(ScoreType.MATE, value)


def test_cp_fraction_centered_at_zero(settings):
    assert cp_to_fraction(0, settings) == pytest.approx(0.5)

def test_cp_fraction_stays_strictly_inside_bounds(settings):
    for value in (-10**9, -32000, -4000, -400, -1, 1, 400, 4000, 32000, 10**9):
        fraction = cp_to_fraction(value, settings)
        assert 0.01 < fraction < 0.99

def test_cp_fraction_rises_strictly_up_to_the_cap(settings):
    values = list(range(-settings.cp_cap, settings.cp_cap + 1, 50))
    fractions = [cp_to_fraction(v, settings) for v in values]
    assert all(lower < higher for lower, higher in zip(fractions, fractions[1:]))
    assert cp_to_fraction(100, settings) < cp_to_fraction(300, settings) < cp_to_fraction(900, settings)

def test_cp_fraction_is_symmetric(settings):
    assert cp_to_fraction(250, settings) == pytest.approx(1 - cp_to_fraction(-250, settings))

def test_mate_fraction_ignores_distance(settings):
    assert eval_to_fraction(mate(1), settings) == 0.99
    assert eval_to_fraction(mate(9), settings) == 0.99
    assert eval_to_fraction(mate(-1), settings) == 0.01
    assert eval_to_fraction(mate(-9), settings) == 0.01

def test_no_evaluation_is_neutral(settings):
    assert eval_to_fraction(None, settings) == 0.5
    assert eval_label(None) == "0.0"

@pytest.mark.parametrize("value, label", [
    (134, "+1.3"),
    (-40, "-0.4"),
    (0, "0.0"),
    (-5, "-0.1"),  # half rounds away from zero
    (5, "+0.1"),
    (-4, "0.0"),
    (100, "+1.0"),
    (-1250, "-12.5"),
])
def test_cp_label(value, label):
    assert eval_label(cp(value)) == label

def test_mate_label():
    assert eval_label(mate(3)) == "M3"
    assert eval_label(mate(-2)) == "-M2"

def test_cp_fraction_is_flat_beyond_the_cap(settings):
    assert cp_to_fraction(settings.cp_cap + 1000, settings) == cp_to_fraction(settings.cp_cap, settings)
    assert cp_to_fraction(-settings.cp_cap - 1000, settings) == cp_to_fraction(-settings.cp_cap, settings)

def test_delivered_mate_follows_the_winner(settings):
    black_mated = EngineEval(ScoreType.MATE, 0, winner="w")
    white_mated = EngineEval(ScoreType.MATE, 0, winner="b")
    assert eval_to_fraction(black_mated, settings) == 0.99
    assert eval_label(black_mated) == "M0"
    assert eval_to_fraction(white_mated, settings) == 0.01
    assert eval_label(white_mated) == "-M0"

def test_delivered_mate_on_checkmated_boards(settings):
    for fen, fraction, label in [(SCHOLARS_MATE, 0.99, "M0"), (FOOLS_MATE, 0.01, "-M0")]:
        evaluation = normalize_for_fen(parse_info_line("info depth 0 score mate 0"), fen)
        assert eval_to_fraction(evaluation, settings) == fraction
        assert eval_label(evaluation) == label
