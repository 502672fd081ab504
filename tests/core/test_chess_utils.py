# tests/core/test_chess_utils.py
import chess
import pytest

from game_review.config.settings import AnalysisSettings
from game_review.core.chess_utils import (count_legal_moves, get_material_value,
                                          hanging_material,
                                          is_checkmate_position,
                                          is_terminal_position,
                                          material_by_color,
                                          normalize_evaluation,
                                          white_perspective_cp, win_chance)
from game_review.types import Evaluation


def test_normalize_centipawns():
    assert normalize_evaluation(Evaluation(centipawns=135)) == 135
    assert normalize_evaluation(Evaluation(centipawns=-42)) == -42


def test_normalize_missing_score_is_zero():
    assert normalize_evaluation(Evaluation()) == 0
    assert normalize_evaluation(None) == 0


@pytest.mark.parametrize("mate", [1, 2, 5, 30, -1, -3, -12])
@pytest.mark.parametrize("cp", [None, 0, 850, -850])
def test_mate_dominates_any_centipawn_score(mate, cp):
    score = normalize_evaluation(Evaluation(centipawns=cp, mate_in=mate))
    assert abs(score) > abs(cp or 0)
    assert abs(score) > 9000
    assert (score > 0) == (mate > 0)


def test_faster_mate_scores_higher():
    mate_in_one = normalize_evaluation(Evaluation(mate_in=1))
    mate_in_four = normalize_evaluation(Evaluation(mate_in=4))
    assert mate_in_one == 9990
    assert mate_in_four == 9960
    assert normalize_evaluation(Evaluation(mate_in=-2)) == -9980


def test_normalize_respects_settings():
    settings = AnalysisSettings(mate_score_equivalent_cp=20000, mate_distance_penalty_cp=100)
    assert normalize_evaluation(Evaluation(mate_in=3), settings) == 19700


def test_win_chance_is_symmetric():
    assert win_chance(0) == pytest.approx(50.0)
    for cp in (1, 35, 200, 999, 5000):
        assert win_chance(cp) + win_chance(-cp) == pytest.approx(100.0)
        assert win_chance(cp) > 50


def test_win_chance_stays_in_range():
    assert 0 <= win_chance(-10000) < 1
    assert 99 < win_chance(10000) <= 100


def test_white_perspective():
    assert white_perspective_cp(Evaluation(centipawns=70), white_to_move=True) == 70
    assert white_perspective_cp(Evaluation(centipawns=70), white_to_move=False) == -70


def test_material_values():
    board = chess.Board()
    assert get_material_value(board, chess.WHITE) == 39
    board.remove_piece_at(chess.C1)
    assert get_material_value(board, chess.WHITE) == 36
    assert material_by_color(chess.STARTING_FEN) == {chess.WHITE: 39, chess.BLACK: 39}


def test_legality_helpers():
    assert count_legal_moves(chess.STARTING_FEN) == 20
    fools_mate = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"
    assert count_legal_moves(fools_mate) == 0
    assert is_checkmate_position(fools_mate)
    assert is_terminal_position(fools_mate)
    assert not is_terminal_position(chess.STARTING_FEN)
    stalemate = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
    assert is_terminal_position(stalemate)
    assert not is_checkmate_position(stalemate)


def test_fifty_move_limit_needs_one_hundred_half_moves():
    assert not is_terminal_position("4k3/8/8/8/8/8/R7/4K3 b - - 99 80")
    assert is_terminal_position("4k3/8/8/8/8/8/R7/4K3 b - - 100 80")


def test_hanging_material():
    assert hanging_material(chess.STARTING_FEN) == 0
    # b7xa6 wins the undefended bishop.
    assert hanging_material("r1bqkb1r/pppp1pp1/B1n2n1p/4p3/4P3/2N2N2/PPPP1PPP/R1BQK2R b KQkq - 1 5") == 3
    # e5 is undefended, so either d4xe5 or Nxe5 wins a pawn.
    assert hanging_material("rnbqkbnr/pppp1ppp/8/4p3/3P4/5N2/PPP1PPPP/RNBQKB1R w KQkq - 0 2") == 1
