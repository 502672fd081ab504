# game_review/core/chess_utils.py
"""
Provides a collection of pure, stateless functions for chess-related calculations.

This module acts as the "math library" for the chess domain. It has no
dependencies on other parts of this application except for the data contracts
defined in `types.py` and `settings.py`. Its functions are deterministic and
form the foundational building blocks for more complex analysis.
"""

import math
from typing import Dict, Final, Optional, TYPE_CHECKING

import chess

if TYPE_CHECKING:
    from game_review.config.settings import AnalysisSettings
    from game_review.types import Evaluation, FEN

# A constant dictionary mapping piece types to their standard pawn-unit values.
PIECE_VALUES: Final[Dict[chess.PieceType, int]] = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 0,
}

MATE_SCORE_CP: Final[int] = 10000
# Centipawns subtracted per ply of mate distance, so faster mates score higher.
MATE_ADJUSTMENT_FACTOR: Final[int] = 10
WIN_CHANCE_COEFFICIENT: Final[float] = 0.00368208


def normalize_evaluation(
    evaluation: Optional["Evaluation"], settings: Optional["AnalysisSettings"] = None
) -> int:
    """
    Converts an evaluation to a signed centipawn score from the side to move's
    perspective.

    Mate scores map to `sign(mate) * (10000 - 10 * max(1, |mate|))`, which
    dominates any finite centipawn score. A missing score counts as 0.
    """
    if evaluation is None:
        return 0

    if evaluation.mate_in is not None:
        mate_cp = settings.mate_score_equivalent_cp if settings else MATE_SCORE_CP
        penalty = settings.mate_distance_penalty_cp if settings else MATE_ADJUSTMENT_FACTOR
        sign = (evaluation.mate_in > 0) - (evaluation.mate_in < 0)
        distance = max(1, abs(evaluation.mate_in))
        return sign * (mate_cp - distance * penalty)

    return evaluation.centipawns if evaluation.centipawns is not None else 0


def win_chance(centipawns: float, settings: Optional["AnalysisSettings"] = None) -> float:
    """
    Maps a centipawn score onto a 0-100 win-chance scale with a logistic curve.

    The curve is symmetric about 0 (which maps to 50).
    """
    coefficient = settings.win_chance_coefficient if settings else WIN_CHANCE_COEFFICIENT
    return 50 + 50 * (2 / (1 + math.exp(-coefficient * centipawns)) - 1)


def white_perspective_cp(evaluation: "Evaluation", white_to_move: bool,
                         settings: Optional["AnalysisSettings"] = None) -> int:
    """Re-expresses a side-to-move evaluation from White's point of view."""
    score = normalize_evaluation(evaluation, settings)
    return score if white_to_move else -score


def get_material_value(board: chess.Board, color: chess.Color) -> int:
    """
    Calculates the total material value for a given color on the board.
    """
    material = 0
    for piece_type, value in PIECE_VALUES.items():
        material += len(board.pieces(piece_type, color)) * value
    return material


def material_by_color(fen: "FEN") -> Dict[chess.Color, int]:
    """Returns the material of both sides for a position encoding."""
    board = chess.Board(fen)
    return {
        chess.WHITE: get_material_value(board, chess.WHITE),
        chess.BLACK: get_material_value(board, chess.BLACK),
    }


def count_legal_moves(fen: "FEN") -> int:
    """Counts the legal moves available to the side to move."""
    return chess.Board(fen).legal_moves.count()


def is_terminal_position(fen: "FEN") -> bool:
    """
    True when the game is over in the position: checkmate, stalemate,
    insufficient material, or a fifty-move count of at least 100 half-moves.
    A position one half-move short of the fifty-move limit is still playable.
    Repetitions depend on the move history and are not detected from a FEN.
    """
    board = chess.Board(fen)
    return board.is_game_over() or board.halfmove_clock >= 100


def hanging_material(fen: "FEN") -> int:
    """
    Returns the most material the side to move can win with one capture.

    A capture wins the victim's full value when the victim is undefended, and
    the victim's value minus the capturing piece's value when it is defended.
    Deeper exchanges are not resolved.
    """
    board = chess.Board(fen)
    defender = not board.turn
    best = 0
    for move in board.legal_moves:
        if not board.is_capture(move):
            continue
        victim = board.piece_at(move.to_square)
        victim_value = PIECE_VALUES[victim.piece_type] if victim else PIECE_VALUES[chess.PAWN]
        gain = victim_value
        if board.is_attacked_by(defender, move.to_square):
            gain -= PIECE_VALUES[board.piece_type_at(move.from_square)]
        best = max(best, gain)
    return best


def is_checkmate_position(fen: "FEN") -> bool:
    """True when the side to move in `fen` is checkmated."""
    return chess.Board(fen).is_checkmate()
