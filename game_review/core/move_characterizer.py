# game_review/core/move_characterizer.py
"""
Provides a pure function to determine the objective characteristics of a move.

This module is a stateless component in the functional core. It takes a parsed
move and returns a structured data object (`MoveCharacteristics`) containing
factual, non-interpretive properties of that move (does it mate, does it end
the game, how much material it gives up and wins). This data is then used by
higher-level components like the `MoveClassifier`.
"""

import chess

from game_review.core.chess_utils import (hanging_material,
                                          is_checkmate_position,
                                          is_terminal_position,
                                          material_by_color)
from game_review.types import MoveCharacteristics, ParsedMove


def characterize_move(move: ParsedMove) -> MoveCharacteristics:
    """
    Analyzes a move to determine its fundamental properties.

    Material figures are in pawn units and are taken from the perspective of
    the player making the move. `material_captured` is what the opponent has
    less after the move. `material_sacrificed` is what the mover has less
    after the move plus what the opponent can win with one capture in reply,
    so a piece left en prise counts as given up.

    Args:
        move: The `ParsedMove` to be characterized.

    Returns:
        A `MoveCharacteristics` dataclass containing objective data.
    """
    mover = chess.WHITE if move.is_white else chess.BLACK
    opponent = not mover

    before = material_by_color(move.fen_before)
    after = material_by_color(move.fen_after)

    delivers_mate = move.san.endswith('#') or is_checkmate_position(move.fen_after)
    ends_game = delivers_mate or is_terminal_position(move.fen_after)

    material_sacrificed = before[mover] - after[mover]
    if not ends_game:
        material_sacrificed += hanging_material(move.fen_after)

    return MoveCharacteristics(
        delivers_mate=delivers_mate,
        ends_game=ends_game,
        material_sacrificed=material_sacrificed,
        material_captured=before[opponent] - after[opponent],
    )
