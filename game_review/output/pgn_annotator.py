# game_review/output/pgn_annotator.py
"""
Writes a game review back into a `python-chess` game tree.

Each analyzed move gets a Numeric Annotation Glyph matching its label, an
`[%eval]` command for the position after it, and a short comment naming the
label, the centipawn loss and the engine's preferred move. Weak moves also
get the engine's principal variation as a side line.
"""

from typing import Dict, List, Optional, Sequence, TYPE_CHECKING

import chess
import chess.engine
import chess.pgn
import structlog

from game_review.types import MoveClassification

if TYPE_CHECKING:
    from game_review.types import AnalysisSnapshot, Evaluation

logger = structlog.get_logger(__name__)

# Display symbols used in comments and console reports.
CLASSIFICATION_SYMBOLS: Dict[MoveClassification, str] = {
    MoveClassification.BRILLIANT: "!!",
    MoveClassification.GREAT: "!",
    MoveClassification.BEST: "★",
    MoveClassification.EXCELLENT: "✓",
    MoveClassification.GOOD: "+",
    MoveClassification.BOOK: "📖",
    MoveClassification.INACCURACY: "?!",
    MoveClassification.MISTAKE: "?",
    MoveClassification.BLUNDER: "??",
    MoveClassification.FORCED: "—",
}

CLASSIFICATION_NAGS: Dict[MoveClassification, int] = {
    MoveClassification.BRILLIANT: chess.pgn.NAG_BRILLIANT_MOVE,
    MoveClassification.GREAT: chess.pgn.NAG_GOOD_MOVE,
    MoveClassification.INACCURACY: chess.pgn.NAG_DUBIOUS_MOVE,
    MoveClassification.MISTAKE: chess.pgn.NAG_MISTAKE,
    MoveClassification.BLUNDER: chess.pgn.NAG_BLUNDER,
}

_VARIATION_LABELS = (MoveClassification.INACCURACY, MoveClassification.MISTAKE, MoveClassification.BLUNDER)
SHORT_PV_LEN = 8


def to_pov_score(evaluation: "Evaluation", turn: chess.Color) -> Optional[chess.engine.PovScore]:
    """Converts a side-to-move evaluation into a `python-chess` score, if it has one."""
    if evaluation.mate_in is not None:
        if evaluation.mate_in == 0:
            return None
        return chess.engine.PovScore(chess.engine.Mate(evaluation.mate_in), turn)
    if evaluation.centipawns is not None:
        return chess.engine.PovScore(chess.engine.Cp(evaluation.centipawns), turn)
    return None


def _legal_prefix(board: chess.Board, uci_moves: Sequence[str]) -> List[chess.Move]:
    """Returns the leading moves of a variation that are legal in sequence."""
    board = board.copy(stack=False)
    moves: List[chess.Move] = []
    for token in uci_moves[:SHORT_PV_LEN]:
        try:
            move = chess.Move.from_uci(token)
        except ValueError:
            break
        if not board.is_legal(move):
            break
        board.push(move)
        moves.append(move)
    return moves


def _review_comment(label: Optional[MoveClassification], loss: int, best: str, played: str) -> str:
    parts = []
    if label is not None:
        parts.append(f"{CLASSIFICATION_SYMBOLS[label]} {label.value.capitalize()}")
    parts.append(f"loss {loss}")
    if best and best != played:
        parts.append(f"best {best}")
    return ", ".join(parts)


def annotate_game(game: chess.pgn.Game, snapshot: "AnalysisSnapshot") -> chess.pgn.Game:
    """
    Annotates the main line of `game` in place from an analysis snapshot.

    Args:
        game: The game the snapshot was produced for.
        snapshot: The analysis results, keyed by zero-based move index. The
            engine line for the position before a weak move is added as a
            side line.

    Returns:
        The same game object, for chaining.
    """
    annotated = 0
    for index, node in enumerate(game.mainline()):
        if index not in snapshot.centipawn_loss:
            continue
        label = snapshot.classifications.get(index)
        best = snapshot.best_moves.get(index, "")

        if label in CLASSIFICATION_NAGS:
            node.nags.add(CLASSIFICATION_NAGS[label])

        evaluation = snapshot.evaluations.get(index)
        if evaluation is not None:
            board = node.board()
            score = to_pov_score(evaluation, board.turn)
            if score is not None:
                node.set_eval(score, depth=evaluation.depth or None)

        review = _review_comment(label, snapshot.centipawn_loss[index], best, node.move.uci())
        node.comment = f"{node.comment} {review}".strip() if node.comment else review

        pv = snapshot.principal_variations.get(index)
        if label in _VARIATION_LABELS and pv and node.parent is not None:
            variation = _legal_prefix(node.parent.board(), pv)
            if variation and variation[0] != node.move and not node.parent.has_variation(variation[0]):
                node.parent.add_line(variation)
        annotated += 1

    logger.debug("Annotated game.", annotated_moves=annotated)
    return game
