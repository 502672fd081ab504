# tests/output/test_pgn_annotator.py
import chess
import chess.engine
import chess.pgn

from game_review.output.pgn_annotator import annotate_game, to_pov_score
from game_review.types import AnalysisSnapshot, Evaluation, MoveClassification


def _snapshot():
    return AnalysisSnapshot(
        classifications={0: MoveClassification.BOOK, 2: MoveClassification.INACCURACY,
                         3: MoveClassification.FORCED},
        centipawn_loss={0: 5, 2: 45, 3: 0},
        best_moves={0: "e2e4", 2: "d2d4", 3: "g7g6"},
        evaluations={0: Evaluation(centipawns=-25, depth=18), 2: Evaluation(centipawns=-5, depth=18),
                     3: Evaluation(mate_in=0)},
        principal_variations={2: ("d2d4", "e7e5", "zz99")},
    )


def test_to_pov_score():
    assert to_pov_score(Evaluation(centipawns=40), chess.BLACK).white() == chess.engine.Cp(-40)
    assert to_pov_score(Evaluation(mate_in=2), chess.WHITE).white() == chess.engine.Mate(2)
    assert to_pov_score(Evaluation(mate_in=0), chess.WHITE) is None
    assert to_pov_score(Evaluation(), chess.WHITE) is None


def test_annotate_game_adds_nags_evals_and_comments(scholars_opening_game):
    game = annotate_game(scholars_opening_game, _snapshot())
    e4, f6, qh5, g6 = game.mainline()

    assert not e4.nags
    assert "📖 Book, loss 5" in e4.comment
    assert "best" not in e4.comment
    assert e4.eval().white() == chess.engine.Cp(25)

    assert f6.comment == ""
    assert not f6.nags

    assert qh5.nags == {chess.pgn.NAG_DUBIOUS_MOVE}
    assert "?! Inaccuracy, loss 45, best d2d4" in qh5.comment
    assert qh5.eval().white() == chess.engine.Cp(5)
    assert qh5.eval_depth() == 18

    assert "Forced, loss 0" in g6.comment
    assert g6.eval() is None


def test_weak_move_gets_engine_line_as_variation(scholars_opening_game):
    game = annotate_game(scholars_opening_game, _snapshot())
    after_f6 = game.next().next()

    assert len(after_f6.variations) == 2
    side_line = after_f6.variations[1]
    assert side_line.move == chess.Move.from_uci("d2d4")
    # The illegal tail of the engine line is dropped.
    assert [n.move.uci() for n in side_line.mainline()] == ["e7e5"]
