# game_review/core/heuristics.py
"""
Contains a collection of concrete `Heuristic` implementations.

Each heuristic is a single, composable rule in the move classification
pipeline, adhering to the `Heuristic` protocol defined in `types.py`. The
chain is split into three groups:

1. Settling rules (terminal, forced, book) that fix the verdict outright.
   A settled result is never touched by later heuristics.
2. The baseline ladder that maps centipawn and win-chance loss to a label.
3. Override rules (brilliant, great) that may upgrade the baseline verdict.
"""

from dataclasses import replace
from typing import TYPE_CHECKING

from game_review.core.chess_utils import normalize_evaluation
from game_review.types import Heuristic, MoveClassification

if TYPE_CHECKING:
    from game_review.types import ClassificationResult, MoveAnalysisContext


class TerminalMoveHeuristic(Heuristic):
    """A move that mates or otherwise ends the game is always 'Best' with no loss."""
    def apply(
        self, context: "MoveAnalysisContext", result: "ClassificationResult"
    ) -> "ClassificationResult":
        if result.is_settled:
            return result
        if context.characteristics.delivers_mate or context.characteristics.ends_game:
            return replace(result, classification=MoveClassification.BEST,
                           centipawn_loss=0, is_settled=True)
        return result


class ForcedMoveHeuristic(Heuristic):
    """The only legal move in a position is 'Forced' regardless of its loss."""
    def apply(
        self, context: "MoveAnalysisContext", result: "ClassificationResult"
    ) -> "ClassificationResult":
        if result.is_settled:
            return result
        if context.is_only_legal_move:
            return replace(result, classification=MoveClassification.FORCED,
                           centipawn_loss=0, is_settled=True)
        return result


class BookMoveHeuristic(Heuristic):
    """A cheap move inside the opening horizon is treated as theory."""
    def apply(
        self, context: "MoveAnalysisContext", result: "ClassificationResult"
    ) -> "ClassificationResult":
        if result.is_settled:
            return result
        max_cpl = context.settings.classification_thresholds.book_max_cpl
        if context.move.ply <= context.opening_ply_limit and result.centipawn_loss <= max_cpl:
            return replace(result, classification=MoveClassification.BOOK, is_settled=True)
        return result


class WinChanceLadderHeuristic(Heuristic):
    """
    The baseline heuristic that assigns a classification from the CPL and
    win-chance thresholds, evaluated from the most severe tier downwards.

    Blunders and mistakes are softened when the mover was already clearly
    lost before the move. There is deliberately no mirror-image softening for
    a mover who was already clearly winning.
    """
    def apply(
        self, context: "MoveAnalysisContext", result: "ClassificationResult"
    ) -> "ClassificationResult":
        """
        Applies classification based on configured thresholds.

        Args:
            context: The context of the move being analyzed.
            result: The current classification result to be modified.

        Returns:
            An updated ClassificationResult with a baseline `classification`.
        """
        if result.is_settled:
            return result

        t = context.settings.classification_thresholds
        cpl = context.scores.centipawn_loss
        wc_loss = context.scores.win_chance_loss
        score_before = context.scores.before

        if cpl > t.blunder or wc_loss > t.blunder_win_chance:
            classification = MoveClassification.BLUNDER
            if score_before < t.lost_position_blunder_eval:
                if cpl <= t.lost_position_good_max_cpl:
                    classification = MoveClassification.GOOD
                elif cpl <= t.blunder:
                    classification = MoveClassification.MISTAKE
        elif cpl > t.mistake or wc_loss > t.mistake_win_chance:
            classification = MoveClassification.MISTAKE
            if score_before < t.lost_position_mistake_eval and cpl <= t.lost_position_inaccuracy_max_cpl:
                classification = MoveClassification.INACCURACY
        elif cpl > t.inaccuracy or wc_loss > t.inaccuracy_win_chance:
            classification = MoveClassification.INACCURACY
        elif cpl > t.good:
            classification = MoveClassification.GOOD
        elif cpl > 0:
            classification = MoveClassification.EXCELLENT
        else:
            classification = MoveClassification.BEST if context.is_preferred else MoveClassification.EXCELLENT

        # Playing the engine's own choice is at least 'Best' when it costs little.
        if context.is_preferred and cpl <= t.best_max_cpl:
            classification = MoveClassification.BEST

        return replace(result, classification=classification)


class BrilliantMoveHeuristic(Heuristic):
    """
    An override heuristic that identifies 'Brilliant' (!!) moves.

    It looks for a sound material sacrifice: the engine's own choice, giving
    up material on balance, from a position that was neither lost nor already
    decided, and which does not leave the mover lost.
    """
    def apply(
        self, context: "MoveAnalysisContext", result: "ClassificationResult"
    ) -> "ClassificationResult":
        if result.is_settled or not context.is_preferred:
            return result

        s = context.settings.brilliant_move
        scores = context.scores
        if (
            context.characteristics.net_sacrifice >= s.min_net_sacrifice
            and scores.centipawn_loss <= s.max_cpl
            and s.min_eval_before < scores.before < s.max_eval_before
            and scores.after > s.min_eval_after
        ):
            return replace(result, classification=MoveClassification.BRILLIANT)

        return result


class GreatMoveHeuristic(Heuristic):
    """
    An override heuristic that identifies 'Great' (!) moves: the engine's
    choice in a position where the second-best line is much worse, i.e. the
    only good move.
    """
    def apply(
        self, context: "MoveAnalysisContext", result: "ClassificationResult"
    ) -> "ClassificationResult":
        # A move cannot be both Brilliant and Great. Brilliant takes precedence.
        if result.is_settled or result.classification == MoveClassification.BRILLIANT:
            return result
        if not context.is_preferred or context.second_best_eval is None:
            return result

        s = context.settings.great_move
        scores = context.scores
        if scores.centipawn_loss > s.max_cpl:
            return result

        second_best_score = -normalize_evaluation(context.second_best_eval, context.settings)
        if second_best_score - scores.after >= s.min_second_best_gap and scores.before > s.min_eval_before:
            return replace(result, classification=MoveClassification.GREAT)

        return result
