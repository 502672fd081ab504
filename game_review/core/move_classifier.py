# game_review/core/move_classifier.py
"""
Contains the central classification engine of the application.

This module provides the `MoveClassifier`, a pure component that runs a
classification pipeline by executing a chain of composable `Heuristic` objects.
This "Chain of Responsibility" pattern keeps every rule of the decision
procedure in its own class, while the order of the chain encodes the
precedence between them.
"""
from typing import List, Optional, TYPE_CHECKING

from game_review.config.settings import AnalysisSettings
from game_review.core.chess_utils import normalize_evaluation, win_chance
from game_review.core.heuristics import (BookMoveHeuristic,
                                         BrilliantMoveHeuristic,
                                         ForcedMoveHeuristic,
                                         GreatMoveHeuristic,
                                         TerminalMoveHeuristic,
                                         WinChanceLadderHeuristic)
from game_review.core.move_characterizer import characterize_move
from game_review.types import (ClassificationResult, MoveAnalysisContext,
                               MoveScores)

if TYPE_CHECKING:
    from game_review.types import Evaluation, Heuristic, ParsedMove, UciMove


def compute_move_scores(
    eval_before: "Evaluation", eval_after: "Evaluation", settings: AnalysisSettings
) -> MoveScores:
    """
    Derives the mover's scores and losses from a before/after evaluation pair.

    The after-move evaluation is from the opponent's perspective, so it is
    negated to express it from the mover's side.
    """
    score_before = normalize_evaluation(eval_before, settings)
    score_after = -normalize_evaluation(eval_after, settings)
    return MoveScores(
        before=score_before,
        after=score_after,
        centipawn_loss=round(max(0, score_before - score_after)),
        win_chance_loss=win_chance(score_before, settings) - win_chance(score_after, settings),
    )


class MoveClassifier:
    """
    A stateless classifier that runs a chain of heuristics to classify a single chess move.

    Settling rules run first, then the baseline ladder, then the overrides.
    """

    def __init__(self, settings: Optional[AnalysisSettings] = None):
        """Initializes the classifier and defines the ordered heuristic chain."""
        self._settings = settings or AnalysisSettings()
        self._heuristic_chain: List["Heuristic"] = [
            TerminalMoveHeuristic(),      # 1. Settle: mate / game over is always best
            ForcedMoveHeuristic(),        # 2. Settle: only legal move
            BookMoveHeuristic(),          # 3. Settle: cheap move inside the opening horizon
            WinChanceLadderHeuristic(),   # 4. Baseline classification
            BrilliantMoveHeuristic(),     # 5. Override: sound sacrifice (!!)
            GreatMoveHeuristic(),         # 6. Override: only good move (!)
        ]

    @property
    def settings(self) -> AnalysisSettings:
        return self._settings

    def build_context(
        self,
        move: "ParsedMove",
        eval_before: "Evaluation",
        eval_after: "Evaluation",
        preferred_move: Optional["UciMove"],
        opening_ply_limit: int,
        second_best_eval: Optional["Evaluation"] = None,
        is_only_legal_move: bool = False,
    ) -> MoveAnalysisContext:
        """Assembles the `MoveAnalysisContext` for a single move."""
        return MoveAnalysisContext(
            move=move,
            eval_before=eval_before,
            eval_after=eval_after,
            preferred_move=preferred_move,
            opening_ply_limit=opening_ply_limit,
            is_only_legal_move=is_only_legal_move,
            characteristics=characterize_move(move),
            scores=compute_move_scores(eval_before, eval_after, self._settings),
            settings=self._settings,
            second_best_eval=second_best_eval,
        )

    def classify_move(self, context: MoveAnalysisContext) -> ClassificationResult:
        """
        Runs the full classification pipeline for a single move.

        Args:
            context: A `MoveAnalysisContext` object containing all necessary data
                     for the classification.

        Returns:
            A final `ClassificationResult` object after all heuristics have been applied.
        """
        current_result = ClassificationResult(
            classification=None,
            centipawn_loss=context.scores.centipawn_loss,
        )

        for heuristic in self._heuristic_chain:
            current_result = heuristic.apply(context, current_result)

        return current_result


def classify(
    move: "ParsedMove",
    eval_before: "Evaluation",
    eval_after: "Evaluation",
    preferred_move: Optional["UciMove"],
    opening_ply_limit: int,
    second_best_eval: Optional["Evaluation"] = None,
    is_only_legal_move: bool = False,
    settings: Optional[AnalysisSettings] = None,
) -> ClassificationResult:
    """Classifies one move with a throwaway `MoveClassifier`."""
    classifier = MoveClassifier(settings)
    context = classifier.build_context(
        move, eval_before, eval_after, preferred_move, opening_ply_limit,
        second_best_eval=second_best_eval, is_only_legal_move=is_only_legal_move,
    )
    return classifier.classify_move(context)
