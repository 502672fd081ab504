# game_review/orchestration/evaluation_pass.py
"""
Defines the first stage of a game analysis: evaluating every position.

For each played move the engine is asked for one line on the position before
the move and one on the position after it. Requests are issued strictly one
after another so the engine never has more than one outstanding search.
"""

from typing import List, Optional, Sequence, TYPE_CHECKING

import structlog

from game_review.config.settings import PassSettings
from game_review.exceptions import EngineError, EvaluationPassError
from game_review.tracing import trace_pass
from game_review.types import Evaluation, PositionEvaluations

if TYPE_CHECKING:
    from game_review.types import EngineService, ParsedMove, ProgressCallback

logger = structlog.get_logger(__name__)


class PositionEvaluationPass:
    """Collects the before/after evaluations for every move of a game."""

    def __init__(self, engine: "EngineService", settings: Optional[PassSettings] = None):
        self._engine = engine
        self._settings = settings or PassSettings()

    async def _evaluate(self, fen: str) -> Evaluation:
        lines = await self._engine.evaluate(
            fen,
            depth=self._settings.primary_depth,
            multipv=1,
            timeout_ms=self._settings.primary_timeout_ms,
        )
        return lines[0] if lines else Evaluation()

    @trace_pass("evaluation_pass")
    async def run(
        self,
        moves: Sequence["ParsedMove"],
        progress_callback: Optional["ProgressCallback"] = None,
    ) -> PositionEvaluations:
        """
        Evaluates the positions before and after each move.

        Args:
            moves: The moves of the game, in play order.
            progress_callback: Awaited with a 0-100 percentage after each move.

        Returns:
            Two lists, aligned with `moves`, of before-move and after-move evaluations.

        Raises:
            EvaluationPassError: If any request fails. The engine error is chained
                as `__cause__` and the evaluations gathered so far are attached.
        """
        before: List[Evaluation] = []
        after: List[Evaluation] = []
        total = len(moves)

        for move in moves:
            try:
                eval_before = await self._evaluate(move.fen_before)
                eval_after = await self._evaluate(move.fen_after)
            except EngineError as e:
                logger.warning(
                    "Evaluation pass aborted.", move_index=move.index,
                    error_type=type(e).__name__, error=str(e),
                )
                raise EvaluationPassError(
                    f"Evaluation failed at move {move.index} ({move.san}): {e}",
                    evaluations_before=before,
                    evaluations_after=after,
                ) from e

            before.append(eval_before)
            after.append(eval_after)
            logger.debug(
                "Move evaluated.", move_index=move.index, san=move.san,
                depth_before=eval_before.depth, depth_after=eval_after.depth,
            )
            if progress_callback:
                await progress_callback(len(before) / total * 100)

        return PositionEvaluations(before=before, after=after)
