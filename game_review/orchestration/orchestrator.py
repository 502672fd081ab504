# game_review/orchestration/orchestrator.py
"""
The top-level analysis orchestrator.

`GameReviewOrchestrator` drives one game through the two analysis passes:
pass 1 collects the before/after evaluation of every move, pass 2 classifies
each move, asking the engine for a second ranked line only where a move could
be "great". Results accumulate in an `AnalysisSnapshot` that is republished
after every classified move so consumers can render incrementally.
"""

import asyncio
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

import structlog

from game_review.core.chess_utils import count_legal_moves, white_perspective_cp, win_chance
from game_review.exceptions import EngineError, EvaluationPassError
from game_review.orchestration.evaluation_pass import PositionEvaluationPass
from game_review.tracing import CorrelationID, trace_pass
from game_review.types import AnalysisSnapshot, Evaluation, MoveClassification
from game_review.utils.metrics import (ANALYSIS_RUNS_TOTAL,
                                       MOVES_CLASSIFIED_TOTAL,
                                       SECONDARY_LOOKUP_FAILURES_TOTAL)

if TYPE_CHECKING:
    from game_review.config.settings import AnalysisSettings
    from game_review.core.move_classifier import MoveClassifier
    from game_review.types import (EngineService, ParsedMove,
                                   PositionEvaluations, ProgressCallback,
                                   SnapshotCallback, UciMove)

logger = structlog.get_logger(__name__)


@dataclass
class _AnalysisRun:
    """The mutable result maps of one run; published as immutable snapshots."""
    correlation: CorrelationID
    on_progress: Optional["ProgressCallback"] = None
    on_snapshot: Optional["SnapshotCallback"] = None
    snapshot: AnalysisSnapshot = field(default_factory=AnalysisSnapshot)
    classifications: Dict[int, Optional[MoveClassification]] = field(default_factory=dict)
    centipawn_loss: Dict[int, int] = field(default_factory=dict)
    best_moves: Dict[int, "UciMove"] = field(default_factory=dict)
    win_chances: Dict[int, float] = field(default_factory=dict)
    evaluations: Dict[int, Evaluation] = field(default_factory=dict)
    principal_variations: Dict[int, Tuple["UciMove", ...]] = field(default_factory=dict)

    def build_snapshot(self, **status) -> AnalysisSnapshot:
        return replace(
            self.snapshot,
            classifications=dict(self.classifications),
            centipawn_loss=dict(self.centipawn_loss),
            best_moves=dict(self.best_moves),
            win_chances=dict(self.win_chances),
            evaluations=dict(self.evaluations),
            principal_variations=dict(self.principal_variations),
            **status,
        )


class GameReviewOrchestrator:
    """
    Analyzes one game at a time against a single engine.

    Starting a new analysis cancels the one in progress, so the engine is
    never shared between two runs.
    """

    def __init__(
        self,
        engine: "EngineService",
        classifier: "MoveClassifier",
        evaluation_pass: Optional[PositionEvaluationPass] = None,
    ):
        self._engine = engine
        self._classifier = classifier
        self._settings: "AnalysisSettings" = classifier.settings
        self._evaluation_pass = evaluation_pass or PositionEvaluationPass(engine, self._settings.passes)
        self._current = _AnalysisRun(correlation=CorrelationID(run_id="idle", game_id="none"))
        self._active_task: Optional["asyncio.Task[AnalysisSnapshot]"] = None

    @property
    def snapshot(self) -> AnalysisSnapshot:
        return self._current.snapshot

    @property
    def progress(self) -> float:
        return self._current.snapshot.progress

    @property
    def is_analyzing(self) -> bool:
        return self._current.snapshot.is_analyzing

    async def analyze_game(
        self,
        moves: Sequence["ParsedMove"],
        opening_ply_limit: int,
        on_progress: Optional["ProgressCallback"] = None,
        on_snapshot: Optional["SnapshotCallback"] = None,
        game_id: str = "adhoc",
    ) -> AnalysisSnapshot:
        """
        Runs both analysis passes over a game and returns the final snapshot.

        Engine failures during pass 1 do not raise: the run stops, and the
        returned snapshot carries the error with `is_complete` left False. A
        run superseded by a newer `analyze_game` call returns its partial
        snapshot with no error.

        Args:
            moves: The game's moves, in play order.
            opening_ply_limit: Plies up to which cheap moves count as book moves.
            on_progress: Awaited with the overall 0-100 progress.
            on_snapshot: Awaited with a fresh snapshot after each classified move.
            game_id: Identifies the game in the run's log context.
        """
        # Another caller may start a run while this one waits; the new task is
        # only created once no run is active, with no await in between.
        while self._active_task is not None and not self._active_task.done():
            await self.cancel()

        run = _AnalysisRun(
            correlation=CorrelationID.new(game_id), on_progress=on_progress, on_snapshot=on_snapshot
        )
        self._current = run
        task = asyncio.create_task(self._run(run, list(moves), opening_ply_limit))
        self._active_task = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and not (current and current.cancelling()):
                return run.snapshot
            raise
        finally:
            if self._active_task is task:
                self._active_task = None

    def cancel_nowait(self) -> None:
        """Requests cancellation of the run in progress without waiting for it."""
        task = self._active_task
        if task is None or task.done():
            return
        logger.info("Cancelling active analysis run.", run=self._current.correlation.short_id)
        task.cancel()

    async def cancel(self) -> None:
        """Cancels the run in progress, if any, and waits for it to wind down."""
        task = self._active_task
        if task is None or task.done():
            return
        self.cancel_nowait()
        await asyncio.gather(task, return_exceptions=True)

    async def _run(self, run: _AnalysisRun, moves: List["ParsedMove"], opening_ply_limit: int) -> AnalysisSnapshot:
        with structlog.contextvars.bound_contextvars(**run.correlation.as_dict()):
            if not moves:
                run.snapshot = run.build_snapshot(progress=100.0, is_complete=True)
                await self._publish(run)
                return run.snapshot

            logger.info("Starting game analysis.", num_moves=len(moves), opening_ply_limit=opening_ply_limit)
            run.snapshot = run.build_snapshot(is_analyzing=True)
            await self._publish(run)

            status = "failed"
            try:
                evaluations = await self._evaluation_pass.run(
                    moves, progress_callback=lambda pct: self._report_progress(run, pct)
                )
                await self._classification_pass(run, moves, evaluations, opening_ply_limit)
                run.snapshot = run.build_snapshot(progress=100.0, is_complete=True)
                status = "completed"
            except EvaluationPassError as e:
                if e.was_cancelled:
                    status = "cancelled"
                    logger.info("Game analysis was cancelled.", evaluated_moves=len(e.evaluations_before))
                else:
                    logger.error("Game analysis failed.", error=str(e), evaluated_moves=len(e.evaluations_before))
                    run.snapshot = run.build_snapshot(error=str(e))
            except asyncio.CancelledError:
                status = "cancelled"
                logger.info("Game analysis run was superseded.")
                raise
            finally:
                run.snapshot = replace(run.snapshot, is_analyzing=False)
                ANALYSIS_RUNS_TOTAL.labels(status=status).inc()
                logger.info("Game analysis finished.", status=status, classified=len(run.classifications))

            await self._publish(run)
            return run.snapshot

    @trace_pass("classification_pass")
    async def _classification_pass(
        self,
        run: _AnalysisRun,
        moves: List["ParsedMove"],
        evaluations: "PositionEvaluations",
        opening_ply_limit: int,
    ) -> None:
        for move, eval_before, eval_after in zip(moves, evaluations.before, evaluations.after):
            preferred_move = eval_before.preferred_move
            second_best_eval = None
            if preferred_move and move.uci == preferred_move:
                second_best_eval = await self._lookup_second_best(move)

            context = self._classifier.build_context(
                move,
                eval_before,
                eval_after,
                preferred_move,
                opening_ply_limit,
                second_best_eval=second_best_eval,
                is_only_legal_move=count_legal_moves(move.fen_before) <= 1,
            )
            result = self._classifier.classify_move(context)

            # eval_after is from the opponent's side, i.e. Black's when White moved.
            white_cp = white_perspective_cp(eval_after, white_to_move=not move.is_white, settings=self._settings)

            run.classifications[move.index] = result.classification
            run.centipawn_loss[move.index] = result.centipawn_loss
            run.best_moves[move.index] = preferred_move or ""
            run.win_chances[move.index] = win_chance(white_cp, self._settings)
            run.evaluations[move.index] = eval_after
            run.principal_variations[move.index] = eval_before.principal_variation
            if result.classification is not None:
                MOVES_CLASSIFIED_TOTAL.labels(classification=result.classification.value).inc()
            logger.debug(
                "Move classified.", move_index=move.index, san=move.san,
                classification=result.classification, centipawn_loss=result.centipawn_loss,
            )

            run.snapshot = run.build_snapshot()
            await self._publish(run)

    async def _lookup_second_best(self, move: "ParsedMove") -> Optional[Evaluation]:
        """Fetches the second ranked line for the pre-move position; failures yield None."""
        passes = self._settings.passes
        try:
            lines = await self._engine.evaluate(
                move.fen_before,
                depth=passes.secondary_depth,
                multipv=2,
                timeout_ms=passes.secondary_timeout_ms,
            )
        except EngineError as e:
            SECONDARY_LOOKUP_FAILURES_TOTAL.inc()
            logger.debug("Second-best lookup failed, skipping.", move_index=move.index, error=str(e))
            return None
        if len(lines) > 1 and lines[1].has_score:
            return lines[1]
        return None

    async def _report_progress(self, run: _AnalysisRun, percent: float) -> None:
        run.snapshot = replace(run.snapshot, progress=percent)
        if run.on_progress:
            await run.on_progress(percent)

    async def _publish(self, run: _AnalysisRun) -> None:
        if run.on_snapshot:
            await run.on_snapshot(run.snapshot)
        if run.on_progress and run.snapshot.progress == 100.0 and not run.snapshot.is_analyzing:
            await run.on_progress(100.0)
