# game_review/core/summary_aggregator.py
"""
Provides a pure function to create a final, game-level summary.

This module contains the business logic for game-wide aggregations. It takes
a parsed game and the analysis snapshot produced for it and transforms them
into a `GameSummary`, calculating per-player classification counts, average
centipawn loss and an accuracy percentage.
"""

import math
import statistics
from collections import Counter
from typing import List, Optional, TYPE_CHECKING

from game_review.types import GameSummary, MoveClassification, PlayerStats

if TYPE_CHECKING:
    from game_review.config.settings import AnalysisSettings
    from game_review.types import AnalysisSnapshot, ParsedGame, ParsedMove

# The order in which classifications are listed in reports.
CLASSIFICATION_DISPLAY_ORDER: List[MoveClassification] = list(MoveClassification)


def _calculate_accuracy(acpl: Optional[float], settings: "AnalysisSettings") -> Optional[float]:
    """
    Calculates an accuracy percentage from Average Centipawn Loss (ACPL).

    Uses the formula `a * e^(b * acpl) + c`, clamped to 0-100 and rounded to
    one decimal place.
    """
    if acpl is None or acpl < 0:
        return None
    consts = settings.accuracy
    raw_accuracy = consts.const_a * math.exp(consts.const_b * acpl) + consts.const_c
    return round(max(0.0, min(100.0, raw_accuracy)), 1)


def _player_stats(
    moves: List["ParsedMove"], snapshot: "AnalysisSnapshot", settings: "AnalysisSettings"
) -> PlayerStats:
    cpls = [snapshot.centipawn_loss[m.index] for m in moves if m.index in snapshot.centipawn_loss]
    acpl = round(statistics.mean(cpls), 2) if cpls else None
    counts = Counter(
        snapshot.classifications[m.index] for m in moves
        if snapshot.classifications.get(m.index) is not None
    )
    return PlayerStats(
        acpl=acpl,
        accuracy_percent=_calculate_accuracy(acpl, settings),
        move_counts={label: counts.get(label, 0) for label in CLASSIFICATION_DISPLAY_ORDER},
    )


def aggregate_game_summary(
    parsed_game: "ParsedGame", snapshot: "AnalysisSnapshot", settings: "AnalysisSettings"
) -> GameSummary:
    """
    Aggregates the analysis of one game into a `GameSummary`.

    Moves without a classification (e.g. after an aborted run) are left out
    of the averages and counts.

    Args:
        parsed_game: The game that was analyzed.
        snapshot: The analysis snapshot produced for it.
        settings: The application's analysis settings.

    Returns:
        A `GameSummary` with one `PlayerStats` per side.
    """
    white_moves = [m for m in parsed_game.moves if m.is_white]
    black_moves = [m for m in parsed_game.moves if not m.is_white]

    return GameSummary(
        game_id=parsed_game.game_id,
        metadata=parsed_game.metadata,
        white=_player_stats(white_moves, snapshot, settings),
        black=_player_stats(black_moves, snapshot, settings),
        analyzed_moves=len(snapshot.classifications),
        total_moves=len(parsed_game.moves),
    )
