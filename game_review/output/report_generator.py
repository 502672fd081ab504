# game_review/output/report_generator.py
"""
Provides a service for writing game review summaries to a CSV file, and a
plain-text rendering of a single game's review for console output.

This module contains the `ReportGenerator`, a "dumb" I/O service that is
responsible only for formatting and writing data. It contains no business
logic and relies on the core application to provide it with pre-structured
`GameSummary` objects.
"""

import csv
from pathlib import Path
from typing import Any, Dict, List, TYPE_CHECKING

import structlog

from game_review.core.summary_aggregator import CLASSIFICATION_DISPLAY_ORDER
from game_review.exceptions import ReportGenerationError
from game_review.output.pgn_annotator import CLASSIFICATION_SYMBOLS
from game_review.types import GameSummary, PlayerStats

if TYPE_CHECKING:
    from game_review.types import AnalysisSnapshot, ParsedGame

logger = structlog.get_logger(__name__)


def _count_header(side: str, label) -> str:
    return f"{side}_{label.value.capitalize()}"


class ReportGenerator:
    """A stateless service that writes game summaries to report files."""

    _STATIC_HEADERS: List[str] = [
        "GameID", "White", "Black", "Result", "Opening", "ECO", "Event", "Site", "Date",
    ]
    _PLAYER_METRIC_HEADERS: List[str] = [
        "White_ACPL", "White_Accuracy", "Black_ACPL", "Black_Accuracy",
    ]
    _COUNT_HEADERS: List[str] = [
        _count_header(side, label)
        for side in ("White", "Black")
        for label in CLASSIFICATION_DISPLAY_ORDER
    ]
    _GAME_METRIC_HEADERS: List[str] = ["Analyzed_Moves", "Total_Moves"]

    _CSV_HEADERS: List[str] = (
        _STATIC_HEADERS + _PLAYER_METRIC_HEADERS + _COUNT_HEADERS + _GAME_METRIC_HEADERS
    )

    @staticmethod
    def _player_columns(side: str, stats: PlayerStats) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            f"{side}_ACPL": f"{stats.acpl:.2f}" if stats.acpl is not None else "N/A",
            f"{side}_Accuracy": stats.accuracy_percent if stats.accuracy_percent is not None else "N/A",
        }
        for label in CLASSIFICATION_DISPLAY_ORDER:
            row[_count_header(side, label)] = stats.move_counts.get(label, 0)
        return row

    def generate_csv_report_from_summaries(self, summaries: List[GameSummary], output_path: Path) -> None:
        """
        Generates and writes a CSV summary report from a list of GameSummary objects.

        Args:
            summaries: A list of completed `GameSummary` objects.
            output_path: The `pathlib.Path` to write the final CSV report to.

        Raises:
            ReportGenerationError: If the CSV file cannot be written.
        """
        if not summaries:
            logger.warning("No completed summaries to generate a report for. Skipping.")
            return

        report_data: List[Dict[str, Any]] = []
        for summary in summaries:
            m = summary.metadata
            row: Dict[str, Any] = {
                "GameID": summary.game_id, "White": m.white_player, "Black": m.black_player,
                "Result": m.result, "Opening": m.opening or "", "ECO": m.eco or "",
                "Event": m.event, "Site": m.site, "Date": m.date,
                "Analyzed_Moves": summary.analyzed_moves, "Total_Moves": summary.total_moves,
            }
            row.update(self._player_columns("White", summary.white))
            row.update(self._player_columns("Black", summary.black))
            report_data.append(row)

        logger.info("Writing CSV report.", path=str(output_path), num_rows=len(report_data))
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with output_path.open("w", newline="", encoding="utf-8") as csvfile:
                writer = csv.DictWriter(csvfile, fieldnames=self._CSV_HEADERS, extrasaction='ignore')
                writer.writeheader()
                writer.writerows(report_data)
            logger.info("Successfully generated CSV report.", path=str(output_path))
        except OSError as e:
            raise ReportGenerationError(f"Failed to write CSV report to {output_path}") from e

    def render_text_report(
        self, parsed_game: "ParsedGame", snapshot: "AnalysisSnapshot", summary: GameSummary
    ) -> str:
        """Renders a move-by-move review followed by per-player totals."""
        m = summary.metadata
        lines = [f"{m.white_player} vs {m.black_player} ({m.result}) - {m.event}, {m.date}"]
        if m.opening or m.eco:
            lines.append(f"Opening: {m.eco or ''} {m.opening or ''}".rstrip())
        if snapshot.error:
            lines.append(f"Analysis incomplete: {snapshot.error}")
        lines.append("")

        for move in parsed_game.moves:
            label = snapshot.classifications.get(move.index)
            if move.index not in snapshot.centipawn_loss:
                continue
            prefix = f"{(move.ply + 1) // 2}." if move.is_white else f"{(move.ply + 1) // 2}..."
            symbol = CLASSIFICATION_SYMBOLS.get(label, "") if label else ""
            best = snapshot.best_moves.get(move.index) or "-"
            lines.append(
                f"{prefix:<6}{move.san:<8}{symbol:<3}{label.value if label else '-':<11}"
                f"loss {snapshot.centipawn_loss[move.index]:>5}  best {best:<6}"
                f"white win {snapshot.win_chances.get(move.index, 50.0):5.1f}%"
            )

        lines.append("")
        for side, name, stats in (("White", m.white_player, summary.white), ("Black", m.black_player, summary.black)):
            acpl = f"{stats.acpl:.2f}" if stats.acpl is not None else "N/A"
            accuracy = f"{stats.accuracy_percent:.1f}%" if stats.accuracy_percent is not None else "N/A"
            counts = ", ".join(
                f"{label.value} {count}" for label, count in stats.move_counts.items() if count
            )
            lines.append(f"{side} ({name}): ACPL {acpl}, accuracy {accuracy}; {counts or 'no moves'}")
        return "\n".join(lines)
