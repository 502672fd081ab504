# tests/output/test_report_generator.py
import csv

import pytest

from game_review.config.settings import AnalysisSettings
from game_review.core.summary_aggregator import aggregate_game_summary
from game_review.exceptions import ReportGenerationError
from game_review.output.report_generator import ReportGenerator
from game_review.types import AnalysisSnapshot, MoveClassification


@pytest.fixture
def reviewed_game(scholars_opening_parsed):
    snapshot = AnalysisSnapshot(
        classifications={0: MoveClassification.BOOK, 1: MoveClassification.BOOK,
                         2: MoveClassification.INACCURACY, 3: MoveClassification.FORCED},
        centipawn_loss={0: 5, 1: 25, 2: 45, 3: 0},
        best_moves={0: "e2e4", 1: "e7e5", 2: "d2d4", 3: "g7g6"},
        win_chances={0: 52.3, 1: 54.6, 2: 50.5, 3: 75.2},
        progress=100.0, is_complete=True,
    )
    summary = aggregate_game_summary(scholars_opening_parsed, snapshot, AnalysisSettings())
    return scholars_opening_parsed, snapshot, summary


def test_csv_report(tmp_path, reviewed_game):
    _, _, summary = reviewed_game
    output = tmp_path / "reports" / "summary.csv"

    ReportGenerator().generate_csv_report_from_summaries([summary], output)

    with output.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        rows = list(reader)
    assert "White_Brilliant" in reader.fieldnames
    assert "Black_Forced" in reader.fieldnames
    assert len(rows) == 1
    row = rows[0]
    assert row["GameID"] == "lichess_AbCdEfGh"
    assert row["ECO"] == "A00"
    assert row["White_ACPL"] == "25.00"
    assert row["Black_ACPL"] == "12.50"
    assert row["White_Inaccuracy"] == "1"
    assert row["Black_Forced"] == "1"
    assert row["White_Blunder"] == "0"
    assert (row["Analyzed_Moves"], row["Total_Moves"]) == ("4", "4")


def test_csv_report_without_summaries_writes_nothing(tmp_path):
    output = tmp_path / "summary.csv"
    ReportGenerator().generate_csv_report_from_summaries([], output)
    assert not output.exists()


def test_csv_report_unwritable_path(tmp_path, reviewed_game):
    _, _, summary = reviewed_game
    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(ReportGenerationError):
        ReportGenerator().generate_csv_report_from_summaries([summary], blocker / "summary.csv")


def test_text_report(reviewed_game):
    parsed, snapshot, summary = reviewed_game
    text = ReportGenerator().render_text_report(parsed, snapshot, summary)

    assert text.startswith("Alice vs Bob (*)")
    assert "Opening: A00" in text
    assert "2.    Qh5+" in text
    assert "inaccuracy" in text
    assert "best d2d4" in text
    assert "White (Alice): ACPL 25.00" in text
    assert "Black (Bob): ACPL 12.50" in text
    assert "Analysis incomplete" not in text
