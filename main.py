# main.py
"""
Command-line entry point: reviews the games of a PGN file with a UCI engine.

Every move is classified (brilliant, great, best, excellent, good, book,
inaccuracy, mistake, blunder, forced) and a per-game report is printed.
Optionally a CSV summary and an annotated PGN are written.
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from game_review.config.settings import Settings
from game_review.containers import get_container
from game_review.core.pgn_parser import parse_game_data
from game_review.core.summary_aggregator import aggregate_game_summary
from game_review.exceptions import EngineUnavailableError, GameReviewError, PgnParsingError
from game_review.orchestration.orchestrator import GameReviewOrchestrator
from game_review.output.pgn_annotator import annotate_game
from game_review.output.report_generator import ReportGenerator
from game_review.services.pgn_service import PgnService
from game_review.services.stockfish_service import StockfishService
from game_review.types import GameSummary
from game_review.utils.logging_config import setup_logging
from game_review.utils.signal_manager import AsyncSignalManager

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Classify every move of the games in a PGN file.")
    parser.add_argument("pgn", type=Path, help="PGN file to review")
    parser.add_argument("--game", type=int, default=None, help="Review only the N-th game (1-based)")
    parser.add_argument("--engine-path", default=None, help="Path to a UCI engine executable")
    parser.add_argument("--depth", type=int, default=None, help="Search depth for the evaluation pass")
    parser.add_argument("--csv", type=Path, default=None, help="Write a CSV summary to this file")
    parser.add_argument("--annotated-pgn", type=Path, default=None, help="Append annotated games to this file")
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings)")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write JSON logs to this file")
    parser.add_argument("--json-logs", action="store_true", help="Log JSON lines to the console")
    return parser


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings()
    if args.engine_path:
        settings.engine_settings.path = args.engine_path
    if args.depth:
        settings.analysis_settings.passes.primary_depth = args.depth
    return settings


async def review_games(args: argparse.Namespace, settings: Settings) -> int:
    """Reviews the selected games and writes the requested outputs."""
    try:
        container = get_container(settings)
        engine = container.resolve(StockfishService)
    except EngineUnavailableError as e:
        logger.error("Engine not available.", error=str(e))
        return EXIT_FAILURE

    orchestrator = container.resolve(GameReviewOrchestrator)
    pgn_service = container.resolve(PgnService)
    report_generator = container.resolve(ReportGenerator)
    summaries: List[GameSummary] = []
    shutdown_event = asyncio.Event()

    async def log_progress(percent: float) -> None:
        logger.debug("Analysis progress.", progress=round(percent, 1))

    try:
        async with engine, AsyncSignalManager(shutdown_event, on_signal=orchestrator.cancel_nowait):
            logger.info("Reviewing games.", pgn=str(args.pgn), engine=await engine.get_engine_identifier())
            game_number = 0
            async for game in pgn_service.stream_games(args.pgn):
                game_number += 1
                if args.game is not None and game_number != args.game:
                    continue
                if shutdown_event.is_set():
                    break
                try:
                    parsed_game = parse_game_data(game, settings.analysis_settings.opening)
                except PgnParsingError as e:
                    logger.warning("Skipping corrupt game.", game_number=game_number, error=str(e))
                    continue

                with structlog.contextvars.bound_contextvars(game_id=parsed_game.game_id):
                    snapshot = await orchestrator.analyze_game(
                        parsed_game.moves, parsed_game.opening_ply_limit, on_progress=log_progress,
                        game_id=parsed_game.game_id,
                    )
                    summary = aggregate_game_summary(parsed_game, snapshot, settings.analysis_settings)
                    print(report_generator.render_text_report(parsed_game, snapshot, summary))
                    print()
                    summaries.append(summary)
                    if args.annotated_pgn and snapshot.classifications:
                        await pgn_service.export_annotated_game(annotate_game(game, snapshot), args.annotated_pgn)
                if args.game is not None:
                    break

            if args.game is not None and game_number < args.game:
                logger.error("Game not found in file.", game=args.game, games_in_file=game_number)
                return EXIT_FAILURE
    except EngineUnavailableError as e:
        logger.error("Engine not available.", error=str(e))
        return EXIT_FAILURE
    except GameReviewError as e:
        logger.error("Game review failed.", error=str(e))
        return EXIT_FAILURE

    if args.csv and summaries:
        try:
            report_generator.generate_csv_report_from_summaries(summaries, args.csv)
        except GameReviewError as e:
            logger.error("Could not write report.", error=str(e))
            return EXIT_FAILURE

    return EXIT_INTERRUPTED if shutdown_event.is_set() else EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to set up logging and run the review."""
    args = build_parser().parse_args(argv)
    settings = build_settings(args)
    setup_logging(
        log_level=args.log_level or settings.default_log_level,
        json_console=args.json_logs,
        log_file=args.log_file,
    )
    return asyncio.run(review_games(args, settings))


if __name__ == "__main__":
    sys.exit(main())
