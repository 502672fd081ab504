# game_review/services/pgn_service.py
"""
Provides a service for handling all filesystem interactions with PGN files.

This module acts as a stateless adapter to the filesystem for all things
related to PGN (Portable Game Notation). It encapsulates the I/O logic for
streaming games from a file, reading a single game by position, and appending
annotated games to an output file. This keeps I/O-specific code isolated from
the analysis orchestration.
"""

import asyncio
from pathlib import Path
from typing import AsyncGenerator, Generator, Optional, TextIO

import aiofiles
import chess.pgn
import structlog

from game_review.exceptions import PgnServiceError

logger = structlog.get_logger(__name__)


class PgnService:
    """A stateless service for handling PGN file I/O operations."""

    def _sync_game_streamer(self, pgn_handle: TextIO) -> Generator[chess.pgn.Game, None, None]:
        """
        A synchronous generator that yields games from an open file handle.

        Designed to be advanced from a worker thread so the blocking parser
        never runs on the event loop.
        """
        while True:
            try:
                game = chess.pgn.read_game(pgn_handle)
            except (ValueError, RuntimeError) as e:
                logger.warning("Skipping unreadable game record.", error=str(e))
                continue
            if game is None:
                break
            yield game

    async def stream_games(self, pgn_filepath: Path) -> AsyncGenerator[chess.pgn.Game, None]:
        """
        Asynchronously streams games from a PGN file one by one.

        Args:
            pgn_filepath: The path to the input PGN file.

        Yields:
            `chess.pgn.Game` objects as they are read from the file.

        Raises:
            PgnServiceError: If the file cannot be found or read.
        """
        def _get_next_game(generator):
            try:
                return next(generator)
            except StopIteration:
                return None

        try:
            with pgn_filepath.open("r", encoding="utf-8", errors="replace") as pgn_handle:
                game_generator = self._sync_game_streamer(pgn_handle)
                while True:
                    game = await asyncio.to_thread(_get_next_game, game_generator)
                    if game is None:
                        break
                    yield game
        except FileNotFoundError as e:
            raise PgnServiceError(f"Input PGN file not found: {pgn_filepath}") from e
        except OSError as e:
            raise PgnServiceError(f"Failed to stream games from {pgn_filepath}: {e}") from e

    async def read_game(self, pgn_filepath: Path, game_number: int = 1) -> Optional[chess.pgn.Game]:
        """Returns the 1-based `game_number`-th game of the file, or None if it has fewer games."""
        if game_number < 1:
            raise ValueError("game_number is 1-based.")
        position = 0
        async for game in self.stream_games(pgn_filepath):
            position += 1
            if position == game_number:
                return game
        return None

    async def export_annotated_game(self, game: chess.pgn.Game, output_filepath: Path) -> None:
        """
        Appends a single annotated game to the output PGN file.

        Raises:
            PgnServiceError: If the file cannot be written to.
        """
        try:
            # PGN requires a blank line between games.
            game_string = str(game) + "\n\n"
            output_filepath.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(output_filepath, "a", encoding="utf-8") as f:
                await f.write(game_string)
        except OSError as e:
            raise PgnServiceError(f"Failed to export game to {output_filepath}: {e}") from e
        logger.info("Exported annotated game.", path=str(output_filepath))
