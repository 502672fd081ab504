# game_review/core/pgn_parser.py
"""
Parses `python-chess` game objects into the application's internal data contracts.

This module acts as an Anti-Corruption Layer, translating data from the external
`python-chess` library into our domain's pure data structures (`ParsedGame`,
`ParsedMove`). Every move carries the position before and after it so the
analysis pipeline can re-query the engine without replaying the game. Games
starting from custom positions (FEN headers) are supported.
"""
import re
from typing import List, Optional, Pattern, Tuple

import chess
import chess.pgn
import structlog

from game_review.config.settings import OpeningSettingsModel
from game_review.exceptions import PgnParsingError
from game_review.types import GameMetadata, ParsedGame, ParsedMove

logger = structlog.get_logger(__name__)

_ECO_PATTERN: Pattern[str] = re.compile(r"^[A-E]\d{2}$")

# Patterns are tried in order, prioritizing Lichess and Chess.com URLs.
_GAME_ID_EXTRACTION_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    ("Link", re.compile(r"lichess\.org/([a-zA-Z0-9]{8})")),
    ("Site", re.compile(r"lichess\.org/([a-zA-Z0-9]{8})")),
    ("Link", re.compile(r"chess\.com/game/live/(\d+)")),
    ("Site", re.compile(r"chess\.com/game/live/(\d+)")),
]


def extract_game_id(headers: chess.pgn.Headers) -> str:
    """
    Extracts a stable ID from a game's PGN headers.

    Game URLs in "Link" or "Site" tags win; otherwise an ID is built from the
    player names and the date.
    """
    for tag_name, pattern in _GAME_ID_EXTRACTION_PATTERNS:
        if header_value := headers.get(tag_name):
            if match := pattern.search(str(header_value)):
                prefix = "lichess" if "lichess" in str(header_value) else "chesscom"
                return f"{prefix}_{match.group(1)}"

    white = headers.get("White", "Unknown").replace(" ", "_")
    black = headers.get("Black", "Unknown").replace(" ", "_")
    date = headers.get("Date", "0000.00.00")
    return f"local_{white}_vs_{black}_{date}"


def determine_opening_ply_limit(eco: Optional[str], opening_settings: Optional[OpeningSettingsModel] = None) -> int:
    """Games tagged with a valid ECO code get a longer opening horizon."""
    opening_settings = opening_settings or OpeningSettingsModel()
    if eco and _ECO_PATTERN.match(eco.strip()):
        return opening_settings.eco_opening_ply_limit
    return opening_settings.default_opening_ply_limit


def parse_moves(game: chess.pgn.Game) -> List[ParsedMove]:
    """
    Replays the game's main line and produces one `ParsedMove` per ply.

    Raises:
        PgnParsingError: If an illegal move is found, indicating a corrupt PGN record.
    """
    # game.board() honors the FEN/SetUp headers.
    board = game.board()
    parsed: List[ParsedMove] = []

    try:
        for index, move in enumerate(game.mainline_moves()):
            fen_before = board.fen()
            side_to_move = 'w' if board.turn == chess.WHITE else 'b'
            san = board.san(move)
            uci = move.uci()
            board.push(move)
            parsed.append(
                ParsedMove(
                    index=index,
                    ply=index + 1,
                    san=san,
                    uci=uci,
                    fen_before=fen_before,
                    fen_after=board.fen(),
                    side_to_move=side_to_move,
                )
            )
    except (AssertionError, chess.IllegalMoveError, ValueError) as e:
        game_id_str = f"'{game.headers.get('White', '?')} vs. {game.headers.get('Black', '?')}'"
        logger.warning("Illegal move encountered while replaying game.", game=game_id_str, error=str(e))
        raise PgnParsingError(f"Corrupt or illegal game data in game {game_id_str}.") from e

    if game.errors:
        logger.warning("PGN reader reported errors for game.", num_errors=len(game.errors))
        raise PgnParsingError(f"Corrupt game record: {game.errors[0]}")

    return parsed


def parse_game_data(game: chess.pgn.Game, opening_settings: Optional[OpeningSettingsModel] = None) -> ParsedGame:
    """
    Parses a `chess.pgn.Game` object into a structured `ParsedGame`.

    Args:
        game: A game object loaded by the `python-chess` library.
        opening_settings: Opening horizon configuration.

    Returns:
        A `ParsedGame` dataclass containing the game's metadata, its moves
        and its opening horizon.

    Raises:
        PgnParsingError: If the game contains an illegal move.
    """
    headers = game.headers
    eco = headers.get("ECO")
    metadata = GameMetadata(
        white_player=headers.get("White", "Unknown Player"),
        black_player=headers.get("Black", "Unknown Player"),
        result=headers.get("Result", "*"),
        event=headers.get("Event", "Unknown Event"),
        site=headers.get("Site", "Unknown Site"),
        date=headers.get("Date", "????.??.??"),
        opening=headers.get("Opening"),
        eco=eco,
    )

    return ParsedGame(
        game_id=extract_game_id(headers),
        metadata=metadata,
        moves=parse_moves(game),
        opening_ply_limit=determine_opening_ply_limit(eco, opening_settings),
    )
