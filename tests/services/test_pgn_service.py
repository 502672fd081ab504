# tests/services/test_pgn_service.py
import io

import chess.pgn
import pytest

from game_review.exceptions import PgnServiceError
from game_review.services.pgn_service import PgnService

TWO_GAMES = """
[Event "Game 1"]
[White "A"]
[Black "B"]
[Result "*"]

1. e4 e5 *

[Event "Game 2"]
[White "C"]
[Black "D"]
[Result "*"]

1. d4 d5 *
"""


@pytest.fixture
def pgn_file(tmp_path):
    path = tmp_path / "games.pgn"
    path.write_text(TWO_GAMES)
    return path


@pytest.mark.asyncio
async def test_stream_games_yields_every_game(pgn_file):
    events = [game.headers["Event"] async for game in PgnService().stream_games(pgn_file)]
    assert events == ["Game 1", "Game 2"]


@pytest.mark.asyncio
async def test_stream_games_missing_file(tmp_path):
    with pytest.raises(PgnServiceError):
        async for _ in PgnService().stream_games(tmp_path / "missing.pgn"):
            pass


@pytest.mark.asyncio
async def test_read_game_by_number(pgn_file):
    service = PgnService()
    second = await service.read_game(pgn_file, 2)
    assert second.headers["White"] == "C"
    assert await service.read_game(pgn_file, 3) is None
    with pytest.raises(ValueError):
        await service.read_game(pgn_file, 0)


@pytest.mark.asyncio
async def test_export_appends_games(tmp_path):
    service = PgnService()
    output = tmp_path / "out" / "annotated.pgn"
    for event in ("First", "Second"):
        game = chess.pgn.Game()
        game.headers["Event"] = event
        game.add_main_variation(chess.Move.from_uci("e2e4"))
        await service.export_annotated_game(game, output)

    reader = io.StringIO(output.read_text(encoding="utf-8"))
    first = chess.pgn.read_game(reader)
    second = chess.pgn.read_game(reader)
    assert (first.headers["Event"], second.headers["Event"]) == ("First", "Second")
    assert second.next().move == chess.Move.from_uci("e2e4")
