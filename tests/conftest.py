# tests/conftest.py
import asyncio
import io
from typing import List, Optional

import chess.pgn
import pytest

from game_review.core.pgn_parser import parse_game_data
from game_review.exceptions import EngineUnavailableError
from game_review.types import EngineTransport


def info_line(depth: int, cp: Optional[int] = None, mate: Optional[int] = None,
              multipv: Optional[int] = None, pv: str = "e2e4") -> str:
    """Builds a UCI `info` line the way Stockfish prints it."""
    parts = [f"info depth {depth} seldepth {depth + 4}"]
    if multipv is not None:
        parts.append(f"multipv {multipv}")
    parts.append(f"score mate {mate}" if mate is not None else f"score cp {cp}")
    parts.append(f"nodes {depth * 1000} nps 500000 time 20 pv {pv}")
    return " ".join(parts)


class FakeEngineTransport(EngineTransport):
    """
    A scripted stand-in for an engine process.

    Answers the handshake by itself. Each `go` pops the next entry of
    `responses` and emits those lines; an empty entry leaves the search
    running until `stop`, which then emits a `bestmove` like a real engine.
    """

    def __init__(self, responses: Optional[List[List[str]]] = None,
                 engine_name: str = "FakeFish 16", respond_to_isready: bool = True,
                 fail_on_start: bool = False):
        self.responses = list(responses or [])
        self.engine_name = engine_name
        self.respond_to_isready = respond_to_isready
        self.fail_on_start = fail_on_start
        self.sent: List[str] = []
        self.started = False
        self.closed = False
        self.searching = False
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()

    def emit(self, *lines: str) -> None:
        for line in lines:
            if line.startswith("bestmove"):
                self.searching = False
            self._queue.put_nowait(line)

    async def start(self) -> None:
        if self.fail_on_start:
            raise EngineUnavailableError("No such engine.")
        self.started = True

    def write_line(self, line: str) -> None:
        if self.closed:
            raise EngineUnavailableError("Engine process is not running.")
        self.sent.append(line)
        if line == "uci":
            self.emit(f"id name {self.engine_name}", "id author Test", "option name Hash type spin", "uciok")
        elif line == "isready" and self.respond_to_isready:
            self.emit("readyok")
        elif line.startswith("go"):
            self.searching = True
            if self.responses:
                self.emit(*self.responses.pop(0))
        elif line == "stop" and self.searching:
            self.emit("bestmove a2a3")

    async def read_line(self) -> Optional[str]:
        return await self._queue.get()

    def close_stream(self) -> None:
        """Simulates the engine process dying."""
        self.closed = True
        self._queue.put_nowait(None)

    async def close(self) -> None:
        if not self.closed:
            self.close_stream()


@pytest.fixture
def fake_transport_factory():
    return FakeEngineTransport


@pytest.fixture
def scholars_opening_game():
    pgn = """
[Event "Casual Game"]
[Site "https://lichess.org/AbCdEfGh"]
[Date "2024.03.01"]
[White "Alice"]
[Black "Bob"]
[Result "*"]
[ECO "A00"]

1. e4 f6 2. Qh5+ g6 *
"""
    return chess.pgn.read_game(io.StringIO(pgn))


@pytest.fixture
def scholars_opening_parsed(scholars_opening_game):
    return parse_game_data(scholars_opening_game)


@pytest.fixture
def make_info_line():
    return info_line
