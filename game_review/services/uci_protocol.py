# game_review/services/uci_protocol.py
"""
Pure helpers for the textual UCI (Universal Chess Interface) protocol.

Command builders turn typed requests into protocol lines, and parsers turn
engine output lines into typed values. Lines that do not have a recognized
shape parse to `None`; they are skipped by the caller rather than treated as
errors, since engines are free to print extra diagnostics.
"""

import re
from typing import Final, Optional, Pattern

from game_review.types import Evaluation, InfoLine

UCI: Final[str] = "uci"
UCI_OK: Final[str] = "uciok"
IS_READY: Final[str] = "isready"
READY_OK: Final[str] = "readyok"
STOP: Final[str] = "stop"
QUIT: Final[str] = "quit"
NO_MOVE: Final[str] = "(none)"

UCI_MOVE_PATTERN: Final[Pattern[str]] = re.compile(r"^[a-h][1-8][a-h][1-8][qrbn]?$")

_DEPTH_RE = re.compile(r"\bdepth\s+(\d+)")
_BOUND_RE = re.compile(r"\b(upperbound|lowerbound)\b")
_CP_RE = re.compile(r"\bscore\s+cp\s+(-?\d+)")
_MATE_RE = re.compile(r"\bscore\s+mate\s+(-?\d+)")
_NODES_RE = re.compile(r"\bnodes\s+(\d+)")
_MULTIPV_RE = re.compile(r"\bmultipv\s+(\d+)")
_PV_RE = re.compile(r"\bpv\s+(.+)$")
_ID_NAME_RE = re.compile(r"^id\s+name\s+(.+)$")


def set_option(name: str, value: object) -> str:
    return f"setoption name {name} value {value}"


def position_fen(fen: str) -> str:
    return f"position fen {fen}"


def go(depth: Optional[int] = None, move_time_ms: Optional[int] = None) -> str:
    """A fixed time budget takes precedence over a fixed depth."""
    if move_time_ms:
        return f"go movetime {move_time_ms}"
    if depth is None:
        raise ValueError("A search needs either a depth or a move time.")
    return f"go depth {depth}"


def is_valid_uci_move(token: str) -> bool:
    return bool(UCI_MOVE_PATTERN.match(token))


def parse_info_line(line: str) -> Optional[InfoLine]:
    """
    Parses an `info` progress line into its ranked-line index and evaluation.

    Returns None for lines without a depth or a score, and for bound-only
    scores (`upperbound`/`lowerbound`), which are not settled values.
    """
    if not line.startswith("info "):
        return None

    depth_match = _DEPTH_RE.search(line)
    if not depth_match:
        return None
    if _BOUND_RE.search(line):
        return None

    cp_match = _CP_RE.search(line)
    mate_match = _MATE_RE.search(line)
    if not cp_match and not mate_match:
        return None

    nodes_match = _NODES_RE.search(line)
    multipv_match = _MULTIPV_RE.search(line)
    pv_match = _PV_RE.search(line)

    principal_variation = tuple(pv_match.group(1).split()) if pv_match else ()
    preferred_move = None
    if principal_variation and is_valid_uci_move(principal_variation[0]):
        preferred_move = principal_variation[0]

    evaluation = Evaluation(
        centipawns=int(cp_match.group(1)) if cp_match else None,
        mate_in=int(mate_match.group(1)) if mate_match else None,
        depth=int(depth_match.group(1)),
        nodes=int(nodes_match.group(1)) if nodes_match else None,
        preferred_move=preferred_move,
        principal_variation=principal_variation,
    )
    pv_index = int(multipv_match.group(1)) if multipv_match else 1
    return InfoLine(pv_index=pv_index, evaluation=evaluation)


def parse_bestmove(line: str) -> Optional[str]:
    """
    Extracts the move from a terminal `bestmove` line.

    Returns None when the line has no usable move (e.g. `bestmove (none)` in
    a finished position).
    """
    parts = line.split()
    if len(parts) < 2 or parts[0] != "bestmove":
        return None
    move = parts[1]
    if move == NO_MOVE or not is_valid_uci_move(move):
        return None
    return move


def is_bestmove_line(line: str) -> bool:
    return line == "bestmove" or line.startswith("bestmove ")


def parse_engine_name(line: str) -> Optional[str]:
    match = _ID_NAME_RE.match(line)
    return match.group(1).strip() if match else None
