# game_review/types.py
"""
A central module for shared data structures and service interfaces (Protocols).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import (Awaitable, Callable, Dict, List, Optional, Protocol, Tuple,
                    TYPE_CHECKING, TypeAlias, runtime_checkable)

if TYPE_CHECKING:
    from game_review.config.settings import AnalysisSettings

FEN: TypeAlias = str
UciMove: TypeAlias = str

class MoveClassification(str, Enum):
    BRILLIANT = "brilliant"; GREAT = "great"; BEST = "best"; EXCELLENT = "excellent"
    GOOD = "good"; BOOK = "book"; INACCURACY = "inaccuracy"; MISTAKE = "mistake"
    BLUNDER = "blunder"; FORCED = "forced"

class RequestState(str, Enum):
    """Lifecycle of a single engine request."""
    AWAITING_READY = "awaiting_ready"
    AWAITING_TERMINAL = "awaiting_terminal"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    FAILED = "failed"

# --- ENGINE DATA CONTRACTS ---

@dataclass(frozen=True, slots=True)
class Evaluation:
    """An engine assessment of one position, from the side to move's perspective."""
    centipawns: Optional[int] = None; mate_in: Optional[int] = None; depth: int = 0
    nodes: Optional[int] = None; preferred_move: Optional[UciMove] = None
    principal_variation: Tuple[UciMove, ...] = ()

    @property
    def has_score(self) -> bool:
        return self.centipawns is not None or self.mate_in is not None

@dataclass(frozen=True, slots=True)
class InfoLine:
    """A parsed `info` progress line: the ranked-line index and its evaluation."""
    pv_index: int; evaluation: Evaluation

@dataclass(frozen=True, slots=True)
class AnalysisRequest:
    fen: FEN; depth: int; multipv: int; timeout_ms: int
    move_time_ms: Optional[int] = None

# --- GAME DATA CONTRACTS ---

@dataclass(frozen=True, slots=True)
class ParsedMove:
    index: int; ply: int; san: str; uci: UciMove
    fen_before: FEN; fen_after: FEN; side_to_move: str

    @property
    def is_white(self) -> bool:
        return self.side_to_move == 'w'

@dataclass(frozen=True, slots=True)
class GameMetadata:
    white_player: str; black_player: str; result: str; event: str; site: str; date: str
    opening: Optional[str] = None; eco: Optional[str] = None

@dataclass(frozen=True)
class ParsedGame:
    game_id: str; metadata: GameMetadata; moves: List[ParsedMove]; opening_ply_limit: int

@dataclass(frozen=True, slots=True)
class MoveCharacteristics:
    delivers_mate: bool; ends_game: bool; material_sacrificed: int
    material_captured: int

    @property
    def net_sacrifice(self) -> int:
        return self.material_sacrificed - self.material_captured

# --- CLASSIFICATION DATA CONTRACTS ---

@dataclass(frozen=True, slots=True)
class MoveScores:
    """Scores expressed from the mover's perspective, plus the derived losses."""
    before: int; after: int; centipawn_loss: int
    win_chance_loss: float

@dataclass(frozen=True, slots=True)
class ClassificationResult:
    classification: Optional[MoveClassification]; centipawn_loss: int
    is_settled: bool = False

@dataclass(frozen=True)
class MoveAnalysisContext:
    move: ParsedMove; eval_before: Evaluation; eval_after: Evaluation
    preferred_move: Optional[UciMove]; opening_ply_limit: int
    is_only_legal_move: bool; characteristics: MoveCharacteristics
    scores: MoveScores; settings: "AnalysisSettings"
    second_best_eval: Optional[Evaluation] = None

    @property
    def is_preferred(self) -> bool:
        return bool(self.preferred_move) and self.move.uci == self.preferred_move

# --- RESULTS ---

@dataclass(frozen=True)
class AnalysisSnapshot:
    """An immutable view of a game's analysis state, published after every move."""
    classifications: Dict[int, Optional[MoveClassification]] = field(default_factory=dict)
    centipawn_loss: Dict[int, int] = field(default_factory=dict)
    best_moves: Dict[int, UciMove] = field(default_factory=dict)
    win_chances: Dict[int, float] = field(default_factory=dict)
    evaluations: Dict[int, Evaluation] = field(default_factory=dict)
    principal_variations: Dict[int, Tuple[UciMove, ...]] = field(default_factory=dict)
    progress: float = 0.0; is_analyzing: bool = False; is_complete: bool = False
    error: Optional[str] = None

@dataclass(frozen=True)
class PositionEvaluations:
    before: List[Evaluation]; after: List[Evaluation]

@dataclass(frozen=True, slots=True)
class PlayerStats:
    acpl: Optional[float]; accuracy_percent: Optional[float]
    move_counts: Dict[MoveClassification, int]

@dataclass(frozen=True)
class GameSummary:
    game_id: str; metadata: GameMetadata; white: PlayerStats; black: PlayerStats
    analyzed_moves: int; total_moves: int

ProgressCallback = Callable[[float], Awaitable[None]]
SnapshotCallback = Callable[[AnalysisSnapshot], Awaitable[None]]


# --- PROTOCOLS: Abstract Interfaces for Services ---
# These define the "contracts" that concrete service implementations must adhere to.
# They enable dependency inversion and allow for easy mocking in tests.

class Heuristic(Protocol):
    """Protocol defining the interface for a single, composable classification heuristic."""
    def apply(self, context: "MoveAnalysisContext", result: "ClassificationResult") -> "ClassificationResult": ...

@runtime_checkable
class EngineTransport(Protocol):
    """A line-oriented, bidirectional channel to an engine process."""
    async def start(self) -> None: ...
    def write_line(self, line: str) -> None: ...
    async def read_line(self) -> Optional[str]: ...
    async def close(self) -> None: ...

@runtime_checkable
class EngineService(Protocol):
    """Defines the abstract interface for the evaluation oracle."""
    async def initialize(self) -> None: ...
    async def evaluate(
        self, fen: FEN, depth: Optional[int] = None, move_time_ms: Optional[int] = None,
        multipv: int = 1, timeout_ms: Optional[int] = None
    ) -> List[Evaluation]: ...
    def cancel_outstanding(self) -> None: ...
    async def shutdown(self) -> None: ...
    async def get_engine_identifier(self) -> str: ...
