"""
Defines custom exceptions for the Game Review application.

Centralizing exceptions in this module prevents circular dependencies that can
arise when different components need to catch errors defined in others. A clear
exception hierarchy, with a common `GameReviewError` base, allows callers to
distinguish a fatal engine failure from a request that was merely superseded.
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from game_review.types import EngineService, Evaluation


class GameReviewError(Exception):
    """Base class for all application-specific, catchable errors."""
    pass


class EngineError(GameReviewError):
    """
    Base class for errors related to the evaluation engine.

    Attributes:
        engine: An optional reference to the engine service that raised the
                error, allowing for targeted cleanup or replacement.
    """
    def __init__(self, message: str, engine: Optional["EngineService"] = None):
        super().__init__(message)
        self.engine = engine


class EngineUnavailableError(EngineError):
    """
    Raised when the engine process cannot be used.

    This covers an executable that cannot be started, a process that closes
    its output stream, and a handshake that never reaches the ready state.
    """
    pass


class EngineTimeoutError(EngineError):
    """
    Raised when a request's deadline expires before the engine reported a
    settled score for its first ranked line.
    """
    pass


class AnalysisCancelledError(EngineError):
    """
    Raised to the caller whose request was pre-empted by a newer request,
    or which was still outstanding when the engine was shut down.

    Only the superseded caller ever sees this error; it is not a run-level
    failure.
    """
    pass


class EvaluationPassError(GameReviewError):
    """
    Raised when the position evaluation pass is aborted by an engine failure.

    Attributes:
        evaluations_before: Evaluations of the pre-move positions gathered so far.
        evaluations_after: Evaluations of the post-move positions gathered so far.
    """
    def __init__(
        self,
        message: str,
        evaluations_before: Optional[List["Evaluation"]] = None,
        evaluations_after: Optional[List["Evaluation"]] = None,
    ):
        super().__init__(message)
        self.evaluations_before = evaluations_before or []
        self.evaluations_after = evaluations_after or []

    @property
    def was_cancelled(self) -> bool:
        """True when the pass stopped because one of its requests was superseded."""
        return isinstance(self.__cause__, AnalysisCancelledError)


class PgnError(GameReviewError):
    """Base class for errors related to PGN (Portable Game Notation) handling."""
    pass


class PgnParsingError(PgnError):
    """
    Raised for game-level PGN integrity errors, such as illegal moves.

    This indicates a problem with the game record itself rather than a file
    I/O or format-level issue.
    """
    pass


class PgnServiceError(PgnError):
    """
    Raised for file I/O errors when reading from or writing to PGN files.

    This typically wraps lower-level exceptions like `FileNotFoundError` or `IOError`.
    """
    pass


class ReportGenerationError(GameReviewError):
    """Raised for errors encountered during the generation of summary reports."""
    pass
