# game_review/tracing.py

"""
tracing
~~~~~~~

This module provides components for run-level traceability and
context-aware logging.
"""

import functools
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Callable

import structlog

from game_review.utils.metrics import ANALYSIS_PASS_DURATION_SECONDS

logger = structlog.get_logger(__name__)

@dataclass(frozen=True, slots=True)
class CorrelationID:
    """A unique identifier for a single analysis run."""
    run_id: str
    game_id: str

    @classmethod
    def new(cls, game_id: str = "adhoc") -> "CorrelationID":
        return cls(run_id=uuid.uuid4().hex[:12], game_id=game_id)

    @property
    def short_id(self) -> str:
        """A short, human-readable version of the full ID."""
        return f"{self.game_id}:{self.run_id[:6]}"

    def as_dict(self) -> dict:
        """Returns the ID as a dictionary suitable for logging."""
        return asdict(self)


def trace_pass(stage: str) -> Callable[[Callable], Callable]:
    """A decorator to add structured tracing and timing to one stage of an analysis run."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger.info("Entering analysis stage.", stage=stage)
            started = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - started
                ANALYSIS_PASS_DURATION_SECONDS.labels(stage=stage).observe(elapsed)
                logger.info("Exiting analysis stage.", stage=stage, duration_s=round(elapsed, 3))
        return wrapper
    return decorator
