# game_review/containers.py
"""
Defines the Dependency Injection (DI) container for the application.

This module uses the `punq` library to manage the creation and wiring of
all services and components for a game review run. This centralizes the
application's dependency graph and lets tests swap the engine for a fake.
"""

from typing import Optional

import punq

from game_review.config.settings import AnalysisSettings, EngineSettings, Settings
from game_review.core.move_classifier import MoveClassifier
from game_review.exceptions import EngineUnavailableError
from game_review.orchestration.evaluation_pass import PositionEvaluationPass
from game_review.orchestration.orchestrator import GameReviewOrchestrator
from game_review.output.report_generator import ReportGenerator
from game_review.services.engine_transport import SubprocessTransport
from game_review.services.pgn_service import PgnService
from game_review.services.stockfish_service import StockfishService
from game_review.types import EngineService, EngineTransport
from game_review.utils.system_utils import find_stockfish_executable


def _build_transport(engine_settings: EngineSettings) -> SubprocessTransport:
    try:
        return SubprocessTransport(find_stockfish_executable(engine_settings.path))
    except FileNotFoundError as e:
        raise EngineUnavailableError(str(e)) from e


def get_container(settings: Settings, transport: Optional[EngineTransport] = None) -> punq.Container:
    """
    Initializes and returns a DI container configured for one application run.

    Args:
        settings: The application settings.
        transport: An engine transport to use instead of spawning the
            configured executable.
    """
    container = punq.Container()

    # Register instances that are created outside the container's control.
    container.register(Settings, instance=settings)
    container.register(AnalysisSettings, instance=settings.analysis_settings)
    container.register(EngineSettings, instance=settings.engine_settings)

    # A single engine is shared by everything resolved from this container.
    container.register(
        StockfishService,
        factory=lambda: StockfishService(
            transport or _build_transport(settings.engine_settings), settings.engine_settings
        ),
        scope=punq.Scope.singleton,
    )
    container.register(EngineService, factory=lambda: container.resolve(StockfishService))

    container.register(
        MoveClassifier, factory=lambda: MoveClassifier(settings.analysis_settings), scope=punq.Scope.singleton
    )
    container.register(
        PositionEvaluationPass,
        factory=lambda: PositionEvaluationPass(container.resolve(EngineService), settings.analysis_settings.passes),
    )
    container.register(
        GameReviewOrchestrator,
        factory=lambda: GameReviewOrchestrator(
            container.resolve(EngineService),
            container.resolve(MoveClassifier),
            container.resolve(PositionEvaluationPass),
        ),
        scope=punq.Scope.singleton,
    )
    container.register(PgnService)
    container.register(ReportGenerator)

    return container
