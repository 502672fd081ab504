# game_review/services/stockfish_service.py
"""
Provides a concrete implementation of the `EngineService` protocol for Stockfish.

This module acts as an adapter to a live UCI engine, speaking the textual
protocol over an `EngineTransport`. It owns the engine handshake, the single
outstanding analysis request and its lifecycle, and translates engine output
into the application's internal data contracts (`Evaluation`).

The engine processes one search at a time. A new request preempts the
outstanding one: the engine is told to `stop`, the superseded caller receives
`AnalysisCancelledError`, and the terminal `bestmove` the stopped search still
prints is recognized as stale and ignored.
"""

import asyncio
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, TYPE_CHECKING

import structlog

from game_review.config.settings import EngineSettings
from game_review.exceptions import (AnalysisCancelledError, EngineTimeoutError,
                                    EngineUnavailableError)
from game_review.services import uci_protocol as uci
from game_review.services.engine_transport import SubprocessTransport
from game_review.types import (FEN, AnalysisRequest, Evaluation, EngineService,
                               EngineTransport, InfoLine, RequestState)
from game_review.utils.metrics import (ENGINE_AVAILABLE,
                                       ENGINE_REQUEST_DURATION_SECONDS,
                                       ENGINE_REQUESTS_TOTAL)
from game_review.utils.system_utils import find_stockfish_executable

if TYPE_CHECKING:
    from game_review.types import UciMove

logger = structlog.get_logger(__name__)


@dataclass
class _PendingAnalysis:
    """The bookkeeping for the one request the engine is currently searching."""
    request: AnalysisRequest
    future: "asyncio.Future[List[Evaluation]]"
    state: RequestState = RequestState.AWAITING_READY
    lines: Dict[int, Evaluation] = field(default_factory=dict)
    timer: Optional[asyncio.TimerHandle] = None
    started_at: float = 0.0

    def retain(self, info: InfoLine) -> None:
        # Depth never decreases for a retained line.
        existing = self.lines.get(info.pv_index)
        if existing is None or info.evaluation.depth >= existing.depth:
            self.lines[info.pv_index] = info.evaluation

    def collect(self, terminal_move: Optional["UciMove"] = None) -> List[Evaluation]:
        """Returns one evaluation per requested line, in rank order."""
        results: List[Evaluation] = []
        for pv_index in range(1, self.request.multipv + 1):
            evaluation = self.lines.get(pv_index, Evaluation())
            if pv_index == 1 and terminal_move and evaluation.preferred_move is None:
                evaluation = replace(evaluation, preferred_move=terminal_move)
            results.append(evaluation)
        return results

    def settle(
        self,
        state: RequestState,
        result: Optional[List[Evaluation]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
        self.state = state
        ENGINE_REQUESTS_TOTAL.labels(outcome=state.value).inc()
        if self.started_at:
            ENGINE_REQUEST_DURATION_SECONDS.observe(asyncio.get_running_loop().time() - self.started_at)
        if self.future.done():
            return
        if error is not None:
            self.future.set_exception(error)
        else:
            self.future.set_result(result or [])


class StockfishService(EngineService):
    """
    A service that manages and interacts with a UCI chess engine.

    Use `create` to build a service on top of a real engine subprocess, or pass
    any `EngineTransport` to the constructor. `initialize` is idempotent and
    `evaluate` calls it, so concurrent callers share a single handshake.
    """

    def __init__(self, transport: EngineTransport, settings: Optional[EngineSettings] = None):
        self._transport = transport
        self._settings = settings or EngineSettings()
        self._ready_event = asyncio.Event()
        self._is_ready = False
        self._is_started = False
        self._is_closed = False
        self._failure: Optional[EngineUnavailableError] = None
        self._reader_task: Optional["asyncio.Task[None]"] = None
        self._pending: Optional[_PendingAnalysis] = None
        # Number of `bestmove` lines still owed by searches that were stopped.
        self._stale_terminals = 0
        self._engine_name: Optional[str] = None

    @classmethod
    async def create(cls, settings: Optional[EngineSettings] = None) -> "StockfishService":
        """
        Locates the engine executable, starts it and completes the handshake.

        Raises:
            EngineUnavailableError: If no executable is found or it never becomes ready.
        """
        settings = settings or EngineSettings()
        try:
            executable = find_stockfish_executable(settings.path)
        except FileNotFoundError as e:
            raise EngineUnavailableError(str(e)) from e
        service = cls(SubprocessTransport(executable), settings)
        try:
            await service.initialize()
        except EngineUnavailableError:
            await service.shutdown()
            raise
        return service

    async def __aenter__(self) -> "StockfishService":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    @property
    def is_ready(self) -> bool:
        return self._is_ready and self._failure is None

    @property
    def request_state(self) -> Optional[RequestState]:
        """State of the outstanding request, or None when the engine is idle."""
        return self._pending.state if self._pending else None

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """
        Starts the engine and waits for the `uci`/`isready` handshake to complete.

        Raises:
            EngineUnavailableError: If the engine cannot be started, exits, has been
                shut down, or does not become ready within the handshake timeout.
        """
        self._raise_if_unusable()
        if not self._is_started:
            self._is_started = True
            try:
                await self._transport.start()
            except EngineUnavailableError as e:
                self._mark_unavailable(str(e))
                raise
            self._reader_task = asyncio.create_task(self._read_loop(), name="engine-reader")
            self._send(uci.UCI)

        if not self._ready_event.is_set():
            timeout_s = self._settings.handshake_timeout_ms / 1000
            try:
                await asyncio.wait_for(self._ready_event.wait(), timeout=timeout_s)
            except asyncio.TimeoutError as e:
                raise EngineUnavailableError(
                    f"Engine did not become ready within {self._settings.handshake_timeout_ms} ms."
                ) from e
        self._raise_if_unusable()

    async def shutdown(self) -> None:
        """
        Terminates the engine. The outstanding request, if any, is rejected with
        `AnalysisCancelledError`. Calling this more than once is harmless.
        """
        if self._is_closed:
            return
        self._is_closed = True

        if self._pending is not None:
            pending = self._pending
            self._pending = None
            pending.settle(
                RequestState.CANCELLED,
                error=AnalysisCancelledError("Engine terminated.", engine=self),
            )
        self._failure = self._failure or EngineUnavailableError("Engine has been shut down.", engine=self)
        self._is_ready = False
        self._ready_event.set()
        ENGINE_AVAILABLE.set(0)

        if self._is_started:
            try:
                self._transport.write_line(uci.QUIT)
            except EngineUnavailableError:
                logger.debug("Engine already gone, skipping quit command.")
            await self._transport.close()

        if self._reader_task is not None:
            self._reader_task.cancel()
            await asyncio.gather(self._reader_task, return_exceptions=True)
            self._reader_task = None
        logger.info("Engine service shut down.", engine=self._engine_name)

    async def get_engine_identifier(self) -> str:
        """Returns the name the engine reported during the handshake."""
        return self._engine_name or "unknown-engine"

    # --- Requests ---

    async def evaluate(
        self,
        fen: FEN,
        depth: Optional[int] = None,
        move_time_ms: Optional[int] = None,
        multipv: int = 1,
        timeout_ms: Optional[int] = None,
    ) -> List[Evaluation]:
        """
        Evaluates a position and returns one `Evaluation` per requested line.

        Any outstanding request is preempted and rejected with
        `AnalysisCancelledError`. When the deadline passes, the deepest line
        seen so far is returned if it carries a score.

        Raises:
            AnalysisCancelledError: If a newer request or a shutdown superseded this one.
            EngineTimeoutError: If the deadline passed before any scored line arrived.
            EngineUnavailableError: If the engine is not usable.
        """
        if multipv < 1:
            raise ValueError(f"multipv must be at least 1, got {multipv}")
        request = AnalysisRequest(
            fen=fen,
            depth=depth or self._settings.default_depth,
            multipv=multipv,
            timeout_ms=timeout_ms or self._settings.default_timeout_ms,
            move_time_ms=move_time_ms,
        )
        loop = asyncio.get_running_loop()
        pending = _PendingAnalysis(request=request, future=loop.create_future())

        await self.initialize()
        self._preempt("Cancelled by a new analysis request.")
        self._start_search(pending)

        try:
            return await pending.future
        except asyncio.CancelledError:
            # The caller went away; release the engine for the next request.
            if self._pending is pending:
                self._pending = None
                self._stop_search()
                pending.settle(RequestState.CANCELLED)
            raise

    def cancel_outstanding(self) -> None:
        """Stops the outstanding search, rejecting its caller with `AnalysisCancelledError`."""
        self._preempt("Analysis was cancelled.")

    def _start_search(self, pending: _PendingAnalysis) -> None:
        request = pending.request
        loop = asyncio.get_running_loop()
        pending.state = RequestState.AWAITING_TERMINAL
        pending.started_at = loop.time()
        self._pending = pending
        try:
            self._send(uci.set_option("MultiPV", request.multipv))
            self._send(uci.position_fen(request.fen))
            self._send(uci.go(depth=request.depth, move_time_ms=request.move_time_ms))
        except EngineUnavailableError as e:
            self._pending = None
            pending.settle(RequestState.FAILED, error=e)
            return
        pending.timer = loop.call_later(request.timeout_ms / 1000, self._on_timeout, pending)
        logger.debug(
            "Engine search started.", fen=request.fen, depth=request.depth,
            multipv=request.multipv, move_time_ms=request.move_time_ms,
        )

    def _preempt(self, reason: str) -> None:
        pending = self._pending
        if pending is None:
            return
        self._pending = None
        self._stop_search()
        pending.settle(RequestState.CANCELLED, error=AnalysisCancelledError(reason, engine=self))
        logger.debug("Engine search preempted.", fen=pending.request.fen, reason=reason)

    def _stop_search(self) -> None:
        self._stale_terminals += 1
        try:
            self._send(uci.STOP)
        except EngineUnavailableError:
            # No process left to print the terminal line for this search.
            self._stale_terminals -= 1

    def _on_timeout(self, pending: _PendingAnalysis) -> None:
        if self._pending is not pending:
            return
        self._pending = None
        self._stop_search()
        results = pending.collect()
        if results[0].has_score:
            logger.warning(
                "Engine search timed out, using deepest line seen.",
                fen=pending.request.fen, depth=results[0].depth,
            )
            pending.settle(RequestState.TIMED_OUT, result=results)
        else:
            logger.warning("Engine search timed out without a score.", fen=pending.request.fen)
            pending.settle(
                RequestState.TIMED_OUT,
                error=EngineTimeoutError(
                    f"No evaluation within {pending.request.timeout_ms} ms.", engine=self
                ),
            )

    # --- Engine output ---

    async def _read_loop(self) -> None:
        reason = "Engine process exited."
        try:
            while True:
                line = await self._transport.read_line()
                if line is None:
                    break
                self._dispatch_line(line)
        except EngineUnavailableError as e:
            reason = str(e)
        except Exception as e:
            logger.error("Unexpected error while reading engine output.", exc_info=True)
            reason = f"Engine reader failed: {e}"
        self._mark_unavailable(reason)

    def _dispatch_line(self, line: str) -> None:
        """Routes one line of engine output through the handshake and request state machine."""
        line = line.strip()
        if not line:
            return

        if line == uci.UCI_OK:
            self._send(uci.set_option("Hash", self._settings.hash_mb))
            self._send(uci.IS_READY)
            return

        if line == uci.READY_OK:
            if not self._is_ready:
                self._is_ready = True
                self._ready_event.set()
                ENGINE_AVAILABLE.set(1)
                logger.info("Engine is ready.", engine=self._engine_name)
            return

        if (name := uci.parse_engine_name(line)) is not None:
            self._engine_name = name
            return

        if line.startswith("info "):
            if self._stale_terminals or self._pending is None:
                return
            info = uci.parse_info_line(line)
            if info is not None:
                self._pending.retain(info)
            return

        if uci.is_bestmove_line(line):
            if self._stale_terminals:
                self._stale_terminals -= 1
                return
            pending = self._pending
            if pending is None:
                logger.debug("Ignoring bestmove with no outstanding request.", line=line)
                return
            self._pending = None
            pending.settle(RequestState.RESOLVED, result=pending.collect(uci.parse_bestmove(line)))

    # --- Helpers ---

    def _send(self, line: str) -> None:
        self._transport.write_line(line)

    def _raise_if_unusable(self) -> None:
        if self._failure is not None:
            raise EngineUnavailableError(str(self._failure), engine=self)

    def _mark_unavailable(self, reason: str) -> None:
        if self._failure is None:
            self._failure = EngineUnavailableError(reason, engine=self)
            if not self._is_closed:
                logger.error("Engine became unavailable.", reason=reason)
        self._is_ready = False
        self._ready_event.set()
        ENGINE_AVAILABLE.set(0)
        pending = self._pending
        if pending is not None:
            self._pending = None
            pending.settle(RequestState.FAILED, error=EngineUnavailableError(reason, engine=self))
