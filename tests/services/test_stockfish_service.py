# tests/services/test_stockfish_service.py
import asyncio

import chess
import pytest

from game_review.config.settings import EngineSettings
from game_review.exceptions import (AnalysisCancelledError, EngineTimeoutError,
                                    EngineUnavailableError)
from game_review.services.stockfish_service import StockfishService

START_FEN = chess.STARTING_FEN
AFTER_E4_FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


async def _settle():
    """Lets the engine reader task drain the fake transport's queue."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_handshake_sends_uci_hash_and_isready(fake_transport_factory):
    transport = fake_transport_factory()
    async with StockfishService(transport) as service:
        assert service.is_ready
        assert transport.sent == ["uci", "setoption name Hash value 32", "isready"]
        assert await service.get_engine_identifier() == "FakeFish 16"


@pytest.mark.asyncio
async def test_initialize_is_idempotent(fake_transport_factory):
    transport = fake_transport_factory()
    async with StockfishService(transport) as service:
        await asyncio.gather(service.initialize(), service.initialize())
        assert transport.sent.count("uci") == 1


@pytest.mark.asyncio
async def test_evaluate_returns_deepest_line_and_best_move(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[[
        make_info_line(10, cp=31, pv="e2e4 e7e5"),
        make_info_line(12, cp=25, pv="d2d4 d7d5"),
        "bestmove d2d4 ponder d7d5",
    ]])
    async with StockfishService(transport) as service:
        [evaluation] = await service.evaluate(START_FEN, depth=12)

    assert evaluation.centipawns == 25
    assert evaluation.depth == 12
    assert evaluation.preferred_move == "d2d4"
    assert evaluation.principal_variation == ("d2d4", "d7d5")
    assert "setoption name MultiPV value 1" in transport.sent
    assert f"position fen {START_FEN}" in transport.sent
    assert "go depth 12" in transport.sent


@pytest.mark.asyncio
async def test_move_time_takes_precedence_over_depth(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[[make_info_line(8, cp=5), "bestmove e2e4"]])
    async with StockfishService(transport) as service:
        await service.evaluate(START_FEN, depth=18, move_time_ms=250)
    assert "go movetime 250" in transport.sent
    assert "go depth 18" not in transport.sent


@pytest.mark.asyncio
async def test_lower_depth_line_never_replaces_deeper_one(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[[
        make_info_line(14, cp=40),
        make_info_line(9, cp=-300),
        "bestmove e2e4",
    ]])
    async with StockfishService(transport) as service:
        [evaluation] = await service.evaluate(START_FEN)
    assert evaluation.centipawns == 40
    assert evaluation.depth == 14


@pytest.mark.asyncio
async def test_bound_and_unscored_lines_are_skipped(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[[
        make_info_line(10, cp=20),
        "info depth 11 seldepth 15 score cp 900 upperbound nodes 1 pv e2e4",
        "info depth 12 currmove g1f3 currmovenumber 2",
        "info string NNUE evaluation using nn-xyz.nnue enabled",
        "garbage from the engine",
        "bestmove e2e4",
    ]])
    async with StockfishService(transport) as service:
        [evaluation] = await service.evaluate(START_FEN)
    assert evaluation.centipawns == 20
    assert evaluation.depth == 10


@pytest.mark.asyncio
async def test_multipv_returns_ranked_lines(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[[
        make_info_line(14, cp=35, multipv=1, pv="e2e4"),
        make_info_line(14, cp=-120, multipv=2, pv="g2g4"),
        "bestmove e2e4",
    ]])
    async with StockfishService(transport) as service:
        first, second = await service.evaluate(START_FEN, depth=14, multipv=2)
    assert "setoption name MultiPV value 2" in transport.sent
    assert (first.centipawns, first.preferred_move) == (35, "e2e4")
    assert (second.centipawns, second.preferred_move) == (-120, "g2g4")


@pytest.mark.asyncio
async def test_missing_ranked_line_is_an_unscored_evaluation(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[[make_info_line(14, mate=1, multipv=1, pv="d8h4"), "bestmove d8h4"]])
    async with StockfishService(transport) as service:
        first, second = await service.evaluate(START_FEN, multipv=2)
    assert first.mate_in == 1
    assert not second.has_score


@pytest.mark.asyncio
async def test_new_request_preempts_outstanding_one(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[
        [make_info_line(6, cp=99)],  # never finishes on its own
        [make_info_line(10, cp=-15, pv="e7e5"), "bestmove e7e5"],
    ])
    async with StockfishService(transport) as service:
        first = asyncio.create_task(service.evaluate(START_FEN))
        await _settle()

        [second] = await service.evaluate(AFTER_E4_FEN)

        with pytest.raises(AnalysisCancelledError):
            await first

    assert "stop" in transport.sent
    # The stopped search's `bestmove a2a3` must not resolve the new request.
    assert second.preferred_move == "e7e5"
    assert second.centipawns == -15


@pytest.mark.asyncio
async def test_cancel_outstanding_rejects_pending_request(fake_transport_factory):
    transport = fake_transport_factory(responses=[[]])
    async with StockfishService(transport) as service:
        pending = asyncio.create_task(service.evaluate(START_FEN))
        await _settle()
        service.cancel_outstanding()
        with pytest.raises(AnalysisCancelledError):
            await pending
        assert service.request_state is None


@pytest.mark.asyncio
async def test_timeout_resolves_with_best_line_so_far(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[[make_info_line(9, cp=55, pv="g1f3")]])
    async with StockfishService(transport) as service:
        [evaluation] = await service.evaluate(START_FEN, timeout_ms=30)
        assert service.request_state is None
    assert evaluation.centipawns == 55
    assert evaluation.preferred_move == "g1f3"
    assert "stop" in transport.sent


@pytest.mark.asyncio
async def test_timeout_without_score_raises(fake_transport_factory):
    transport = fake_transport_factory(responses=[[]])
    async with StockfishService(transport) as service:
        with pytest.raises(EngineTimeoutError):
            await service.evaluate(START_FEN, timeout_ms=30)


@pytest.mark.asyncio
async def test_request_after_timeout_ignores_late_bestmove(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[
        [],
        [make_info_line(12, cp=12, pv="c7c5"), "bestmove c7c5"],
    ])
    async with StockfishService(transport) as service:
        with pytest.raises(EngineTimeoutError):
            await service.evaluate(START_FEN, timeout_ms=20)
        [evaluation] = await service.evaluate(AFTER_E4_FEN)
    assert evaluation.preferred_move == "c7c5"


@pytest.mark.asyncio
async def test_caller_cancellation_stops_search(fake_transport_factory, make_info_line):
    transport = fake_transport_factory(responses=[[], [make_info_line(10, cp=3), "bestmove e2e4"]])
    async with StockfishService(transport) as service:
        task = asyncio.create_task(service.evaluate(START_FEN))
        await _settle()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert "stop" in transport.sent
        assert service.request_state is None

        [evaluation] = await service.evaluate(START_FEN)
    assert evaluation.centipawns == 3


@pytest.mark.asyncio
async def test_engine_exit_fails_pending_and_later_requests(fake_transport_factory):
    transport = fake_transport_factory(responses=[[]])
    async with StockfishService(transport) as service:
        pending = asyncio.create_task(service.evaluate(START_FEN))
        await _settle()
        transport.close_stream()

        with pytest.raises(EngineUnavailableError):
            await pending
        assert not service.is_ready
        with pytest.raises(EngineUnavailableError):
            await service.evaluate(START_FEN)


@pytest.mark.asyncio
async def test_handshake_timeout_is_unavailable(fake_transport_factory):
    transport = fake_transport_factory(respond_to_isready=False)
    service = StockfishService(transport, EngineSettings(handshake_timeout_ms=30))
    with pytest.raises(EngineUnavailableError):
        await service.initialize()
    await service.shutdown()


@pytest.mark.asyncio
async def test_start_failure_is_unavailable(fake_transport_factory):
    service = StockfishService(fake_transport_factory(fail_on_start=True))
    with pytest.raises(EngineUnavailableError):
        await service.evaluate(START_FEN)
    with pytest.raises(EngineUnavailableError):
        await service.initialize()


@pytest.mark.asyncio
async def test_shutdown_rejects_pending_and_quits(fake_transport_factory):
    transport = fake_transport_factory(responses=[[]])
    service = StockfishService(transport)
    await service.initialize()
    pending = asyncio.create_task(service.evaluate(START_FEN))
    await _settle()

    await service.shutdown()
    await service.shutdown()

    with pytest.raises(AnalysisCancelledError):
        await pending
    assert transport.sent.count("quit") == 1
    assert transport.closed
    with pytest.raises(EngineUnavailableError):
        await service.evaluate(START_FEN)


@pytest.mark.asyncio
async def test_multipv_must_be_positive(fake_transport_factory):
    async with StockfishService(fake_transport_factory()) as service:
        with pytest.raises(ValueError):
            await service.evaluate(START_FEN, multipv=0)
