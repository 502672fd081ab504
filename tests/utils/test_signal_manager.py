# tests/utils/test_signal_manager.py
import asyncio
import os
import signal
from unittest.mock import MagicMock

import pytest

from game_review.utils.signal_manager import AsyncSignalManager


@pytest.mark.asyncio
async def test_sigterm_sets_event_and_runs_callback_once():
    shutdown_event = asyncio.Event()
    on_signal = MagicMock()

    async with AsyncSignalManager(shutdown_event, on_signal=on_signal):
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.wait_for(shutdown_event.wait(), timeout=1)
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.sleep(0.05)

    on_signal.assert_called_once_with()


@pytest.mark.asyncio
async def test_signal_without_callback_only_sets_event():
    shutdown_event = asyncio.Event()

    async with AsyncSignalManager(shutdown_event):
        os.kill(os.getpid(), signal.SIGINT)
        await asyncio.wait_for(shutdown_event.wait(), timeout=1)

    assert shutdown_event.is_set()
