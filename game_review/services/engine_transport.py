# game_review/services/engine_transport.py
"""
Provides the line-oriented channel to a UCI engine subprocess.

`SubprocessTransport` implements the `EngineTransport` protocol on top of
`asyncio` subprocess pipes. Keeping the byte-level plumbing here lets the
`StockfishService` deal only in protocol lines, and lets tests substitute a
scripted transport for a real engine.
"""

import asyncio
from pathlib import Path
from typing import Optional

import structlog

from game_review.exceptions import EngineUnavailableError
from game_review.types import EngineTransport

logger = structlog.get_logger(__name__)


class SubprocessTransport(EngineTransport):
    """Runs an engine executable and exchanges text lines over its stdin/stdout."""

    def __init__(self, executable: Path):
        self._executable = Path(executable)
        self._process: Optional[asyncio.subprocess.Process] = None

    async def start(self) -> None:
        """
        Spawns the engine process.

        Raises:
            EngineUnavailableError: If the executable is missing or cannot be run.
        """
        if self._process is not None:
            return
        if not self._executable.is_file():
            raise EngineUnavailableError(f"Engine executable not found at {self._executable}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                str(self._executable),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise EngineUnavailableError(f"Failed to start engine process {self._executable}: {e}") from e
        logger.info("Engine process started.", path=str(self._executable), pid=self._process.pid)

    def write_line(self, line: str) -> None:
        """Queues one command line for the engine. Writes after a crash are dropped."""
        if self._process is None or self._process.stdin is None:
            raise EngineUnavailableError("Engine process is not running.")
        if self._process.stdin.is_closing():
            logger.debug("Dropping command for closed engine stdin.", command=line)
            return
        logger.debug("Engine <<", command=line)
        self._process.stdin.write((line + "\n").encode("utf-8"))

    async def read_line(self) -> Optional[str]:
        """Reads the next output line, or returns None once the engine's stdout closes."""
        if self._process is None or self._process.stdout is None:
            return None
        raw = await self._process.stdout.readline()
        if not raw:
            return None
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")

    async def close(self) -> None:
        """Closes stdin and waits briefly for the process, killing it if it lingers."""
        process = self._process
        if process is None:
            return
        self._process = None
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        try:
            await asyncio.wait_for(process.wait(), timeout=2.0)
        except asyncio.TimeoutError:
            logger.warning("Engine process did not exit, killing it.", pid=process.pid)
            process.kill()
            await process.wait()
        logger.info("Engine process exited.", returncode=process.returncode)
