"""
Sandbox executor - run untrusted code in a fresh isolated process

Core mechanism:
1. Every call spawns a new process (nothing is shared between calls)
2. A single request {"code"} is sent over a pipe; a single response
   {"logs", "result"} or {"logs", "error"} comes back
3. The caller arms a timer when the request is sent; the timer and the pipe
   listener race, and the first one to fire settles the call
4. On timeout the process is torn down and logs produced so far are lost

The event loop must support `add_reader` (any selector loop on POSIX).
"""

import asyncio
import logging
import multiprocessing
import time as time_module
from dataclasses import dataclass, field
from typing import Any

from .exceptions import SandboxRuntimeError, SandboxTimeout
from .isolate import isolate_main

logger = logging.getLogger(__name__)


@dataclass
class SandboxConfig:
    """Sandbox configuration"""
    timeout_ms: float = 2000.0
    start_method: str = "spawn"  # fresh interpreter per call
    memory_limit_mb: int | None = None  # RLIMIT_AS inside the isolate (POSIX)
    max_log_lines: int = 1000
    shutdown_grace_seconds: float = 1.0


@dataclass
class SandboxResult:
    """Successful isolate response"""
    logs: list[str] = field(default_factory=list)
    result: Any = None
    execution_time_ms: float = 0

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"logs": self.logs}
        if self.result is not None:
            payload["result"] = self.result
        return payload


class _Race:
    """
    Timer vs. pipe listener; exactly one of them settles `outcome`

    Both are disarmed as soon as either fires, so a late response can never
    resolve a call that already timed out.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, conn, timeout_ms: float):
        self._loop = loop
        self._conn = conn
        self._timeout_ms = timeout_ms
        self._settled = False
        self.outcome: asyncio.Future = loop.create_future()

        self._fd = conn.fileno()
        loop.add_reader(self._fd, self._on_message)
        self._reading = True
        self._timer: asyncio.TimerHandle | None = loop.call_later(
            timeout_ms / 1000, self._on_timeout
        )

    @property
    def settled(self) -> bool:
        return self._settled

    def disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._reading:
            self._loop.remove_reader(self._fd)
            self._reading = False

    def _settle(self, result: Any = None, error: Exception | None = None) -> None:
        if self._settled:
            return
        self._settled = True
        self.disarm()
        if self.outcome.done():  # awaiting task was cancelled
            return
        if error is not None:
            self.outcome.set_exception(error)
        else:
            self.outcome.set_result(result)

    def _on_timeout(self) -> None:
        self._settle(error=SandboxTimeout(self._timeout_ms))

    def _on_message(self) -> None:
        try:
            message = self._conn.recv()
        except (EOFError, OSError):
            self._settle(error=SandboxRuntimeError("Sandbox exited without a response"))
            return
        self._settle(result=message)


class SandboxExecutor:
    """
    Sandbox code executor

    Usage:
        executor = SandboxExecutor(SandboxConfig(timeout_ms=2000))

        result = await executor.run("console.log('hi')\\n2 + 2")
        print(result.logs, result.result)   # ['hi'] 4
    """

    def __init__(self, config: SandboxConfig | None = None):
        self.config = config or SandboxConfig()
        self._context = multiprocessing.get_context(self.config.start_method)

    async def run(self, code: str, timeout_ms: float | None = None) -> SandboxResult:
        """
        Execute code in a fresh isolate

        Args:
            code: Python source; the value of a trailing expression is the result
            timeout_ms: deadline in milliseconds (defaults to config.timeout_ms)

        Raises:
            SandboxTimeout: no response before the deadline
            SandboxRuntimeError: the code raised, or the isolate died
        """
        if timeout_ms is None:
            timeout_ms = self.config.timeout_ms
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

        loop = asyncio.get_running_loop()
        parent_conn, child_conn = self._context.Pipe()
        process = self._context.Process(
            target=isolate_main,
            args=(child_conn, self.config.memory_limit_mb, self.config.max_log_lines),
            daemon=True,
        )

        start_time = time_module.monotonic()
        process.start()
        child_conn.close()
        pid = process.pid
        logger.debug(f"Started isolate pid={pid}")

        race = None
        completed = False
        try:
            try:
                parent_conn.send({"code": code})
            except OSError as e:
                raise SandboxRuntimeError(f"Failed to send code to sandbox: {e}")

            race = _Race(loop, parent_conn, timeout_ms)
            response = await race.outcome
            completed = True
        except SandboxTimeout:
            logger.warning(f"Isolate pid={pid} timed out after {timeout_ms:g} ms")
            raise
        finally:
            if race is not None:
                race.disarm()
            await self._teardown(process, graceful=completed)
            parent_conn.close()

        execution_time = (time_module.monotonic() - start_time) * 1000
        logs = list(response.get("logs") or [])
        if "error" in response:
            raise SandboxRuntimeError(str(response["error"]), logs)

        logger.debug(f"Isolate pid={pid} finished in {execution_time:.1f} ms")
        return SandboxResult(
            logs=logs,
            result=response.get("result"),
            execution_time_ms=execution_time
        )

    async def _teardown(self, process, graceful: bool) -> None:
        """Make sure the isolate is gone; terminate, then kill"""
        loop = asyncio.get_running_loop()
        grace = self.config.shutdown_grace_seconds

        if graceful and process.is_alive():
            # A finished isolate exits on its own right after replying
            await loop.run_in_executor(None, process.join, 0.1)
        if process.is_alive():
            process.terminate()
            await loop.run_in_executor(None, process.join, grace)
        if process.is_alive():
            logger.warning(f"Isolate pid={process.pid} ignored SIGTERM; killing")
            process.kill()
            await loop.run_in_executor(None, process.join, grace)

        if not process.is_alive():
            process.close()
