"""Local subprocess adapter.

Runs the coding-agent CLI in the target agent's working directory and
republishes each JSON line it prints on stdout as a ``data`` event. The CLI
is started in streaming JSON mode::

    claude -p <prompt> --output-format stream-json --verbose
           --permission-mode <mode> [--resume <session>] [--allowedTools a,b]
"""

import asyncio
import json
import logging
from collections import deque
from typing import AsyncIterator

from agenthub_server.adapters.base import ExecutionAdapter
from agenthub_server.execution import CancellationHandle, CancellationRegistry
from agenthub_server.models.chat import AgentDescriptor, ChatRequest
from agenthub_server.models.events import StreamEvent

logger = logging.getLogger(__name__)

STREAM_LIMIT = 16 * 1024 * 1024
STDERR_TAIL_LINES = 20


class LocalExecutionError(Exception):
    """Raised when the coding-agent process exits with a non-zero status."""

    def __init__(self, returncode: int, stderr_tail: str = "") -> None:
        message = f"Agent process exited with status {returncode}"
        if stderr_tail:
            message = f"{message}: {stderr_tail}"
        super().__init__(message)
        self.returncode = returncode
        self.stderr_tail = stderr_tail


class LocalSubprocessAdapter(ExecutionAdapter):
    """Executes requests with a coding-agent CLI subprocess."""

    name = "local"

    def __init__(
        self,
        registry: CancellationRegistry,
        executable: str = "claude",
        permission_mode: str = "bypassPermissions",
        command_prefix: str = "/",
        terminate_timeout: float = 5.0,
    ) -> None:
        super().__init__(registry)
        self.executable = executable
        self.permission_mode = permission_mode
        self.command_prefix = command_prefix
        self.terminate_timeout = terminate_timeout

    def build_prompt(self, message: str) -> str:
        """Strip one leading command prefix so slash commands reach the CLI as plain text."""
        if self.command_prefix and message.startswith(self.command_prefix):
            return message[len(self.command_prefix) :]
        return message

    def build_command(self, request: ChatRequest) -> list[str]:
        command = [
            self.executable,
            "-p",
            self.build_prompt(request.message),
            "--output-format",
            "stream-json",
            "--verbose",
            "--permission-mode",
            self.permission_mode,
        ]
        if request.session_id:
            command += ["--resume", request.session_id]
        if request.allowed_tools:
            command += ["--allowedTools", ",".join(request.allowed_tools)]
        return command

    async def _run(
        self,
        request: ChatRequest,
        target: AgentDescriptor,
        handle: CancellationHandle,
    ) -> AsyncIterator[StreamEvent]:
        command = self.build_command(request)
        logger.debug(f"Starting agent process in {target.working_directory}: {command[0]}")

        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=target.working_directory,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=STREAM_LIMIT,
        )
        stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        stderr_task = asyncio.ensure_future(self._drain(process.stderr, stderr_tail))

        try:
            async for raw_line in handle.iterate(process.stdout):
                line = raw_line.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                try:
                    payload = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug(f"Skipping non-JSON agent output: {line[:200]}")
                    continue
                if not isinstance(payload, dict):
                    logger.debug(f"Skipping non-object agent output: {line[:200]}")
                    continue
                yield StreamEvent.of(payload)

            returncode = await handle.guard(process.wait())
            await stderr_task
            if returncode != 0:
                raise LocalExecutionError(returncode, "\n".join(stderr_tail))
        finally:
            await self._stop(process)
            if not stderr_task.done():
                stderr_task.cancel()

    async def _drain(self, stream: asyncio.StreamReader | None, tail: deque[str]) -> None:
        if stream is None:
            return
        async for raw_line in stream:
            line = raw_line.decode("utf-8", errors="replace").rstrip()
            if line:
                logger.debug(f"agent stderr: {line}")
                tail.append(line)

    async def _stop(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        logger.info(f"Terminating agent process {process.pid}")
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self.terminate_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Agent process {process.pid} did not exit, killing it")
            process.kill()
            await process.wait()
