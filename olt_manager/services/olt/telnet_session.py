"""
Telnet command session for OLT shells.

An OLT shell has a single channel and no way to tag a reply with the command
that produced it, so every command goes through one FIFO queue drained by a
single task: the next command is only written once the previous reply has
been captured (or its timeout expired).

Reply boundaries are found by prompt detection. The first prompt seen after a
command is written is the leftover of the previous command and is carried on
the echo line; the reply is complete when a second prompt shows up as the
trailing line of the buffer. The text returned is every line between the
echo line and that trailing prompt.

A reply that arrives after its command timed out lands in the next command's
buffer ahead of that command's echo. Everything before the echo line is
discarded, so a late reply never shifts later replies onto the wrong command.
"""
import asyncio
import logging
import re
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Pattern, Sequence, Tuple

import telnetlib3

from .exceptions import OltAuthenticationError, OltConnectionError

logger = logging.getLogger(__name__)
logging.getLogger("telnetlib3").setLevel(logging.WARNING)

# hostname, optional "(config-xx)" mode, then '#' or '>'
DEFAULT_PROMPT = re.compile(r"^[A-Za-z0-9_\-.]+(?:\([^)\r\n]*\))?[#>]\s*$")
LOGIN_PROMPT = re.compile(r"([Ll]ogin|[Uu]sername|[Uu]ser)\s*[: ]*$")
PASSWORD_PROMPT = re.compile(r"[Pp]assword\s*[: ]*$")
AUTH_FAILURE = re.compile(r"(fail|invalid|denied|incorrect|bad password)", re.IGNORECASE)

READ_CHUNK = 4096


@dataclass
class TelnetParams:
    host: str
    port: int = 23
    username: str = ""
    password: str = ""
    connect_timeout: float = 15.0
    login_prompt: Pattern = LOGIN_PROMPT
    password_prompt: Pattern = PASSWORD_PROMPT
    line_terminator: str = "\n"
    encoding: str = "utf8"


@dataclass
class _CommandTask:
    command: str
    timeout: float
    future: asyncio.Future
    echo: bool = True


def split_lines(buffer: str) -> list[str]:
    return buffer.replace("\r\n", "\n").replace("\r", "\n").split("\n")


class TelnetSession:
    """Serialized command execution over one telnet connection.

    Streams can be handed in directly (already-open reader/writer pair);
    otherwise :meth:`connect` opens them with telnetlib3 and logs in.
    """

    def __init__(
        self,
        reader=None,
        writer=None,
        prompt_pattern: Pattern = DEFAULT_PROMPT,
        line_terminator: str = "\n",
    ):
        self._reader = reader
        self._writer = writer
        self.prompt_pattern = prompt_pattern
        self.line_terminator = line_terminator
        self.host: Optional[str] = None
        self._queue: Deque[_CommandTask] = deque()
        self._processing = False
        self._drain_task: Optional[asyncio.Task] = None
        self._connected = reader is not None and writer is not None

    @property
    def connected(self) -> bool:
        return self._connected

    async def __aenter__(self) -> "TelnetSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self, params: TelnetParams) -> None:
        """Open the transport and run the username/password handshake.

        Raises:
            OltConnectionError: refusal, timeout or early EOF
            OltAuthenticationError: credentials rejected
        """
        self.host = params.host
        self.line_terminator = params.line_terminator
        try:
            self._reader, self._writer = await asyncio.wait_for(
                telnetlib3.open_connection(
                    params.host,
                    params.port,
                    encoding=params.encoding,
                    connect_minwait=0.5,
                    connect_maxwait=2.0,
                ),
                timeout=params.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise OltConnectionError(
                f"Telnet connect to {params.host}:{params.port} timed out after {params.connect_timeout}s"
            ) from e
        except OSError as e:
            raise OltConnectionError(f"Telnet connect to {params.host}:{params.port} failed: {e}") from e

        try:
            await self._login(params)
        except BaseException:
            await self.close()
            raise

        self._connected = True
        logger.info(f"[telnet] Connected to {params.host}:{params.port}")

    async def _login(self, params: TelnetParams) -> None:
        if params.username:
            await self._read_until([params.login_prompt], params.connect_timeout)
            self._write(params.username + params.line_terminator)
        if params.password:
            await self._read_until([params.password_prompt], params.connect_timeout)
            self._write(params.password + params.line_terminator)

        buffer, matched = await self._read_until(
            [self.prompt_pattern, params.login_prompt, params.password_prompt],
            params.connect_timeout,
        )
        if matched != 0 or AUTH_FAILURE.search(buffer):
            raise OltAuthenticationError(f"Telnet login to {params.host} rejected for user '{params.username}'")

    async def _read_until(self, patterns: Sequence[Pattern], timeout: float) -> Tuple[str, int]:
        """Read until the trailing line matches one of ``patterns``.

        Returns the buffer and the index of the matching pattern.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        buffer = ""
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise OltConnectionError(f"Timed out waiting for prompt from {self.host}")
            try:
                chunk = await asyncio.wait_for(self._reader.read(READ_CHUNK), timeout=remaining)
            except asyncio.TimeoutError as e:
                raise OltConnectionError(f"Timed out waiting for prompt from {self.host}") from e
            if not chunk:
                raise OltConnectionError(f"Connection to {self.host} closed during login")
            buffer += chunk
            last_line = split_lines(buffer)[-1]
            for index, pattern in enumerate(patterns):
                if pattern.search(last_line):
                    return buffer, index

    def _write(self, data: str) -> None:
        if self._writer is None:
            raise OltConnectionError("Telnet session not connected")
        try:
            self._writer.write(data)
        except (OSError, RuntimeError) as e:
            self._connected = False
            raise OltConnectionError(f"Telnet write to {self.host} failed: {e}") from e

    async def execute(self, command: str, timeout: float = 6.0, echo: bool = True) -> str:
        """Queue ``command`` and wait for its reply.

        Commands run strictly in submission order. A reply that never reaches
        its closing prompt is returned as-is once ``timeout`` seconds pass;
        this never raises on timeout.

        Pass ``echo=False`` for input the device does not echo back (passwords).
        """
        if not self._connected:
            raise OltConnectionError("Telnet session not connected")

        future = asyncio.get_running_loop().create_future()
        self._queue.append(_CommandTask(command, timeout, future, echo))
        if not self._processing:
            self._processing = True
            self._drain_task = asyncio.create_task(self._process_queue())
        return await future

    async def _process_queue(self) -> None:
        try:
            while self._queue:
                task = self._queue.popleft()
                if task.future.cancelled():
                    continue
                try:
                    result = await self._exec_command(task.command, task.timeout, task.echo)
                except Exception as e:
                    if not task.future.done():
                        task.future.set_exception(e)
                else:
                    if not task.future.done():
                        task.future.set_result(result)
        finally:
            self._processing = False

    async def _exec_command(self, command: str, timeout: float, echo: bool = True) -> str:
        self._write(command + self.line_terminator)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        buffer = ""
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                chunk = await asyncio.wait_for(self._reader.read(READ_CHUNK), timeout=remaining)
            except asyncio.TimeoutError:
                break
            if not chunk:
                self._connected = False
                break
            buffer += chunk
            start = self._reply_start(buffer, command, echo)
            if start is not None and self._reply_complete(buffer, start):
                return self._extract_output(buffer, start)

        logger.debug(f"[telnet] No closing prompt for '{command}' on {self.host} within {timeout}s; returning partial output")
        start = self._reply_start(buffer, command, echo)
        if start is None:
            return buffer.strip()
        return self._extract_output(buffer, start)

    def _reply_start(self, buffer: str, command: str, echo: bool) -> Optional[int]:
        """Index of the echo line of ``command`` (None until it shows up)."""
        lines = split_lines(buffer)
        expected = command.strip()
        if not echo or not expected:
            return 0
        for index, line in enumerate(lines):
            # 남은 프롬프트 뒤에 에코가 붙는 경우가 있어 endswith 로 비교
            if line.rstrip().endswith(expected):
                return index
        return None

    def _reply_complete(self, buffer: str, start: int) -> bool:
        lines = split_lines(buffer)
        return len(lines) > start + 1 and bool(self.prompt_pattern.search(lines[-1]))

    def _extract_output(self, buffer: str, start: int) -> str:
        lines = split_lines(buffer)[start + 1:]
        if lines and self.prompt_pattern.search(lines[-1]):
            lines = lines[:-1]
        return "\n".join(line.rstrip() for line in lines).strip()

    async def close(self) -> None:
        """Release the transport. Safe to call more than once."""
        writer, self._writer = self._writer, None
        self._reader = None
        self._connected = False

        while self._queue:
            task = self._queue.popleft()
            if not task.future.done():
                task.future.set_exception(OltConnectionError("Telnet session closed"))

        if writer is None:
            return
        try:
            writer.close()
        except Exception as e:
            logger.debug(f"[telnet] Ignoring close error for {self.host}: {e}")
