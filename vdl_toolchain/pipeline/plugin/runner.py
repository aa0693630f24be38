"""
Plugin process supervision.

Runs one plugin command per invocation:

    spawn -> send request -> await response (stderr drained live) -> classify

The request is written and stdin closed on a writer thread, stdout is
collected on a reader thread and stderr is forwarded to the user as it
arrives on a third thread, so a plugin that writes a lot to either stream can
never block on a full pipe. All three are joined under one deadline; when it
expires the process is killed.
"""

from __future__ import annotations

import codecs
import logging
import subprocess
import sys
import threading
import time
from collections import deque
from typing import IO, Any

from ...errors import PluginExitError, PluginLaunchError, PluginResponseError, PluginTimeoutError
from ..config import DEFAULT_PLUGIN_TIMEOUT
from .protocol import PluginRequest, PluginResponse

logger = logging.getLogger(__name__)

# Lines of stderr kept for failure reports
STDERR_TAIL_LINES = 200


class PluginRunner:
    """Executes a plugin command and returns its validated response."""

    def __init__(
        self,
        command: list[str],
        timeout: float = DEFAULT_PLUGIN_TIMEOUT,
        stderr: IO[str] | None = None,
        target: str | None = None,
    ):
        """
        Initialize the runner.

        Args:
            command: argv of the plugin; never interpreted by a shell
            timeout: Wall-clock limit in seconds for the whole invocation
            stderr: Stream plugin stderr is forwarded to (default: sys.stderr)
            target: Target name used in errors and log messages
        """
        if not command:
            raise ValueError("plugin command must not be empty")
        self.command = list(command)
        self.timeout = timeout
        self.stderr = stderr
        self.target = target

    def run(self, request: PluginRequest) -> PluginResponse:
        """
        Run the plugin once.

        Raises:
            PluginLaunchError: If the command cannot be started
            PluginTimeoutError: If the deadline expires (the process is killed)
            PluginExitError: If the plugin exits with a non-zero status
            PluginResponseError: If stdout is not a valid response
        """
        payload = request.to_json().encode("utf-8")
        logger.debug("Starting plugin %s (%d byte request)", self.command, len(payload))

        try:
            process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise PluginLaunchError(f"cannot start plugin {self.command[0]!r}: {e.strerror or e}", self.target) from e

        stdout_chunks: list[bytes] = []
        stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        threads = [
            threading.Thread(target=self._write_stdin, args=(process.stdin, payload), daemon=True),
            threading.Thread(target=self._read_stdout, args=(process.stdout, stdout_chunks), daemon=True),
            threading.Thread(target=self._pump_stderr, args=(process.stderr, stderr_tail), daemon=True),
        ]
        for thread in threads:
            thread.start()

        deadline = time.monotonic() + self.timeout
        try:
            process.wait(timeout=self.timeout)
            for thread in threads:
                thread.join(timeout=max(0.0, deadline - time.monotonic()))
            if any(thread.is_alive() for thread in threads):
                # Exited, but a grandchild still holds the pipes open
                raise subprocess.TimeoutExpired(self.command, self.timeout)
        except subprocess.TimeoutExpired:
            self._kill(process, threads)
            raise PluginTimeoutError(self.timeout, self.target) from None

        stderr_text = "".join(stderr_tail)
        if process.returncode != 0:
            raise PluginExitError(process.returncode, stderr_text, self.target)

        try:
            stdout_text = b"".join(stdout_chunks).decode("utf-8")
        except UnicodeDecodeError as e:
            raise PluginResponseError(f"plugin output is not valid UTF-8: {e}", self.target) from e
        response = PluginResponse.from_json(stdout_text, self.target)
        logger.debug("Plugin %s returned %d file(s)", self.command[0], len(response.files))
        return response

    @staticmethod
    def _write_stdin(pipe: IO[bytes], payload: bytes) -> None:
        try:
            pipe.write(payload)
        except (BrokenPipeError, OSError):
            # The plugin may exit without reading its request
            pass
        finally:
            try:
                pipe.close()
            except OSError:
                pass

    @staticmethod
    def _read_stdout(pipe: IO[bytes], chunks: list[bytes]) -> None:
        with pipe:
            for chunk in iter(lambda: pipe.read(65536), b""):
                chunks.append(chunk)

    def _pump_stderr(self, pipe: IO[bytes], tail: deque[str]) -> None:
        sink = self.stderr or sys.stderr
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        partial = ""
        with pipe:
            for raw in iter(lambda: pipe.read1(65536), b""):
                text = decoder.decode(raw)
                self._forward(sink, text)
                lines = (partial + text).splitlines(keepends=True)
                partial = lines.pop() if lines and not lines[-1].endswith(("\n", "\r")) else ""
                tail.extend(lines)
        remainder = decoder.decode(b"", final=True)
        self._forward(sink, remainder)
        if partial + remainder:
            tail.append(partial + remainder)

    @staticmethod
    def _forward(sink: IO[str], text: str) -> None:
        if not text:
            return
        try:
            sink.write(text)
            sink.flush()
        except (OSError, ValueError):
            logger.debug("Cannot forward plugin stderr: %s", text.rstrip())

    def _kill(self, process: subprocess.Popen[Any], threads: list[threading.Thread]) -> None:
        logger.warning("Plugin %s exceeded %ss, killing it", self.command[0], self.timeout)
        process.kill()
        process.wait()
        for thread in threads:
            thread.join(timeout=1.0)
