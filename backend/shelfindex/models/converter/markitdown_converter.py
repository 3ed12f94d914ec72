# backend/shelfindex/models/converter/markitdown_converter.py
from __future__ import annotations
import os
import logging
import subprocess
import threading
from typing import Dict, List, Optional, Sequence

from shelfindex.core.errors import ConversionError
from shelfindex.core.ports.converter import IConverter

logger = logging.getLogger("shelf.converter")

DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_MAX_BYTES = 50 * 1024 * 1024
STDERR_EXCERPT_CHARS = 2000
_READ_SIZE = 64 * 1024


class _StdoutCollector(threading.Thread):
    """Reads stdout as it streams and kills the child once the byte cap is crossed."""

    def __init__(self, proc: subprocess.Popen, max_bytes: int):
        super().__init__(daemon=True, name="markitdown-stdout")
        self.proc = proc
        self.max_bytes = max_bytes
        self.parts: List[bytes] = []
        self.total = 0
        self.exceeded = False

    def run(self) -> None:
        stream = self.proc.stdout
        while True:
            data = stream.read1(_READ_SIZE)
            if not data:
                break
            self.total += len(data)
            if self.total > self.max_bytes:
                self.exceeded = True
                _kill(self.proc)
                break
            self.parts.append(data)
        # keep draining so the child never blocks on a full pipe before dying
        while stream.read1(_READ_SIZE):
            pass

    def text(self) -> str:
        return b"".join(self.parts).decode("utf-8", errors="replace")


class _StderrCollector(threading.Thread):
    def __init__(self, proc: subprocess.Popen, limit: int):
        super().__init__(daemon=True, name="markitdown-stderr")
        self.proc = proc
        self.limit = limit
        self.buf = bytearray()

    def run(self) -> None:
        while True:
            data = self.proc.stderr.read1(_READ_SIZE)
            if not data:
                break
            room = self.limit - len(self.buf)
            if room > 0:
                self.buf.extend(data[:room])

    def text(self) -> str:
        return bytes(self.buf).decode("utf-8", errors="replace")[:STDERR_EXCERPT_CHARS]


def _kill(proc: subprocess.Popen) -> None:
    try:
        proc.kill()
    except OSError:
        pass


class MarkitdownConverter(IConverter):
    """
    Converts a document to Markdown by running `python -m markitdown <path>`
    in a separate process.

    Guardrails are enforced while the output streams in: the process is killed
    once the wall clock exceeds `timeout_seconds` or stdout grows past
    `max_bytes`. The child is always reaped before an error is raised.
    """

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        python_bin: str = "python3",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_bytes: int = DEFAULT_MAX_BYTES,
        env_overlay: Optional[Dict[str, str]] = None,
    ):
        self.command = list(command) if command else [python_bin, "-m", "markitdown"]
        self.timeout_seconds = timeout_seconds
        self.max_bytes = max_bytes
        self.env_overlay = dict(env_overlay or {})

    def _spawn(self, path: str) -> subprocess.Popen:
        env = {**os.environ, **self.env_overlay}
        try:
            return subprocess.Popen(
                [*self.command, path],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            raise ConversionError(
                ConversionError.SPAWN_FAILURE,
                f"Failed to spawn markitdown: {e}",
            ) from e

    def convert(self, path: str) -> str:
        proc = self._spawn(path)
        out = _StdoutCollector(proc, self.max_bytes)
        err = _StderrCollector(proc, STDERR_EXCERPT_CHARS * 4)
        out.start()
        err.start()

        timed_out = False
        try:
            proc.wait(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired:
            timed_out = True
            _kill(proc)
            proc.wait()
        finally:
            out.join()
            err.join()
            proc.stdout.close()
            proc.stderr.close()

        if timed_out:
            logger.warning("⏱️ markitdown timed out after %.1fs: %s", self.timeout_seconds, path)
            raise ConversionError(
                ConversionError.TIMEOUT,
                f"markitdown timed out after {int(self.timeout_seconds * 1000)}ms",
            )
        if out.exceeded:
            logger.warning("markitdown output exceeded %d bytes: %s", self.max_bytes, path)
            raise ConversionError(
                ConversionError.SIZE_EXCEEDED,
                f"markitdown output exceeded {self.max_bytes} bytes",
            )
        if proc.returncode != 0:
            stderr_text = err.text()
            logger.warning("markitdown exited with code %s for %s: %s", proc.returncode, path, stderr_text[:200])
            raise ConversionError(
                ConversionError.EXIT_NON_ZERO,
                f"markitdown exited with code {proc.returncode}",
                exit_code=proc.returncode,
                stderr=stderr_text,
            )
        return out.text()
