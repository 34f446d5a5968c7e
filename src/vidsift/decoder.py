"""External decoder (ffprobe/ffmpeg) invocations as owned child processes."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Protocol

from .errors import DecodeFailure, DecoderNotFound, DecoderTimeout, ProbeError, ProbeTimeout

logger = logging.getLogger(__name__)


class Decoder(Protocol):
    """Protocol defining the interface to the external decoder.

    Every method is a separate decoder invocation; no session is kept
    between calls.
    """

    async def probe(self, path: str, timeout: float) -> float:
        """Return the duration of a media file in seconds.

        Args:
            path: Media file to query
            timeout: Seconds to wait before cancelling the query

        Raises:
            ProbeTimeout: If the query did not finish in time
            ProbeError: If no positive duration could be read
        """
        ...

    async def extract_frame(
        self, path: str, timestamp: float, output: Path, timeout: float | None
    ) -> None:
        """Seek to ``timestamp`` and write one still image to ``output``."""
        ...

    async def extract_audio(
        self, path: str, output: Path, seconds: float, sample_rate: int, timeout: float | None
    ) -> None:
        """Write the first ``seconds`` of audio to ``output`` as mono s16le PCM."""
        ...


@contextlib.asynccontextmanager
async def child_process(*cmd: str) -> AsyncIterator[asyncio.subprocess.Process]:
    """Spawn a decoder process that is killed and reaped when the block exits.

    Args:
        *cmd: Executable and arguments

    Yields:
        The running process with piped stdout/stderr

    Raises:
        DecoderNotFound: If the executable does not exist
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        msg = f"{cmd[0]} not found. Install FFmpeg and ensure it is on your PATH."
        raise DecoderNotFound(msg) from e

    try:
        yield proc
    finally:
        if proc.returncode is None:
            logger.debug(f"Killing unfinished decoder process {proc.pid}")
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()


async def run_command(cmd: list[str], timeout: float | None) -> tuple[int, bytes, bytes]:
    """Run a decoder command to completion or until ``timeout`` expires.

    Args:
        cmd: Executable and arguments
        timeout: Seconds to wait, None to wait indefinitely

    Returns:
        Tuple of (return code, stdout, stderr)

    Raises:
        DecoderTimeout: If the command outlived its timeout (the process is killed)
        DecoderNotFound: If the executable does not exist
    """
    async with child_process(*cmd) as proc:
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError as e:
            msg = f"{Path(cmd[0]).name} timed out after {timeout}s"
            raise DecoderTimeout(msg) from e
    return proc.returncode or 0, stdout, stderr


def _stderr_tail(stderr: bytes, limit: int = 300) -> str:
    return stderr.decode("utf-8", "ignore").strip()[-limit:]


class FFmpegDecoder:
    """Decoder backed by the ``ffprobe`` and ``ffmpeg`` executables."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe"):
        """Initialize decoder.

        Args:
            ffmpeg_path: ffmpeg executable name or path
            ffprobe_path: ffprobe executable name or path
        """
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path

    async def probe(self, path: str, timeout: float) -> float:
        """Query container duration, cancelling the query after ``timeout`` seconds."""
        cmd = [
            self.ffprobe_path, "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            path,
        ]
        try:
            code, out, err = await run_command(cmd, timeout)
        except DecoderTimeout as e:
            msg = f"Timeout getting metadata for {path}"
            raise ProbeTimeout(msg) from e
        if code != 0:
            msg = f"ffprobe failed for {path}: {_stderr_tail(err)}"
            raise ProbeError(msg)

        text = out.decode("utf-8", "ignore").strip()
        try:
            duration = float(text)
        except ValueError as e:
            msg = f"Could not parse duration {text!r} for {path}"
            raise ProbeError(msg) from e
        if not math.isfinite(duration) or duration <= 0:
            msg = f"Invalid duration {duration} for {path}"
            raise ProbeError(msg)
        return duration

    async def extract_frame(
        self, path: str, timestamp: float, output: Path, timeout: float | None
    ) -> None:
        """Write the frame at ``timestamp`` seconds to ``output``."""
        cmd = [
            self.ffmpeg_path, "-hide_banner", "-nostdin", "-v", "error", "-y",
            "-ss", f"{timestamp:.3f}",
            "-i", path,
            "-frames:v", "1", "-q:v", "2",
            str(output),
        ]
        code, _, err = await run_command(cmd, timeout)
        if code != 0:
            msg = f"ffmpeg failed to extract frame at {timestamp:.3f}s for {path}: {_stderr_tail(err)}"
            raise DecodeFailure(msg)

    async def extract_audio(
        self, path: str, output: Path, seconds: float, sample_rate: int, timeout: float | None
    ) -> None:
        """Write the first ``seconds`` of audio as raw mono 16-bit PCM."""
        cmd = [
            self.ffmpeg_path, "-hide_banner", "-nostdin", "-v", "error", "-y",
            "-ss", "0", "-t", f"{seconds:g}",
            "-i", path,
            "-vn", "-ac", "1", "-ar", str(sample_rate),
            "-acodec", "pcm_s16le", "-f", "s16le",
            str(output),
        ]
        code, _, err = await run_command(cmd, timeout)
        if code != 0:
            msg = f"ffmpeg failed to extract audio for {path}: {_stderr_tail(err)}"
            raise DecodeFailure(msg)
