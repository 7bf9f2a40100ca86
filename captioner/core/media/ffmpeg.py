# File: captioner/core/media/ffmpeg.py

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from captioner.core.config.settings import settings

logger = logging.getLogger(__name__)


class FFmpegError(RuntimeError):
    """
    Raised when ffmpeg/ffprobe exits non-zero or cannot be started.
    Feature adapters translate this into their own domain errors.
    """
    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


async def run_tool(cmd: List[str]) -> bytes:
    """
    Runs an ffmpeg-family command without blocking the event loop.
    Returns raw stdout. The child process is killed if the awaiting task is cancelled.
    """
    logger.debug(f"Executing: {' '.join(cmd)}")

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise FFmpegError(f"Could not start {cmd[0]}: {e}") from e

    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    if process.returncode != 0:
        error_msg = stderr.decode(errors="replace").strip() if stderr else f"exit code {process.returncode}"
        logger.error(f"{Path(cmd[0]).name} failed: {error_msg}")
        raise FFmpegError(f"{Path(cmd[0]).name} failed: {error_msg}", stderr=error_msg)

    return stdout


async def run_ffmpeg(args: List[str]) -> bytes:
    # -nostdin/-hide_banner keep the child quiet; -y overwrites arena paths
    return await run_tool([settings.FFMPEG_BINARY, "-nostdin", "-hide_banner", "-loglevel", "error", "-y", *args])


async def probe_duration(path: Path) -> float:
    """
    Container duration in seconds via ffprobe.
    """
    out = await run_tool([
        settings.FFPROBE_BINARY, "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(path)
    ])
    text = out.decode(errors="replace").strip()
    try:
        return float(text)
    except ValueError as e:
        raise FFmpegError(f"ffprobe returned no duration for {path}: '{text}'") from e


async def probe_audio_sample_rate(path: Path) -> Optional[int]:
    """
    Sample rate of the first audio stream, or None when the file has no audio track.
    """
    out = await run_tool([
        settings.FFPROBE_BINARY, "-v", "error",
        "-select_streams", "a:0",
        "-show_entries", "stream=sample_rate",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(path)
    ])
    text = out.decode(errors="replace").strip()
    if not text:
        return None
    try:
        return int(float(text.splitlines()[0]))
    except ValueError:
        return None


async def describe_audio_file(path: Path, label: str) -> None:
    """
    Diagnostics: logs existence, size and probed duration of a stage's input file.
    """
    path = Path(path)
    if not logger.isEnabledFor(logging.DEBUG):
        return
    if not path.exists():
        logger.debug(f"AUDIO label={label} path={path.name} exists=False")
        return

    size = path.stat().st_size
    try:
        duration = f"{await probe_duration(path):.2f}s"
    except FFmpegError:
        duration = "?"
    logger.debug(f"AUDIO label={label} path={path.name} exists=True size={size}B duration={duration}")
