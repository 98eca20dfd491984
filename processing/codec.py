"""
External codec tools: ffmpeg for the transcode, ffprobe for the duration.

``Codec`` is the seam the pipeline talks to; ``FFmpegCodec`` is the real one.
The transcode profile is fixed: HEVC (libx265, CRF 28, preset fast, hvc1 tag),
AAC audio, faststart MP4.
"""
import logging
import math
import subprocess
from pathlib import Path

from django.conf import settings

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset({
    ".mp4", ".mkv", ".avi", ".mov", ".wmv", ".flv",
    ".webm", ".m4v", ".mpeg", ".mpg", ".3gp",
})

OUTPUT_FILENAME = "output.mp4"
MAX_DIAGNOSTIC_CHARS = 4000


class TranscodeError(RuntimeError):
    def __init__(self, message: str, output: str = "", returncode: int | None = None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode


def is_video_key(key: str) -> bool:
    """True if the key's extension is one of the video containers we transcode."""
    return Path(key).suffix.lower() in VIDEO_EXTENSIONS


def build_transcode_command(input_path, output_path, ffmpeg_bin: str = "ffmpeg") -> list[str]:
    return [
        ffmpeg_bin,
        "-i", str(input_path),
        "-c:v", "libx265",
        "-crf", "28",
        "-preset", "fast",
        "-tag:v", "hvc1",
        "-c:a", "aac",
        "-movflags", "+faststart",
        "-y",
        str(output_path),
    ]


def build_probe_command(path, ffprobe_bin: str = "ffprobe") -> list[str]:
    return [
        ffprobe_bin,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]


def _kill(proc: subprocess.Popen) -> None:
    # The process may exit on its own between the interrupt and kill()
    try:
        proc.kill()
    except ProcessLookupError:
        return
    proc.wait()


def run_tool(cmd: list[str], timeout: float | None = None, *, merge_stderr: bool = False) -> tuple[int, str]:
    """
    Run cmd to completion and return (returncode, stdout text).

    With merge_stderr the returned text is the combined stdout+stderr.
    If anything interrupts the wait (timeout, Celery soft time limit,
    KeyboardInterrupt) the child is killed before the exception propagates.
    """
    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT if merge_stderr else subprocess.DEVNULL,
    )
    try:
        out, _ = proc.communicate(timeout=timeout)
    except BaseException:
        _kill(proc)
        raise
    return proc.returncode, (out or b"").decode("utf-8", errors="ignore")


def parse_duration(text: str) -> int:
    """Whole seconds from ffprobe's duration output; 0 when it is not a number."""
    try:
        seconds = float(text.strip())
    except ValueError:
        return 0
    if not math.isfinite(seconds) or seconds < 0:
        return 0
    return int(seconds)


class Codec:
    """Encode/probe capability used by the pipeline."""

    def accepts(self, storage_key: str) -> bool:
        return is_video_key(storage_key)

    def transcode(self, input_path: Path) -> Path:
        raise NotImplementedError

    def probe_duration(self, path: Path) -> int:
        raise NotImplementedError


class FFmpegCodec(Codec):
    def __init__(self, ffmpeg_bin=None, ffprobe_bin=None, timeout=None, probe_timeout=None):
        self.ffmpeg_bin = ffmpeg_bin or settings.FFMPEG_BIN
        self.ffprobe_bin = ffprobe_bin or settings.FFPROBE_BIN
        self.timeout = timeout if timeout is not None else settings.FFMPEG_TIMEOUT_SECONDS
        self.probe_timeout = probe_timeout if probe_timeout is not None else settings.FFPROBE_TIMEOUT_SECONDS

    def transcode(self, input_path: Path) -> Path:
        input_path = Path(input_path)
        output_path = input_path.with_name(OUTPUT_FILENAME)
        cmd = build_transcode_command(input_path, output_path, self.ffmpeg_bin)
        logger.info("transcoding input=%s", input_path.name)

        try:
            returncode, output = run_tool(cmd, self.timeout or None, merge_stderr=True)
        except FileNotFoundError as e:
            raise TranscodeError(f"ffmpeg transcoding failed: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise TranscodeError(f"ffmpeg transcoding timed out after {self.timeout}s") from e

        if returncode != 0:
            tail = output[-MAX_DIAGNOSTIC_CHARS:]
            logger.error("ffmpeg failed returncode=%s output=%s", returncode, tail)
            raise TranscodeError(
                f"ffmpeg transcoding failed (exit status {returncode}): {tail}".strip(),
                output=tail,
                returncode=returncode,
            )
        return output_path

    def probe_duration(self, path: Path) -> int:
        cmd = build_probe_command(path, self.ffprobe_bin)
        try:
            returncode, output = run_tool(cmd, self.probe_timeout or None)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("ffprobe unavailable path=%s error=%s", path, e)
            return 0
        if returncode != 0:
            logger.warning("ffprobe failed path=%s returncode=%s", path, returncode)
            return 0
        return parse_duration(output)
