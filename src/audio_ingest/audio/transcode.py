"""FFmpeg transcoding for containers libsndfile cannot parse."""

import shutil
import subprocess
from pathlib import Path
from typing import Optional, Protocol

from .constants import PIPELINE_SAMPLE_RATE
from .decoder import AudioSource
from ..utils.logging import get_logger

logger = get_logger(__name__)


class TranscodeError(Exception):
    """Raised when transcoding fails."""
    pass


class AudioTranscoder(Protocol):
    """Protocol for re-encoding audio into a container the decoder accepts."""

    def transcode(self, source: AudioSource) -> bytes:
        """Return WAV bytes for ``source``."""
        ...


class FFmpegTranscoder:
    """Transcode anything ffmpeg understands into 16-bit PCM WAV."""

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        sample_rate: int = PIPELINE_SAMPLE_RATE,
        timeout: Optional[float] = 60.0
    ):
        """Initialize transcoder.

        Args:
            ffmpeg_bin: ffmpeg executable name or path
            sample_rate: Rate of the produced WAV in Hz
            timeout: Seconds before the ffmpeg process is abandoned
        """
        self.ffmpeg_bin = ffmpeg_bin
        self.sample_rate = sample_rate
        self.timeout = timeout

    @classmethod
    def available(cls, ffmpeg_bin: str = "ffmpeg") -> bool:
        """Check whether the ffmpeg binary can be found."""
        return shutil.which(ffmpeg_bin) is not None

    def transcode(self, source: AudioSource) -> bytes:
        if isinstance(source, (bytes, bytearray)):
            input_arg = "pipe:0"
            input_data = bytes(source)
        else:
            input_arg = str(Path(source))
            input_data = None

        cmd = [self.ffmpeg_bin, "-hide_banner", "-loglevel", "error"]
        if input_data is None:
            cmd.append("-nostdin")
        cmd += [
            "-i", input_arg,
            "-vn",
            "-ar", str(self.sample_rate),
            "-c:a", "pcm_s16le",
            "-f", "wav",
            "pipe:1",
        ]

        logger.info(f"Running ffmpeg: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                input=input_data,
                capture_output=True,
                timeout=self.timeout,
                check=True
            )
        except FileNotFoundError as e:
            raise TranscodeError(f"ffmpeg not found: {self.ffmpeg_bin}") from e
        except subprocess.TimeoutExpired as e:
            raise TranscodeError(f"ffmpeg timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode(errors="ignore").strip() if e.stderr else ""
            logger.error(f"ffmpeg failed: {stderr}")
            raise TranscodeError(f"ffmpeg exited with code {e.returncode}: {stderr}") from e

        if not result.stdout:
            raise TranscodeError("ffmpeg produced no output")

        logger.debug("Transcoded audio", extra={"bytes": len(result.stdout)})
        return result.stdout
