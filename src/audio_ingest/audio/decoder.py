"""Container decoding hooks."""

import io
from pathlib import Path
from typing import Protocol, Union

import librosa
import numpy as np
import soundfile as sf

from ..utils.logging import get_logger

logger = get_logger(__name__)

AudioSource = Union[str, Path, bytes]


class AudioDecodeError(Exception):
    """Raised when audio cannot be opened or read."""
    pass


class DecodedStream(Protocol):
    """Protocol for an open decoder producing float32 PCM."""

    channels: int

    def frame_count(self) -> int:
        """Total number of frames the stream will produce."""
        ...

    def read(self, frames: int) -> np.ndarray:
        """Read up to ``frames`` frames as interleaved float32 samples."""
        ...

    def close(self) -> None:
        ...


class AudioDecoder(Protocol):
    """Protocol for audio decoders."""

    def open(self, source: AudioSource, channels: int, sample_rate: int) -> DecodedStream:
        """Open ``source`` for output at ``channels`` and ``sample_rate``.

        The stream reports fewer channels than requested when the source
        has fewer.
        """
        ...


class SoundfileStream:
    """Stream over a soundfile handle, converted to the requested format."""

    def __init__(self, handle: sf.SoundFile, channels: int, sample_rate: int):
        self._handle = handle
        self.sample_rate = sample_rate
        self.native_rate = handle.samplerate
        self.native_channels = handle.channels
        self.channels = min(channels, handle.channels)

    def frame_count(self) -> int:
        if not self._handle.seekable():
            raise AudioDecodeError("Audio source does not support length queries")

        frames = self._handle.frames
        if self.native_rate == self.sample_rate:
            return frames
        # librosa.resample yields ceil(n * target / orig) samples
        return int(np.ceil(frames * self.sample_rate / self.native_rate))

    def read(self, frames: int) -> np.ndarray:
        try:
            audio = self._handle.read(dtype="float32", always_2d=True)
        except (RuntimeError, ValueError) as e:
            raise AudioDecodeError(f"Failed to read audio frames: {e}") from e

        if self.channels == 1 and audio.shape[1] > 1:
            audio = np.mean(audio, axis=1, keepdims=True)
        else:
            audio = audio[:, :self.channels]

        if self.native_rate != self.sample_rate and len(audio) > 0:
            logger.info(
                f"Resampling audio from {self.native_rate}Hz to {self.sample_rate}Hz"
            )
            audio = librosa.resample(
                np.ascontiguousarray(audio.T),
                orig_sr=self.native_rate,
                target_sr=self.sample_rate
            ).T

        return np.ascontiguousarray(audio[:frames], dtype=np.float32).reshape(-1)

    def close(self) -> None:
        self._handle.close()


class SoundfileDecoder:
    """Decoder backed by libsndfile (WAV, FLAC, OGG, MP3 and friends)."""

    def open(self, source: AudioSource, channels: int, sample_rate: int) -> SoundfileStream:
        if isinstance(source, (bytes, bytearray)):
            target = io.BytesIO(source)
        else:
            target = str(source)

        try:
            handle = sf.SoundFile(target)
        except (RuntimeError, OSError, TypeError) as e:
            raise AudioDecodeError(f"Failed to open audio data: {e}") from e

        logger.debug(
            "Opened audio",
            extra={
                "format": handle.format,
                "sample_rate": handle.samplerate,
                "channels": handle.channels,
            }
        )
        return SoundfileStream(handle, channels, sample_rate)
