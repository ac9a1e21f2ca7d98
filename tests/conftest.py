"""Shared pytest fixtures for audio ingest tests."""

from typing import List, Optional

import numpy as np
import pytest
import soundfile as sf

from audio_ingest.audio.decoder import AudioDecodeError
from audio_ingest.audio.resampler import ResamplerPair
from audio_ingest.audio.transcode import TranscodeError


class FakeStream:
    """In-memory decoded stream."""

    def __init__(self, frames: np.ndarray, channels: int = 1, reported_frames: Optional[int] = None,
                 length_error: bool = False, read_error: bool = False):
        self._frames = np.asarray(frames, dtype=np.float32).reshape(-1)
        self.channels = channels
        self._reported = reported_frames
        self._length_error = length_error
        self._read_error = read_error
        self.closed = False

    def frame_count(self) -> int:
        if self._length_error:
            raise AudioDecodeError("length unavailable")
        if self._reported is not None:
            return self._reported
        return len(self._frames) // self.channels

    def read(self, frames: int) -> np.ndarray:
        if self._read_error:
            raise AudioDecodeError("read failed")
        return self._frames[:frames * self.channels].copy()

    def close(self) -> None:
        self.closed = True


class FakeDecoder:
    """Decoder serving fixed streams, rejecting sources it has no stream for."""

    def __init__(self, streams: Optional[dict] = None):
        self.streams = streams or {}
        self.opened: List = []

    def open(self, source, channels: int, sample_rate: int) -> FakeStream:
        self.opened.append((source, channels, sample_rate))
        key = source if isinstance(source, bytes) else str(source)
        if key not in self.streams:
            raise AudioDecodeError(f"unsupported container: {key!r}")
        return self.streams[key]


class FakeTranscoder:
    """Transcoder returning fixed bytes or failing."""

    def __init__(self, output: Optional[bytes] = None):
        self.output = output
        self.calls: List = []

    def transcode(self, source) -> bytes:
        self.calls.append(source)
        if self.output is None:
            raise TranscodeError("ffmpeg exited with code 1")
        return self.output


class FakeDenoiser:
    """Denoiser recording the frames it is given."""

    frame_size = 480
    sample_rate = 48000

    def __init__(self, gain: float = 1.0):
        self.gain = gain
        self.frames: List[np.ndarray] = []
        self.closed = False

    def process_frame(self, frame: np.ndarray) -> None:
        self.frames.append(frame.copy())
        frame *= self.gain

    def close(self) -> None:
        self.closed = True


def sine(duration: float = 0.5, freq: float = 440.0, sample_rate: int = 16000,
         amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(duration * sample_rate)) / sample_rate
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


@pytest.fixture
def resamplers():
    """Return an initialized resampler pair."""
    pair = ResamplerPair()
    assert pair.init()
    yield pair
    pair.close()


@pytest.fixture
def mono_wav(tmp_path):
    """Write a 16kHz mono WAV and return (path, samples)."""
    samples = sine()
    path = tmp_path / "mono.wav"
    sf.write(str(path), samples, 16000, subtype="FLOAT")
    return path, samples


@pytest.fixture
def stereo_wav(tmp_path):
    """Write a 16kHz stereo WAV and return (path, left, right)."""
    left = sine(freq=440.0, amplitude=0.25)
    right = sine(freq=880.0, amplitude=0.5)
    path = tmp_path / "stereo.wav"
    sf.write(str(path), np.stack([left, right], axis=1), 16000, subtype="FLOAT")
    return path, left, right


@pytest.fixture
def mock_settings():
    """Return settings with logging in text mode."""
    from audio_ingest.config.settings import Settings, AudioConfig

    return Settings(
        log_format="text",
        audio=AudioConfig(ffmpeg_fallback=False)
    )
