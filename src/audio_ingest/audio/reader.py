"""Decode audio sources into pipeline-rate float32 PCM."""

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional

import numpy as np

from .channels import split_stereo
from .constants import PIPELINE_SAMPLE_RATE
from .decoder import AudioDecodeError, AudioDecoder, AudioSource, DecodedStream, SoundfileDecoder
from .transcode import AudioTranscoder, TranscodeError
from ..utils.logging import get_logger

logger = get_logger(__name__)

# Source name meaning "read everything from standard input"
STDIN = "-"


class DecodeStatus(Enum):
    """Outcome of a decode attempt."""
    OK = "ok"
    STDIN_READ_FAILED = "stdin_read_failed"
    OPEN_FAILED = "open_failed"
    TRANSCODE_FAILED = "transcode_failed"
    LENGTH_QUERY_FAILED = "length_query_failed"
    READ_FAILED = "read_failed"
    SHORT_READ = "short_read"


@dataclass
class DecodeResult:
    """Decoded audio, or the reason there is none.

    Unpacks as ``pcm, channels, ok``.
    """
    pcm: np.ndarray
    channels: List[np.ndarray] = field(default_factory=list)
    status: DecodeStatus = DecodeStatus.OK
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is DecodeStatus.OK

    @property
    def frame_count(self) -> int:
        return len(self.pcm)

    @classmethod
    def failure(cls, status: DecodeStatus, message: str) -> "DecodeResult":
        logger.error(message, extra={"status": status.value})
        return cls(
            pcm=np.zeros(0, dtype=np.float32),
            status=status,
            message=message
        )

    def __iter__(self) -> Iterator:
        return iter((self.pcm, self.channels, self.ok))


def _describe(source: AudioSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    return f"'{source}'"


def read_audio_data(
    source: AudioSource,
    stereo: bool = False,
    decoder: Optional[AudioDecoder] = None,
    transcoder: Optional[AudioTranscoder] = None,
    sample_rate: int = PIPELINE_SAMPLE_RATE
) -> DecodeResult:
    """Decode a file, stdin or an in-memory buffer into float32 PCM.

    When the decoder cannot open the source and a transcoder is given, the
    source is transcoded once and the decode retried on the result.

    Args:
        source: File path, ``"-"`` for stdin, or raw bytes
        stereo: Request both channels when the source has at least two
        decoder: Decoder to use; libsndfile-based by default
        transcoder: Optional fallback for containers the decoder rejects
        sample_rate: Output sample rate in Hz

    Returns:
        DecodeResult. With stereo output ``pcm`` is the per-frame sum of the
        two channels and ``channels`` holds each channel; otherwise
        ``channels`` is empty.
    """
    decoder = decoder or SoundfileDecoder()
    channels = 2 if stereo else 1

    if isinstance(source, str) and source == STDIN:
        try:
            source = sys.stdin.buffer.read()
        except OSError as e:
            return DecodeResult.failure(
                DecodeStatus.STDIN_READ_FAILED,
                f"Failed to read audio data from stdin: {e}"
            )
        logger.info(f"Read {len(source)} bytes from stdin", extra={"bytes": len(source)})

    try:
        stream = decoder.open(source, channels, sample_rate)
    except AudioDecodeError as e:
        if transcoder is None:
            return DecodeResult.failure(
                DecodeStatus.OPEN_FAILED,
                f"Failed to open audio {_describe(source)}: {e}"
            )

        logger.warning(f"Decoder rejected {_describe(source)}, transcoding: {e}")
        try:
            wav_data = transcoder.transcode(source)
        except TranscodeError as te:
            return DecodeResult.failure(
                DecodeStatus.TRANSCODE_FAILED,
                f"Failed to transcode {_describe(source)}: {te}"
            )

        try:
            stream = decoder.open(wav_data, channels, sample_rate)
        except AudioDecodeError as we:
            return DecodeResult.failure(
                DecodeStatus.OPEN_FAILED,
                f"Failed to read transcoded audio as wav: {we}"
            )

    try:
        return _read_stream(stream)
    finally:
        stream.close()


def _read_stream(stream: DecodedStream) -> DecodeResult:
    try:
        frame_count = stream.frame_count()
    except AudioDecodeError as e:
        return DecodeResult.failure(
            DecodeStatus.LENGTH_QUERY_FAILED,
            f"Failed to retrieve the length of the audio data: {e}"
        )

    try:
        data = np.asarray(stream.read(frame_count), dtype=np.float32).reshape(-1)
    except AudioDecodeError as e:
        return DecodeResult.failure(
            DecodeStatus.READ_FAILED,
            f"Failed to read the frames of the audio data: {e}"
        )

    expected = frame_count * stream.channels
    if len(data) < expected:
        return DecodeResult.failure(
            DecodeStatus.SHORT_READ,
            f"Read {len(data) // stream.channels} of {frame_count} audio frames"
        )

    pcm = np.zeros(expected, dtype=np.float32)
    pcm[:] = data[:expected]

    if stream.channels == 2:
        mono, split = split_stereo(pcm)
        return DecodeResult(pcm=mono, channels=split)

    return DecodeResult(pcm=pcm)
