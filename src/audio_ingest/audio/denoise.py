"""RNNoise-based noise suppression.

RNNoise works on 480-sample frames at 48kHz while the pipeline runs at 16kHz,
so ``denoise_audio`` upsamples, feeds whole frames to the denoiser and
downsamples the result back.
"""

import ctypes
import ctypes.util
from pathlib import Path
from typing import Optional, Protocol, Union

import numpy as np

from .constants import DENOISE_FRAME_SIZE, DENOISE_SAMPLE_RATE, DENOISE_SCALE
from .resampler import ResamplerPair, get_resampler_pair
from ..utils.logging import get_logger

logger = get_logger(__name__)


class DenoiserError(Exception):
    """Raised when the noise suppressor cannot be loaded or fails."""
    pass


class FrameDenoiser(Protocol):
    """Protocol for fixed-frame noise suppressors."""

    frame_size: int
    sample_rate: int

    def process_frame(self, frame: np.ndarray) -> None:
        """Denoise one float32 frame in place, samples in the 16-bit range."""
        ...

    def close(self) -> None:
        ...


class RNNoiseDenoiser:
    """ctypes binding to the system librnnoise.

    Owns one ``DenoiseState``; create one per audio stream and close it when
    the stream is done.
    """

    frame_size = DENOISE_FRAME_SIZE
    sample_rate = DENOISE_SAMPLE_RATE

    def __init__(self, library: Optional[Union[str, Path]] = None):
        """Load librnnoise and create a denoiser state.

        Args:
            library: Path to librnnoise; searched on the system when omitted

        Raises:
            DenoiserError: If the library or the state cannot be created
        """
        self._lib = self._load_library(library)
        self._state = self._lib.rnnoise_create(None)
        if not self._state:
            raise DenoiserError("rnnoise_create returned no state")

        frame_size = self._lib.rnnoise_get_frame_size()
        if frame_size != self.frame_size:
            self.close()
            raise DenoiserError(
                f"librnnoise frame size is {frame_size}, expected {self.frame_size}"
            )

        logger.info("Initialized RNNoise denoiser")

    @staticmethod
    def _load_library(library: Optional[Union[str, Path]]) -> ctypes.CDLL:
        path = str(library) if library else ctypes.util.find_library("rnnoise")
        if not path:
            raise DenoiserError("librnnoise not found")

        try:
            lib = ctypes.CDLL(path)
        except OSError as e:
            raise DenoiserError(f"Failed to load librnnoise from {path}: {e}") from e

        float_p = ctypes.POINTER(ctypes.c_float)
        lib.rnnoise_create.restype = ctypes.c_void_p
        lib.rnnoise_create.argtypes = [ctypes.c_void_p]
        lib.rnnoise_destroy.restype = None
        lib.rnnoise_destroy.argtypes = [ctypes.c_void_p]
        lib.rnnoise_get_frame_size.restype = ctypes.c_int
        lib.rnnoise_get_frame_size.argtypes = []
        lib.rnnoise_process_frame.restype = ctypes.c_float
        lib.rnnoise_process_frame.argtypes = [ctypes.c_void_p, float_p, float_p]
        return lib

    def process_frame(self, frame: np.ndarray) -> None:
        if not self._state:
            raise DenoiserError("Denoiser used after close")
        if frame.dtype != np.float32 or not frame.flags["C_CONTIGUOUS"]:
            raise DenoiserError("Frame must be a contiguous float32 array")
        if len(frame) != self.frame_size:
            raise DenoiserError(f"Frame must hold {self.frame_size} samples, got {len(frame)}")

        ptr = frame.ctypes.data_as(ctypes.POINTER(ctypes.c_float))
        self._lib.rnnoise_process_frame(self._state, ptr, ptr)

    def close(self) -> None:
        if self._state:
            self._lib.rnnoise_destroy(self._state)
            self._state = None

    def __enter__(self) -> "RNNoiseDenoiser":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def denoise_audio(
    denoiser: FrameDenoiser,
    pcm: np.ndarray,
    resamplers: Optional[ResamplerPair] = None
) -> np.ndarray:
    """Denoise pipeline-rate audio.

    A trailing chunk shorter than one frame at the denoiser rate is passed
    through without being denoised.

    Args:
        denoiser: Frame denoiser; its state is reused across calls
        pcm: Mono float32 samples in [-1, 1] at the pipeline rate
        resamplers: Converter pair; the process-wide pair by default

    Returns:
        New array with the denoised samples
    """
    pcm = np.asarray(pcm, dtype=np.float32)
    if pcm.size == 0:
        return pcm

    resamplers = resamplers or get_resampler_pair()
    if resamplers.denoise_rate != denoiser.sample_rate:
        raise DenoiserError(
            f"Denoiser runs at {denoiser.sample_rate}Hz, "
            f"resamplers target {resamplers.denoise_rate}Hz"
        )

    # Uninitialized resamplers pass the caller's array straight through
    upsampled = np.array(resamplers.upsample(pcm), dtype=np.float32)
    frame_size = denoiser.frame_size
    frame = np.zeros(frame_size, dtype=np.float32)

    for start in range(0, len(upsampled) - frame_size + 1, frame_size):
        frame[:] = upsampled[start:start + frame_size] * DENOISE_SCALE
        denoiser.process_frame(frame)
        upsampled[start:start + frame_size] = frame / DENOISE_SCALE

    return resamplers.downsample(upsampled)
