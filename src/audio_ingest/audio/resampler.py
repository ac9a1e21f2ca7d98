"""Linear sample-rate conversion between the pipeline and denoiser rates.

The denoiser runs at 48kHz while the rest of the pipeline works at 16kHz, so
every denoised buffer goes through two conversions. ``ResamplerPair`` owns one
converter per direction; callers may hold their own pair or use the
process-wide default managed by ``init_resamplers()``/``uninit_resamplers()``.
"""

import math
import threading
from typing import Optional

import numpy as np
from scipy.signal import butter, sosfilt

from .constants import DEFAULT_LPF_ORDER, DENOISE_SAMPLE_RATE, PIPELINE_SAMPLE_RATE
from ..config.settings import ResamplerConfig
from ..utils.logging import get_logger

logger = get_logger(__name__)


class LinearResampler:
    """Linear-interpolation resampler with a Butterworth anti-aliasing filter.

    Output sample ``k`` sits at input position ``k * rate_in / rate_out``,
    tracked as an exact rational so no drift accumulates. The low-pass filter
    runs after interpolation when upsampling and before it when downsampling,
    always with a cutoff at the lower rate's Nyquist frequency.

    The instance carries state between ``process()`` calls (fractional phase,
    last input sample, filter history); ``reset()`` discards it.
    """

    def __init__(self, rate_in: int, rate_out: int, lpf_order: int = DEFAULT_LPF_ORDER):
        if rate_in <= 0 or rate_out <= 0:
            raise ValueError(f"Sample rates must be positive, got {rate_in} -> {rate_out}")
        if lpf_order < 0:
            raise ValueError(f"lpf_order must be non-negative, got {lpf_order}")

        self.rate_in = rate_in
        self.rate_out = rate_out
        self.lpf_order = lpf_order

        common = math.gcd(rate_in, rate_out)
        self._in_step = rate_in // common
        self._out_step = rate_out // common

        self._sos = None
        if lpf_order > 0 and rate_in != rate_out:
            filter_rate = max(rate_in, rate_out)
            cutoff = min(rate_in, rate_out) / 2
            self._sos = butter(lpf_order, cutoff, btype="low", fs=filter_rate, output="sos")

        self.reset()

    @property
    def is_upsampling(self) -> bool:
        return self.rate_out > self.rate_in

    def reset(self) -> None:
        """Discard fractional phase, sample history and filter state."""
        self._history = np.zeros(0, dtype=np.float64)
        self._phase = 0
        self._zi = None if self._sos is None else np.zeros((self._sos.shape[0], 2))

    def expected_output_frames(self, input_frames: int) -> int:
        """Upper bound on the frames ``process()`` yields for ``input_frames``."""
        total = input_frames + len(self._history)
        if total <= 0:
            return 0
        return -(-total * self._out_step // self._in_step)

    def process(self, pcm: np.ndarray, final: bool = False) -> np.ndarray:
        """Convert ``pcm`` continuing from the current state.

        Without ``final`` output stops at the last input sample so the next
        call can continue from it. With ``final`` the buffer is treated as the
        end of the stream: output runs through the last input sample's whole
        period, holding that sample, so ``n`` input frames from a reset state
        yield exactly ``expected_output_frames(n)``.
        """
        samples = np.asarray(pcm, dtype=np.float64).reshape(-1)
        expected = self.expected_output_frames(len(samples))
        output = np.zeros(expected, dtype=np.float32)
        if expected == 0:
            return output

        if not self.is_upsampling:
            samples = self._lowpass(samples)

        buf = np.concatenate([self._history, samples])
        last = len(buf) - 1
        end = last * self._out_step

        if final:
            limit = len(buf) * self._out_step
            produced = max(0, -(-(limit - self._phase) // self._in_step))
        elif end >= self._phase:
            produced = (end - self._phase) // self._in_step + 1
        else:
            produced = 0
        produced = min(produced, expected)

        positions = self._phase + np.arange(produced, dtype=np.int64) * self._in_step
        index = positions // self._out_step
        frac = (positions % self._out_step) / self._out_step
        upper = np.minimum(index + 1, last)
        converted = buf[index] * (1.0 - frac) + buf[upper] * frac

        if self.is_upsampling:
            converted = self._lowpass(converted)

        self._phase = self._phase + produced * self._in_step - end
        self._history = buf[-1:]

        output[:produced] = converted
        return output[:produced]

    def _lowpass(self, samples: np.ndarray) -> np.ndarray:
        if self._sos is None or len(samples) == 0:
            return samples
        filtered, self._zi = sosfilt(self._sos, samples, zi=self._zi)
        return filtered


def resample(
    resampler: Optional[LinearResampler],
    pcm: np.ndarray,
    reset: bool = True
) -> np.ndarray:
    """Run one conversion.

    Args:
        resampler: Converter to use; ``None`` means the owner was never
            initialized and the input is passed through unchanged
        pcm: Mono float32 samples
        reset: Discard carry-over state before converting

    Returns:
        Converted float32 samples
    """
    pcm = np.asarray(pcm, dtype=np.float32)
    if pcm.size == 0:
        return pcm.copy()

    if resampler is None:
        logger.warning("Resampler used before initialization, passing audio through")
        return pcm

    if reset:
        resampler.reset()
        return resampler.process(pcm, final=True)

    return resampler.process(pcm)


class ResamplerPair:
    """The two converters bridging the pipeline rate and the denoiser rate."""

    def __init__(
        self,
        pipeline_rate: int = PIPELINE_SAMPLE_RATE,
        denoise_rate: int = DENOISE_SAMPLE_RATE,
        lpf_order: int = DEFAULT_LPF_ORDER,
        reset_before_convert: bool = True
    ):
        """Create an uninitialized pair.

        Args:
            pipeline_rate: Rate of decoded audio in Hz
            denoise_rate: Rate the denoiser requires in Hz
            lpf_order: Low-pass filter order used in both directions
            reset_before_convert: Reset converter state before every call;
                when False, state carries over until ``flush()``
        """
        self.pipeline_rate = pipeline_rate
        self.denoise_rate = denoise_rate
        self.lpf_order = lpf_order
        self.reset_before_convert = reset_before_convert

        self._up: Optional[LinearResampler] = None
        self._down: Optional[LinearResampler] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ResamplerConfig) -> "ResamplerPair":
        return cls(
            lpf_order=config.lpf_order,
            reset_before_convert=config.reset_before_convert,
        )

    @property
    def initialized(self) -> bool:
        return self._up is not None and self._down is not None

    def init(self) -> bool:
        """Create both converters. Calling it again is a no-op.

        Returns:
            True if the pair is ready for use
        """
        with self._lock:
            if self.initialized:
                return True

            try:
                up = LinearResampler(self.pipeline_rate, self.denoise_rate, self.lpf_order)
                down = LinearResampler(self.denoise_rate, self.pipeline_rate, self.lpf_order)
            except ValueError as e:
                logger.error(f"Failed to initialize resamplers: {e}")
                return False

            self._up, self._down = up, down
            logger.debug(
                "Initialized resamplers",
                extra={
                    "pipeline_rate": self.pipeline_rate,
                    "denoise_rate": self.denoise_rate,
                    "lpf_order": self.lpf_order,
                }
            )
            return True

    def close(self) -> None:
        """Release both converters."""
        with self._lock:
            if not self.initialized:
                return
            self._up = None
            self._down = None
            logger.debug("Released resamplers")

    def flush(self) -> None:
        """Discard carried-over state in both directions."""
        with self._lock:
            if self.initialized:
                self._up.reset()
                self._down.reset()

    def upsample(self, pcm: np.ndarray) -> np.ndarray:
        """Convert from the pipeline rate to the denoiser rate."""
        with self._lock:
            return resample(self._up, pcm, reset=self.reset_before_convert)

    def downsample(self, pcm: np.ndarray) -> np.ndarray:
        """Convert from the denoiser rate back to the pipeline rate."""
        with self._lock:
            return resample(self._down, pcm, reset=self.reset_before_convert)

    def __enter__(self) -> "ResamplerPair":
        if not self.init():
            raise RuntimeError("Failed to initialize resamplers")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# Global resampler pair instance
_resampler_pair: Optional[ResamplerPair] = None
_resampler_pair_lock = threading.Lock()


def get_resampler_pair() -> ResamplerPair:
    """Get or create the process-wide resampler pair (not initialized)."""
    global _resampler_pair
    with _resampler_pair_lock:
        if _resampler_pair is None:
            _resampler_pair = ResamplerPair()
        return _resampler_pair


def init_resamplers(config: Optional[ResamplerConfig] = None) -> bool:
    """Initialize the process-wide resampler pair.

    Args:
        config: Settings for the pair; an uninitialized pair is rebuilt
            with them, an initialized one keeps its settings until
            ``uninit_resamplers()``

    Returns:
        True if the pair is ready for use
    """
    global _resampler_pair
    with _resampler_pair_lock:
        if _resampler_pair is None or (config is not None and not _resampler_pair.initialized):
            if config is not None:
                _resampler_pair = ResamplerPair.from_config(config)
            else:
                _resampler_pair = ResamplerPair()
        elif config is not None and (
            _resampler_pair.lpf_order != config.lpf_order
            or _resampler_pair.reset_before_convert != config.reset_before_convert
        ):
            logger.warning(
                "Resamplers already initialized, ignoring new config until uninit_resamplers()"
            )
        pair = _resampler_pair
    return pair.init()


def uninit_resamplers() -> None:
    """Release the process-wide resampler pair."""
    with _resampler_pair_lock:
        pair = _resampler_pair
    if pair is not None:
        pair.close()
