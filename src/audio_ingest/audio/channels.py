"""Stereo channel splitting."""

from typing import List, Tuple

import numpy as np


def split_stereo(interleaved: np.ndarray) -> Tuple[np.ndarray, List[np.ndarray]]:
    """Split interleaved 2-channel PCM into a summed mono track and both channels.

    The mono track is the plain sum of the channels, not their average.

    Args:
        interleaved: Samples ordered L0, R0, L1, R1, ...

    Returns:
        Tuple of (mono, [left, right]), each with one sample per frame

    Raises:
        ValueError: If the buffer does not hold a whole number of frames
    """
    samples = np.asarray(interleaved, dtype=np.float32).reshape(-1)
    if len(samples) % 2 != 0:
        raise ValueError(
            f"Interleaved stereo buffer must have an even length, got {len(samples)}"
        )

    left = samples[0::2].copy()
    right = samples[1::2].copy()
    mono = left + right

    return mono, [left, right]
