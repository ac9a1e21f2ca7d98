"""Conversions between centisecond timestamps, display strings and samples."""

from .audio.constants import PIPELINE_SAMPLE_RATE

_MS_PER_HOUR = 1000 * 60 * 60
_MS_PER_MINUTE = 1000 * 60


def to_timestamp(t: int, comma: bool = False) -> str:
    """Format a centisecond timestamp as ``HH:MM:SS.mmm``.

    >>> to_timestamp(500)
    '00:00:05.000'
    >>> to_timestamp(6000, comma=True)
    '00:01:00,000'

    Hours are not wrapped. Negative values keep a leading minus sign.

    Args:
        t: Timestamp in centiseconds
        comma: Use a comma before the milliseconds (SRT style)

    Returns:
        Formatted timestamp
    """
    sign = "-" if t < 0 else ""
    msec = abs(int(t)) * 10

    hr, msec = divmod(msec, _MS_PER_HOUR)
    minutes, msec = divmod(msec, _MS_PER_MINUTE)
    sec, msec = divmod(msec, 1000)

    separator = "," if comma else "."
    return f"{sign}{hr:02d}:{minutes:02d}:{sec:02d}{separator}{msec:03d}"


def timestamp_to_sample(t: int, n_samples: int, sample_rate: int = PIPELINE_SAMPLE_RATE) -> int:
    """Map a centisecond timestamp to a sample index.

    The index is clamped to ``[0, n_samples - 1]``. An empty buffer
    (``n_samples <= 0``) has no valid index; 0 is returned and callers must
    check the buffer length themselves.

    Args:
        t: Timestamp in centiseconds
        n_samples: Number of samples in the buffer
        sample_rate: Sample rate in Hz

    Returns:
        Sample index
    """
    if n_samples <= 0:
        return 0
    return max(0, min(n_samples - 1, (int(t) * sample_rate) // 100))
