"""Decode-and-clean pipeline feeding the speech-to-text stage."""

from typing import Optional

import numpy as np

from .audio.constants import PIPELINE_SAMPLE_RATE
from .audio.decoder import AudioDecoder, AudioSource, SoundfileDecoder
from .audio.denoise import FrameDenoiser, RNNoiseDenoiser, denoise_audio
from .audio.reader import DecodeResult, read_audio_data
from .audio.resampler import ResamplerPair
from .audio.transcode import AudioTranscoder, FFmpegTranscoder
from .config.loader import load_config
from .config.settings import Settings
from .utils.logging import get_logger

logger = get_logger(__name__)


class AudioPipeline:
    """Turn audio sources into 16kHz float32 PCM ready for transcription."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        decoder: Optional[AudioDecoder] = None,
        transcoder: Optional[AudioTranscoder] = None,
        denoiser: Optional[FrameDenoiser] = None
    ):
        """Initialize pipeline.

        Args:
            settings: Application settings; loaded from the config file
                and environment when omitted
            decoder: Decoder override
            transcoder: Transcoder override; built from settings when omitted
            denoiser: Denoiser override; RNNoise is loaded on first use
                when denoising is enabled
        """
        self.settings = settings or load_config()
        self.decoder = decoder or SoundfileDecoder()
        self.transcoder = transcoder or self._build_transcoder()
        self._denoiser = denoiser
        self._owns_denoiser = denoiser is None
        self.resamplers = ResamplerPair.from_config(self.settings.resampler)

    def _build_transcoder(self) -> Optional[AudioTranscoder]:
        audio_cfg = self.settings.audio
        if not audio_cfg.ffmpeg_fallback:
            return None
        if not FFmpegTranscoder.available(audio_cfg.ffmpeg_bin):
            logger.warning(f"{audio_cfg.ffmpeg_bin} not found, transcoding fallback disabled")
            return None
        return FFmpegTranscoder(
            ffmpeg_bin=audio_cfg.ffmpeg_bin,
            timeout=audio_cfg.ffmpeg_timeout
        )

    @property
    def denoiser(self) -> FrameDenoiser:
        if self._denoiser is None:
            self._denoiser = RNNoiseDenoiser(self.settings.denoise.library)
        return self._denoiser

    def load(
        self,
        source: AudioSource,
        stereo: Optional[bool] = None,
        denoise: Optional[bool] = None
    ) -> DecodeResult:
        """Decode a source and optionally denoise its mono track.

        Args:
            source: File path, ``"-"`` for stdin, or raw bytes
            stereo: Keep both channels; settings default when None
            denoise: Run noise suppression; settings default when None

        Returns:
            DecodeResult for the source

        Raises:
            DenoiserError: If denoising is requested and fails
        """
        stereo = self.settings.audio.stereo if stereo is None else stereo
        denoise = self.settings.audio.denoise if denoise is None else denoise

        result = read_audio_data(
            source,
            stereo=stereo,
            decoder=self.decoder,
            transcoder=self.transcoder
        )
        if not result.ok or not denoise:
            return result

        if not self.resamplers.init():
            logger.warning("Resamplers unavailable, denoising at the pipeline rate")

        result.pcm = denoise_audio(self.denoiser, result.pcm, self.resamplers)
        logger.info(
            "Denoised audio",
            extra={"duration": self.get_duration(result.pcm)}
        )
        return result

    @staticmethod
    def get_duration(pcm: np.ndarray, sample_rate: int = PIPELINE_SAMPLE_RATE) -> float:
        """Get audio duration in seconds."""
        return len(pcm) / sample_rate

    def close(self) -> None:
        """Release resamplers and the denoiser this pipeline created."""
        self.resamplers.close()
        if self._owns_denoiser and self._denoiser is not None:
            self._denoiser.close()
            self._denoiser = None

    def __enter__(self) -> "AudioPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
