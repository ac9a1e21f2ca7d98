"""Configuration settings for the audio ingest pipeline."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AudioConfig(BaseSettings):
    """Decode settings."""

    stereo: bool = Field(default=False)
    denoise: bool = Field(default=False)
    ffmpeg_fallback: bool = Field(default=True)
    ffmpeg_bin: str = Field(default="ffmpeg")
    ffmpeg_timeout: float = Field(default=60.0)

    model_config = SettingsConfigDict(env_prefix="AUDIO_INGEST_AUDIO_")


class ResamplerConfig(BaseSettings):
    """Sample-rate converter settings."""

    lpf_order: int = Field(default=4)
    reset_before_convert: bool = Field(default=True)

    @field_validator("lpf_order")
    @classmethod
    def validate_lpf_order(cls, v):
        if v < 0 or v > 8:
            raise ValueError(f"lpf_order must be between 0 and 8, got {v}")
        return v

    model_config = SettingsConfigDict(env_prefix="AUDIO_INGEST_RESAMPLER_")


class DenoiseConfig(BaseSettings):
    """RNNoise settings."""

    library: Optional[Path] = Field(default=None)

    @field_validator("library", mode="before")
    @classmethod
    def validate_library(cls, v):
        if v and isinstance(v, str):
            return Path(v)
        return v

    model_config = SettingsConfigDict(env_prefix="AUDIO_INGEST_DENOISE_")


class Settings(BaseSettings):
    """Main application settings."""

    app_name: str = Field(default="Audio Ingest")
    environment: str = Field(default="production")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    audio: AudioConfig = Field(default_factory=AudioConfig)
    resampler: ResamplerConfig = Field(default_factory=ResamplerConfig)
    denoise: DenoiseConfig = Field(default_factory=DenoiseConfig)

    model_config = SettingsConfigDict(
        env_prefix="AUDIO_INGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
