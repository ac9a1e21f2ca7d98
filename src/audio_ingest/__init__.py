"""Audio ingestion and preprocessing for speech-to-text pipelines."""

__version__ = "0.1.0"
