"""Configuration loading for the audio ingest pipeline."""
