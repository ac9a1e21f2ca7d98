"""
Audio processing module for the ingest pipeline.

This module handles decoding, channel splitting, sample-rate conversion
and noise suppression ahead of the speech-to-text stage.
"""
