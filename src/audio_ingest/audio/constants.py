"""Fixed rates and frame sizes shared by the audio stages."""

# Rate every decoded buffer is delivered at
PIPELINE_SAMPLE_RATE = 16000

# RNNoise works at 48kHz with 480-sample (10ms) frames
DENOISE_SAMPLE_RATE = 48000
DENOISE_FRAME_SIZE = 480

# RNNoise expects samples in the 16-bit integer range
DENOISE_SCALE = 32768.0

DEFAULT_LPF_ORDER = 4
