"""Audio timeline assembly for dubbed speech: WAV codec, resampler and compositor."""

__version__ = "0.1.0"
