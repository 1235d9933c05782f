"""Voice Studio: script-to-speech generation with a personal clip library."""

__version__ = "1.0.0"
