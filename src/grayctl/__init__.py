"""grayctl — per-domain grayscale policy engine with timed overrides."""

__version__ = "0.1.0"
