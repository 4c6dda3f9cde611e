"""Region-of-interest video analysis client."""

__version__ = "0.1.0"
