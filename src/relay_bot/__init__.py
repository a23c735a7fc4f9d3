"""Chat relay between a messenger and a completion backend, with voice replies."""

__version__ = "0.1.0"
