"""French cadastral parcel maps and built-surface reports."""

__version__ = "1.0.0"
