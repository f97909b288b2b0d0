"""Content-policy resolver for streaming-room bots."""

__version__ = "0.3.0"
