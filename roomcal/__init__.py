"""Room availability calendar: booking state engine and HTTP API."""

__version__ = "1.0.0"
