"""Real-time auction bidding backend."""

__version__ = "0.1.0"
