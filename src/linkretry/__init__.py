"""linkretry - retrying link validation for documentation trees."""

__version__ = "0.1.0"
