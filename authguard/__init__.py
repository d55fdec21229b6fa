"""Authorization and session-security engine."""

__version__ = "0.1.0"
