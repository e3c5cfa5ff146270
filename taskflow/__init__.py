"""taskflow - personal task tracker with remote/local storage failover."""

__version__ = "0.1.0"
