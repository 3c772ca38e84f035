"""The Raft replicated log: stable storage view, unstable tail and apply tracking."""

__version__ = "0.1.0"
__all__ = ["log", "logger", "types", "unstable"]