from . import health, sessions  # noqa: F401

__all__ = ["health", "sessions"]
