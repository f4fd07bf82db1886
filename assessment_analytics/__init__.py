"""Activity tracking, proctoring events and analytics for an online assessment service."""

__version__ = "0.1.0"
__all__ = ["config", "models", "repository", "service", "handler"]