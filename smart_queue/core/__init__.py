"""Configuration and observability helpers."""

from .config import QueueOptions, QueueSettings, get_settings

__all__ = ["QueueOptions", "QueueSettings", "get_settings"]
