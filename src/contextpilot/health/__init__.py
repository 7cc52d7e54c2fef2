"""Context corpus health assessment."""

from .monitor import HealthMonitor

__all__ = ["HealthMonitor"]
