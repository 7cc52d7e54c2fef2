"""Autopilot orchestration."""

from .autopilot import AutopilotState, ContextAutopilot
from .config import AutopilotConfig

__all__ = ["AutopilotConfig", "AutopilotState", "ContextAutopilot"]
