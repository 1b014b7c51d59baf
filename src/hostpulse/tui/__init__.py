"""Terminal dashboard."""

from hostpulse.tui.app import HostPulseApp, run_tui

__all__ = ["HostPulseApp", "run_tui"]
