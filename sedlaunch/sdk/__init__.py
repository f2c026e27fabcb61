"""High-level helpers for launching packets from configurations."""

from .run import LaunchRunResult, launch_from_config

__all__ = ["LaunchRunResult", "launch_from_config"]
