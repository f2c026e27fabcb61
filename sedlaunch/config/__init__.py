"""Configuration loading utilities for sedlaunch."""

from .schema import (
    LaunchScenarioConfig,
    dump_config,
    load_config,
)

__all__ = ["LaunchScenarioConfig", "dump_config", "load_config"]
