"""
Launchpad Configuration

Loads all sections of launchpad.toml.
Environment variables override TOML values.
"""

from .loader import (
    LaunchpadConfig,
    FactorySectionConfig,
    LedgerSectionConfig,
    OracleSectionConfig,
    LoggingSectionConfig,
    load_config,
)

__all__ = [
    "LaunchpadConfig",
    "FactorySectionConfig",
    "LedgerSectionConfig",
    "OracleSectionConfig",
    "LoggingSectionConfig",
    "load_config",
]
