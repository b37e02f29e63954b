"""Core package containing the project model, configuration and logging."""

from chainbuild.core.config_manager import BuildSection, ChainConfig, ConfigManager, GenesisSection
from chainbuild.core.logging_manager import configure_logging
from chainbuild.core.project import Project
from chainbuild.core.source_version import SourceVersion

__all__ = [
    "BuildSection",
    "ChainConfig",
    "ConfigManager",
    "GenesisSection",
    "Project",
    "SourceVersion",
    "configure_logging",
]
