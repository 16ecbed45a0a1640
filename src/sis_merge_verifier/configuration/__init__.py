"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import ConfigurationError, load_configuration
from .runtime_settings import (
    BrowserSettings,
    ConflictResolutionPolicy,
    Configuration,
    CredentialSettings,
    EnvironmentSettings,
    FormSettings,
    OwnershipSplitPolicy,
    PolicySettings,
    PollingSettings,
    RunSettings,
    TakeoverSettings,
)

__all__ = [
    "BrowserSettings",
    "ConflictResolutionPolicy",
    "Configuration",
    "CredentialSettings",
    "EnvironmentSettings",
    "FormSettings",
    "OwnershipSplitPolicy",
    "PolicySettings",
    "PollingSettings",
    "RunSettings",
    "TakeoverSettings",
    "ConfigurationError",
    "load_configuration",
    "DEFAULT_CONFIG_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
