"""Compatibility testing of bundled plugins against a core release."""

from .config import RunConfig
from .models import PluginMetadata
from .registry import ExtensionRegistry
from .tester import PluginCompatTester

__all__ = ["RunConfig", "PluginMetadata", "ExtensionRegistry", "PluginCompatTester"]
