"""Engines — one installer per JavaScript engine distribution.

Public re-exports for convenient access.
"""

from esvu.engines.base import EngineInstaller
from esvu.engines.registry import (
    EngineCatalog,
    all_installers,
    engine_ids,
    get_catalog,
    get_installer,
)

__all__ = [
    "EngineCatalog",
    "EngineInstaller",
    "all_installers",
    "engine_ids",
    "get_catalog",
    "get_installer",
]
