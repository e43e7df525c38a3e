"""
Engine catalog — the set of known engines, keyed by id.

The catalog is the single point of engine lookup.  The CLI and the
orchestrator never import engine modules directly; they go through
``get_catalog()``, which discovers every ``EngineInstaller`` subclass
in the ``esvu.engines`` package on first use.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil

from esvu.engines.base import EngineInstaller

logger = logging.getLogger(__name__)

# Modules in this package that are not engines.
_NON_ENGINE_MODULES = frozenset({"base", "registry"})


class EngineCatalog:
    """Registry of installer classes, looked up by id or display name."""

    def __init__(self) -> None:
        self._installers: dict[str, type[EngineInstaller]] = {}

    def register(self, installer: type[EngineInstaller]) -> None:
        engine_id = installer.descriptor.id
        if engine_id in self._installers:
            logger.warning("Overwriting existing engine: %s", engine_id)
        self._installers[engine_id] = installer
        logger.debug("Registered engine: %s", engine_id)

    def get(self, name: str) -> type[EngineInstaller] | None:
        """Look up an installer by id or (case-insensitive) display name."""
        if name in self._installers:
            return self._installers[name]
        wanted = name.lower()
        for installer in self._installers.values():
            if installer.descriptor.display_name.lower() == wanted:
                return installer
        return None

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def ids(self) -> list[str]:
        return sorted(self._installers)

    def installers(self) -> list[type[EngineInstaller]]:
        return [self._installers[i] for i in self.ids()]

    def default_selection(self) -> list[str]:
        """Ids of engines a bulk "all" selection installs on this platform."""
        return [i.descriptor.id for i in self.installers() if i.install_by_default()]

    def engine_status(self) -> list[dict]:
        """Capability summary of every engine on the current platform."""
        rows = []
        for installer in self.installers():
            d = installer.descriptor
            rows.append({
                "id": d.id,
                "name": d.display_name,
                "supported": installer.is_supported(),
                "default": installer.install_by_default(),
                "requirements": [r.name for r in d.external_requirements],
            })
        return rows


def discover(package: str = "esvu.engines") -> EngineCatalog:
    """Import every engine module in ``package`` and register its installers."""
    catalog = EngineCatalog()
    pkg = importlib.import_module(package)
    for info in pkgutil.iter_modules(pkg.__path__):
        if info.name in _NON_ENGINE_MODULES or info.name.startswith("_"):
            continue
        module = importlib.import_module(f"{package}.{info.name}")
        for _, obj in inspect.getmembers(module, inspect.isclass):
            if (
                issubclass(obj, EngineInstaller)
                and obj.__module__ == module.__name__
                and not inspect.isabstract(obj)
            ):
                catalog.register(obj)
    return catalog


_catalog: EngineCatalog | None = None


def get_catalog() -> EngineCatalog:
    """The process-wide catalog (discovered on first call)."""
    global _catalog
    if _catalog is None:
        _catalog = discover()
    return _catalog


def get_installer(name: str) -> type[EngineInstaller] | None:
    return get_catalog().get(name)


def engine_ids() -> list[str]:
    return get_catalog().ids()


def all_installers() -> list[type[EngineInstaller]]:
    return get_catalog().installers()
