"""
Reconciler Registry - lookup of reconciler plugins by name.

The CLI resolves its commands through this registry, and third-party
packages can add reconcilers through the ``forge_baseline.reconcilers``
entry point group.
"""

import logging
from importlib.metadata import entry_points
from typing import Any, Dict, List, Optional, Type

from baseline.reconcilers.base import ReconcilerPlugin

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "forge_baseline.reconcilers"


class ReconcilerRegistry:
    """
    Name -> ReconcilerPlugin class mapping.

    Classes are stored, not instances: every run gets its own plugin
    object so per-run options (rules, protection documents) never leak
    between targets.
    """

    def __init__(self):
        self._classes: Dict[str, Type[ReconcilerPlugin]] = {}
        # Metadata captured at registration for `baselinectl list`
        self._info: Dict[str, Dict[str, Any]] = {}

    def register_reconciler_plugin(self, plugin_class: Type[ReconcilerPlugin]) -> None:
        """
        Add a reconciler class under its declared name.

        The class is instantiated once with default options to read its
        name, description and governed properties. A later registration
        under the same name replaces the earlier one.

        Args:
            plugin_class: ReconcilerPlugin subclass with a no-argument
                constructor
        """
        instance = plugin_class()
        name = instance.name

        if name in self._classes:
            logger.warning(f"Replacing reconciler {name} with {plugin_class.__name__}")

        self._classes[name] = plugin_class
        self._info[name] = {
            "name": name,
            "description": instance.description,
            "properties": list(instance.governed_properties),
        }
        logger.debug(f"Registered reconciler {name}")

    def create_reconciler_plugin(self, name: str, **options: Any) -> ReconcilerPlugin:
        """
        Build a fresh reconciler for one run.

        Args:
            name: Registered reconciler name
            **options: Constructor keyword arguments

        Raises:
            ValueError: If nothing is registered under ``name``
        """
        plugin_class = self._classes.get(name)
        if plugin_class is None:
            known = ", ".join(sorted(self._classes)) or "none"
            raise ValueError(
                f"No reconciler named {name!r}. Available reconcilers: {known}"
            )
        return plugin_class(**options)

    def list_reconciler_plugins(self) -> List[str]:
        return list(self._classes)

    def has_reconciler(self, name: str) -> bool:
        return name in self._classes

    def get_reconciler_plugin_info(self, name: str) -> Optional[Dict[str, Any]]:
        """Return name, description and properties, or None if unknown."""
        return self._info.get(name)


_registry: Optional[ReconcilerRegistry] = None


def get_registry() -> ReconcilerRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _registry
    if _registry is None:
        _registry = ReconcilerRegistry()
    return _registry


def reset_registry() -> None:
    """Drop the process-wide registry (used by tests)."""
    global _registry
    _registry = None


def register_builtin_plugins() -> None:
    """Register the bundled reconcilers, then any installed entry points."""
    from baseline.reconcilers.redirects import RedirectsReconciler
    from baseline.reconcilers.repo_standards import RepoStandardsReconciler

    registry = get_registry()
    for plugin_class in (RepoStandardsReconciler, RedirectsReconciler):
        registry.register_reconciler_plugin(plugin_class)

    for ep in entry_points(group=ENTRY_POINT_GROUP):
        try:
            registry.register_reconciler_plugin(ep.load())
        except Exception as e:
            logger.warning(f"Skipping reconciler entry point {ep.name}: {e}")
