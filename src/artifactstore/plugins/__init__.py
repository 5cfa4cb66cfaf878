"""Store backends and delivery hosts.

Importing a plugin module registers it, so discovery is just importing:
every module under ``stores``/``hosts`` plus whatever third-party packages
advertise in the ``artifactstore.plugins`` entry-point group.
"""

import importlib
import logging

from artifactstore.plugins.utils import iter_entry_points, iter_submodule_names

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "artifactstore.plugins"
BUILTIN_PACKAGES = ("artifactstore.plugins.stores", "artifactstore.plugins.hosts")


def discover_all_plugins() -> None:
    """Register built-in and externally installed plugins.

    A module that fails to import is logged and skipped; the remaining
    plugins stay usable.
    """
    for package_name in BUILTIN_PACKAGES:
        try:
            module_names = list(iter_submodule_names(package_name))
        except Exception as exc:
            logger.error("Failed to list plugin package %s: %s", package_name, exc, exc_info=True)
            continue
        for module_name in module_names:
            try:
                importlib.import_module(module_name)
            except Exception as exc:
                logger.error(
                    "Failed to import built-in plugin module %s: %s",
                    module_name,
                    exc,
                    exc_info=True,
                )

    for point in iter_entry_points(ENTRY_POINT_GROUP):
        try:
            importlib.import_module(point.module)
        except Exception as exc:
            logger.error(
                "Failed to load external plugin %s from %s: %s",
                point.name,
                point.module,
                exc,
                exc_info=True,
            )


__all__ = ["ENTRY_POINT_GROUP", "discover_all_plugins"]
