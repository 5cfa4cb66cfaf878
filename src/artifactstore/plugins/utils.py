"""Helpers for locating plugin modules."""

from __future__ import annotations

import importlib
import pkgutil
from collections.abc import Iterable, Iterator
from importlib import metadata


def iter_entry_points(group: str) -> Iterable[metadata.EntryPoint]:
    """Installed entry points in ``group``; empty when nothing is installed."""
    return metadata.entry_points().select(group=group)


def iter_submodule_names(package_name: str) -> Iterator[str]:
    """Dotted names of the public modules directly inside ``package_name``."""
    package = importlib.import_module(package_name)
    for info in pkgutil.iter_modules(package.__path__):
        if not info.name.startswith("_"):
            yield f"{package_name}.{info.name}"
