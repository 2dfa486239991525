"""
External load primitives.

Two things come from outside the runtime: the configuration object of a
`url`-backed component (fetched through a pluggable resource loader) and
component libraries (Python modules exporting factories).

A library module exposes a `components` hook:

    DEPENDENCIES = ["json"]

    def components(core, json):
        class Echo(core.Component, operations=["say"], events=["said"]):
            def say(self, text):
                self.emit("said", json.dumps(text))

        return {"Echo": Echo}

The hook receives the `switchboard.core` namespace followed by the imported
dependencies, and returns a type tag -> factory mapping.
"""

import asyncio
import functools
import importlib
import importlib.util
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict

import requests

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .config import EnvSettings
    from .context import Context

log = logging.getLogger(__name__)

Factory = Callable[..., Any]
Loader = Callable[[str], Any]

LIBRARY_HOOK = "components"


def load_resource(locator: str, timeout: float = 7.0, root: str = ".") -> Any:
    """
    Fetch the JSON document behind `locator`.

    HTTP(S) locators are fetched with requests, anything else is read as a
    JSON file relative to `root`.
    """
    if locator.startswith(("http://", "https://")):
        response = requests.get(locator, timeout=timeout)
        response.raise_for_status()
        return response.json()

    with open(Path(root) / locator, "r", encoding="utf-8") as fp:
        return json.load(fp)


def make_loader(env: "EnvSettings") -> Loader:
    """Bind `load_resource` to the configured timeout and resource root."""
    return functools.partial(load_resource, timeout=env.resource_timeout, root=env.resource_root)


def _is_path(locator: str) -> bool:
    return locator.endswith(".py") or "/" in locator or "\\" in locator


def import_library(locator: str, root: str = "."):
    """Import a library module from a dotted name or a .py file path."""
    if not _is_path(locator):
        return importlib.import_module(locator)

    path = Path(root) / locator
    if not path.is_file():
        raise ImportError(f"No library file at {path}")

    spec = importlib.util.spec_from_file_location(f"switchboard_library_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot build an import spec for {path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


async def load_library(locator: str, context: "Context", root: str = ".") -> Dict[str, Factory]:
    """
    Load the library at `locator` and register its factories into `context`.

    Returns the registered type tag -> factory mapping.
    """
    try:
        module = await asyncio.to_thread(import_library, locator, root)
    except ImportError as e:
        raise ConfigurationError(f"Library '{locator}' could not be loaded: {e}") from e

    hook = getattr(module, LIBRARY_HOOK, None)
    if not callable(hook):
        raise ConfigurationError(f"Library '{locator}' has no '{LIBRARY_HOOK}' hook")

    dependencies = getattr(module, "DEPENDENCIES", ())
    try:
        resolved = await asyncio.gather(
            *(asyncio.to_thread(importlib.import_module, name) for name in dependencies)
        )
    except ImportError as e:
        raise ConfigurationError(f"Failed to load dependency of '{locator}': {e}") from e

    core = importlib.import_module(__package__)
    factories = hook(core, *resolved)
    if factories is None:
        raise ConfigurationError(
            f"Library '{locator}' is undefined. Did you forget to return its components?"
        )

    for type_tag, factory in factories.items():
        context.set_factory(type_tag, factory)

    log.info(f"Loaded library '{locator}': {', '.join(factories) or 'no components'}")
    return dict(factories)
