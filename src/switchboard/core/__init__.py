"""
Switchboard Core - capability runtime, contexts, sheets and applications.

This namespace is what component libraries receive as their first argument.
"""

from .application import Application
from .component import (
    Binding,
    Component,
    check,
    declare,
    connect,
    create,
    disconnect,
    invoke,
    is_component,
)
from .config import EnvSettings, RuntimeConfig, WebConfig
from .context import ComponentDescriptor, Context, InstantiationReport
from .errors import (
    ConfigurationError,
    ConstructionError,
    GrammarError,
    SourceIsNotComponent,
    StateCollisionError,
    SwitchboardError,
    UndefinedEvent,
    UndefinedOperation,
    WiringError,
)
from .loader import load_library, load_resource
from .sheet import Connection, Invocation, Sheet, Stage

__all__ = [
    # Capability runtime
    "Component",
    "Binding",
    "create",
    "declare",
    "check",
    "is_component",
    "connect",
    "disconnect",
    "invoke",
    # Composition
    "Context",
    "ComponentDescriptor",
    "InstantiationReport",
    "Sheet",
    "Stage",
    "Invocation",
    "Connection",
    "Application",
    # Loading
    "load_library",
    "load_resource",
    # Configuration
    "RuntimeConfig",
    "EnvSettings",
    "WebConfig",
    # Errors
    "SwitchboardError",
    "ConfigurationError",
    "WiringError",
    "SourceIsNotComponent",
    "UndefinedEvent",
    "UndefinedOperation",
    "GrammarError",
    "ConstructionError",
    "StateCollisionError",
]
