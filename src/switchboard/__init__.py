"""
Switchboard - a declarative component-wiring runtime.

Architecture:
    - Core: capability runtime, Context, Sheet, Application
    - Logic: token grammar, transition systems, Statemachine
    - Components: standard components shipped as libraries

Applications are described as data: a context declaring components, a set
of sheets (staged invocations plus event -> operation connections) and a
controller whose events switch the active sheet.

Example:
    import asyncio
    from switchboard import Application

    app = Application.from_file("application.json")
    asyncio.run(app.start())
"""

from .components import LogSink, Ticker, TokenSender
from .core import (
    Application,
    Component,
    ConfigurationError,
    Context,
    RuntimeConfig,
    Sheet,
    SwitchboardError,
    WiringError,
    connect,
    create,
    disconnect,
    invoke,
)
from .logic import Statemachine, TransitionSystem, parse

__version__ = "1.0.0"
__author__ = "Switchboard Team"

__all__ = [
    # Core
    "Application",
    "Context",
    "Sheet",
    "Component",
    "RuntimeConfig",
    "create",
    "connect",
    "disconnect",
    "invoke",
    # Logic
    "Statemachine",
    "TransitionSystem",
    "parse",
    # Components
    "LogSink",
    "Ticker",
    "TokenSender",
    # Errors
    "SwitchboardError",
    "ConfigurationError",
    "WiringError",
]
