"""
Error taxonomy for Switchboard.

Configuration problems are fatal to the unit they affect, wiring problems
are raised synchronously by the capability primitives, grammar problems are
absorbed by the statemachine, and construction problems are recorded per
component during instantiation.
"""

from typing import Optional


class SwitchboardError(Exception):
    """Base class for every error raised by the runtime."""


class ConfigurationError(SwitchboardError):
    """A declaration cannot be honoured (missing factory, controller, constant, ...)."""


class WiringError(SwitchboardError):
    """A connection or invocation refers to something that does not exist."""


class SourceIsNotComponent(WiringError):
    def __init__(self, source: object):
        super().__init__(f"Source is not a component: {source!r}")
        self.source = source


class UndefinedEvent(WiringError):
    def __init__(self, component: object, event: str):
        super().__init__(f"Event '{event}' is not defined on {type(component).__name__}")
        self.component = component
        self.event = event


class UndefinedOperation(WiringError):
    def __init__(self, component: object, operation: str):
        super().__init__(f"Operation '{operation}' is not defined on {type(component).__name__}")
        self.component = component
        self.operation = operation


class GrammarError(SwitchboardError):
    """A token expression does not follow the token grammar."""

    def __init__(self, text: str, position: int, expected: str):
        found = repr(text[position]) if position < len(text) else "end of input"
        super().__init__(f"Expected {expected} but {found} found at {position} in {text!r}")
        self.text = text
        self.position = position


class ConstructionError(SwitchboardError):
    """A factory (or the resource it depends on) failed for one component."""

    def __init__(self, name: str, cause: Optional[BaseException] = None):
        message = f"Component '{name}' not instantiated"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.name = name
        self.cause = cause


class StateCollisionError(SwitchboardError):
    """Renaming an automaton state onto a name that is already in use."""
