"""
Capability runtime for Switchboard.

Any class can be given a fixed set of named operations and named events.
Instances then expose `emit`, and the module-level `connect`, `disconnect`
and `invoke` primitives wire them together without either side knowing the
other by name.

Example:
    class Greeter(Component, operations=["greet"], events=["greeted"]):
        def greet(self, name):
            self.emit("greeted", f"hello {name}")

    class Printer(Component, operations=["show"]):
        def show(self, text):
            print(text)

    greeter, printer = Greeter(), Printer()
    connect(greeter, "greeted", printer, "show")
    invoke(greeter, "greet", ["world"])
"""

import logging
from types import MappingProxyType
from typing import Any, Callable, Iterable, List, NamedTuple, Optional, Sequence

from .errors import ConfigurationError, SourceIsNotComponent, UndefinedEvent, UndefinedOperation

log = logging.getLogger(__name__)

_CAPABILITIES = ("emit", "operation_list", "event_list", "resolve_operation")


class Binding(NamedTuple):
    """One event -> operation delivery registered on a source instance."""

    destination: Any
    operation: str
    handler: Callable[..., Any]


class Component:
    """
    Base class for components.

    Operations and events are declared once per type through class keywords.
    Subclasses inherit the declarations of their parents and may extend them.
    """

    __operations__: Sequence[str] = ()
    __events__: Sequence[str] = ()

    def __init_subclass__(cls, operations=None, events=None, **kwargs):
        super().__init_subclass__(**kwargs)
        if operations is not None or events is not None:
            create(cls, operations or (), events or ())

    def emit(self, event: str, *args: Any) -> None:
        """Deliver `args` to every operation connected to `event`, in registration order."""
        if event not in type(self).__events__:
            raise UndefinedEvent(self, event)

        bindings = getattr(self, "__dict__", {}).get("_bindings")
        if not bindings:
            return

        # Snapshot so handlers may rewire the source while we deliver
        for binding in tuple(bindings[event]):
            binding.handler(*args)

    def operation_list(self) -> List[str]:
        return list(type(self).__operations__)

    def event_list(self) -> List[str]:
        return list(type(self).__events__)

    def resolve_operation(self, name: str) -> Optional[Callable[..., Any]]:
        """Return the callable behind operation `name`, or None if it is not declared."""
        if name in type(self).__operations__:
            return getattr(self, name)
        return None


def _merge(inherited: Iterable[str], declared: Iterable[str]) -> tuple:
    merged = list(inherited)
    for name in declared:
        if name not in merged:
            merged.append(name)
    return tuple(merged)


def create(cls: type, operations: Iterable[str] = (), events: Iterable[str] = ()) -> type:
    """
    Give component traits to `cls`.

    Declares the operation and event names of the type, installs the
    capability methods when the class does not already provide them, and
    returns the class so it can be used as a plain function or inside a
    decorator.
    """
    if not isinstance(cls, type):
        raise ConfigurationError(f"Cannot create a component from {cls!r}")
    if "__operations__" in cls.__dict__:
        raise ConfigurationError(f"Component {cls.__name__} is already declared")

    operations = _merge(getattr(cls, "__operations__", ()), operations)
    events = _merge(getattr(cls, "__events__", ()), events)

    for name in operations:
        if not callable(getattr(cls, name, None)):
            raise ConfigurationError(f"Operation '{name}' is not defined on {cls.__name__}")

    cls.__operations__ = operations
    cls.__events__ = events
    cls.__bindings_template__ = MappingProxyType({name: () for name in events})

    for capability in _CAPABILITIES:
        if not hasattr(cls, capability):
            setattr(cls, capability, getattr(Component, capability))

    log.debug(f"Declared component {cls.__name__}: operations={operations} events={events}")
    return cls


def declare(operations: Iterable[str] = (), events: Iterable[str] = ()):
    """Class decorator form of `create`."""

    def decorate(cls: type) -> type:
        return create(cls, operations, events)

    return decorate


def check(cls: type) -> bool:
    """Tell whether `cls` carries component traits."""
    return isinstance(cls, type) and hasattr(cls, "__bindings_template__")


def is_component(obj: Any) -> bool:
    return obj is not None and check(type(obj))


def _resolve(destination: Any, operation: str) -> Callable[..., Any]:
    handler = destination.resolve_operation(operation) if is_component(destination) else None
    if handler is None:
        raise UndefinedOperation(destination, operation)
    return handler


def connect(source: Any, event: str, destination: Any, operation: str) -> None:
    """
    Bind `event` of `source` to `operation` of `destination`.

    The same binding may be added twice, in which case it is delivered twice.
    """
    if not is_component(source):
        raise SourceIsNotComponent(source)
    if event not in type(source).__events__:
        raise UndefinedEvent(source, event)
    handler = _resolve(destination, operation)

    bindings = source.__dict__.get("_bindings")
    if bindings is None:
        # First write: each instance gets its own copy of the empty template
        bindings = {name: list(empty) for name, empty in source.__bindings_template__.items()}
        source._bindings = bindings

    bindings[event].append(Binding(destination, operation, handler))
    log.debug(
        f"Connected {type(source).__name__}.{event} -> {type(destination).__name__}.{operation}"
    )


def disconnect(source: Any, event: str, destination: Any, operation: str) -> None:
    """Remove every binding matching destination and operation. No-op if absent."""
    bindings = getattr(source, "__dict__", {}).get("_bindings")
    if not bindings or event not in bindings:
        return

    handler = destination.resolve_operation(operation) if is_component(destination) else None
    if handler is None:
        return

    bindings[event][:] = [
        binding
        for binding in bindings[event]
        if not (binding.destination is destination and binding.handler == handler)
    ]


def invoke(destination: Any, operation: str, args: Sequence[Any] = ()) -> Any:
    """Call `operation` on `destination` with positional `args`."""
    handler = _resolve(destination, operation)
    return handler(*args)
