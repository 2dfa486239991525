"""
Sheets - ordered bundles of staged invocations and connections.

A sheet is one operational configuration of an application. Activating it
runs its pre-connection invocations, establishes its connections and then
runs its post-connection invocations. Deactivating it removes the
connections and runs the cleanup invocations.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from . import component
from .context import Context
from .errors import WiringError

log = logging.getLogger(__name__)


class Stage(Enum):
    """When an invocation runs relative to the sheet's connections."""

    PRE_CONNECTION = "preconnections"
    POST_CONNECTION = "postconnections"
    CLEANUP = "cleanups"


def _as_args(value: Any) -> Sequence[Any]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return value
    return (value,)


class Invocation:
    """A staged call of one operation with a literal value or a constant reference."""

    def __init__(
        self,
        destination: Any,
        operation: str,
        value: Any = None,
        ref: Optional[str] = None,
    ):
        self.destination = destination
        self.operation = operation
        self.value = value
        self.ref = ref
        self.id: Optional[int] = None

    @classmethod
    def cast(cls, description: Mapping[str, Any], context: Context) -> "Invocation":
        """Build an invocation from its description, resolving names through `context`."""
        destination = context.get_component(description["destination"])
        if destination is None:
            log.error(f"Destination {description['destination']} is undefined")

        ref = description.get("ref")
        if "value" in description or ref is None:
            return cls(destination, description["slot"], description.get("value"))
        return cls(destination, description["slot"], context.get_constant(ref), ref=ref)

    def invoke(self) -> None:
        handler = None
        if component.is_component(self.destination):
            handler = self.destination.resolve_operation(self.operation)
        if handler is None:
            log.error(f"Undefined slot {self.operation} of component {self.destination!r}")
            return
        handler(*_as_args(self.value))

    def to_dict(self, context: Context) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "destination": context.get_component_name(self.destination),
            "slot": self.operation,
        }
        if self.ref is not None:
            data["ref"] = self.ref
        else:
            data["value"] = self.value
        return data


class Connection:
    """A (source, event, destination, operation) binding that can be made and unmade."""

    def __init__(self, source: Any, event: str, destination: Any, operation: str):
        self.source = source
        self.event = event
        self.destination = destination
        self.operation = operation
        self.id: Optional[int] = None

    @classmethod
    def cast(cls, description: Mapping[str, Any], context: Context) -> "Connection":
        return cls(
            context.get_component(description["source"]),
            description["signal"],
            context.get_component(description["destination"]),
            description["slot"],
        )

    def connect(self) -> None:
        try:
            component.connect(self.source, self.event, self.destination, self.operation)
        except WiringError as e:
            log.error(f"{e} ({self.event} -> {self.operation})")

    def disconnect(self) -> None:
        component.disconnect(self.source, self.event, self.destination, self.operation)

    def to_dict(self, context: Context) -> Dict[str, Any]:
        return {
            "source": context.get_component_name(self.source),
            "signal": self.event,
            "destination": context.get_component_name(self.destination),
            "slot": self.operation,
        }


class _Entries:
    """One ordered list of a sheet, with monotonic per-list ids."""

    def __init__(self):
        self.items: List[Any] = []
        self._count = 0

    def append(self, item: Any) -> int:
        item.id = self._count
        self._count += 1
        self.items.append(item)
        return item.id

    def _index(self, entry_id: int) -> int:
        for i in range(len(self.items) - 1, -1, -1):
            if self.items[i].id == entry_id:
                return i
        return -1

    def remove(self, entry_id: int) -> None:
        i = self._index(entry_id)
        if i < 0:
            log.warning(f"Could not remove data with id {entry_id}")
            return
        del self.items[i]

    def change(self, entry_id: int, value: Any) -> None:
        i = self._index(entry_id)
        if i >= 0:
            self.items[i].value = value

    def swap(self, id1: int, id2: int) -> None:
        # Positions are exchanged but ids stay with their slots
        i, j = self._index(id1), self._index(id2)
        if i >= 0 and j >= 0:
            self.items[i], self.items[j] = self.items[j], self.items[i]
            self.items[i].id = id1
            self.items[j].id = id2

    def clear(self) -> None:
        self.items.clear()

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class Sheet:
    """
    Ordered bundle of invocations and connections bound to a context.

    The sheet owns a child context chained to the one it is created with, so
    sheet-level components may be declared without touching the parent.
    """

    def __init__(self, context: Optional[Context] = None):
        self._parent_context = context
        self.context = Context(
            parent=context,
            loader=context.loader if context is not None else None,
            library_root=context.library_root if context is not None else ".",
        )
        self._invocations: Dict[Stage, _Entries] = {stage: _Entries() for stage in Stage}
        self._connections = _Entries()

    def set_context(self, context: Context) -> None:
        self.context = context

    # Lifecycle

    async def activate(self) -> None:
        """Instantiate the context, then pre-connections, connections and post-connections."""
        await self.context.instantiate()
        for invocation in self._invocations[Stage.PRE_CONNECTION]:
            invocation.invoke()
        for connection in self._connections:
            connection.connect()
        for invocation in self._invocations[Stage.POST_CONNECTION]:
            invocation.invoke()

    def deactivate(self) -> None:
        """Remove every connection, then run the cleanups."""
        for connection in self._connections:
            connection.disconnect()
        for invocation in self._invocations[Stage.CLEANUP]:
            invocation.invoke()

    # Editing

    def _add_invocation(self, stage: Stage, description: Mapping[str, Any]) -> int:
        return self._invocations[stage].append(Invocation.cast(description, self.context))

    def add_preconnection(self, description: Mapping[str, Any]) -> int:
        return self._add_invocation(Stage.PRE_CONNECTION, description)

    def add_postconnection(self, description: Mapping[str, Any]) -> int:
        return self._add_invocation(Stage.POST_CONNECTION, description)

    def add_cleanup(self, description: Mapping[str, Any]) -> int:
        return self._add_invocation(Stage.CLEANUP, description)

    def add_connection(self, description: Mapping[str, Any]) -> int:
        return self._connections.append(Connection.cast(description, self.context))

    def remove_preconnection(self, entry_id: int) -> None:
        self._invocations[Stage.PRE_CONNECTION].remove(entry_id)

    def remove_postconnection(self, entry_id: int) -> None:
        self._invocations[Stage.POST_CONNECTION].remove(entry_id)

    def remove_cleanup(self, entry_id: int) -> None:
        self._invocations[Stage.CLEANUP].remove(entry_id)

    def remove_connection(self, entry_id: int) -> None:
        self._connections.remove(entry_id)

    def change_preconnection(self, entry_id: int, value: Any) -> None:
        self._invocations[Stage.PRE_CONNECTION].change(entry_id, value)

    def change_postconnection(self, entry_id: int, value: Any) -> None:
        self._invocations[Stage.POST_CONNECTION].change(entry_id, value)

    def change_cleanup(self, entry_id: int, value: Any) -> None:
        self._invocations[Stage.CLEANUP].change(entry_id, value)

    def swap_preconnections(self, id1: int, id2: int) -> None:
        self._invocations[Stage.PRE_CONNECTION].swap(id1, id2)

    def swap_postconnections(self, id1: int, id2: int) -> None:
        self._invocations[Stage.POST_CONNECTION].swap(id1, id2)

    def swap_cleanups(self, id1: int, id2: int) -> None:
        self._invocations[Stage.CLEANUP].swap(id1, id2)

    def swap_connections(self, id1: int, id2: int) -> None:
        self._connections.swap(id1, id2)

    def invocations(self, stage: Stage) -> List[Invocation]:
        return list(self._invocations[stage])

    def connections(self) -> List[Connection]:
        return list(self._connections)

    # Description format

    async def import_description(self, description: Mapping[str, Any]) -> None:
        """
        Rebuild the four lists from a structured description.

        A description carrying its own `context` gets a fresh context chained
        to the one this sheet was created with. Entries are cast once that
        context has been instantiated.
        """
        if "context" in description:
            self.context = Context(
                description["context"],
                parent=self._parent_context,
                loader=self.context.loader,
                library_root=self.context.library_root,
            )

        await self.context.instantiate()

        for entries in self._invocations.values():
            entries.clear()
        self._connections.clear()

        for stage in Stage:
            for item in description.get(stage.value) or []:
                self._add_invocation(stage, item)
        for item in description.get("connections") or []:
            self.add_connection(item)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            stage.value: [i.to_dict(self.context) for i in self._invocations[stage]]
            for stage in Stage
        }
        data["connections"] = [c.to_dict(self.context) for c in self._connections]
        return data
