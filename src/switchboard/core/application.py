"""
Switchboard Application - the master object of the runtime.

An application composes one context, a set of named sheets and one
controller (typically a statemachine). The controller's `request_sheet`
event switches the active sheet, and `request_termination` ends the run.
Exactly one sheet is active at a time.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Set

from . import component
from .component import Component
from .config import RuntimeConfig
from .context import Context, InstantiationReport
from .errors import ConfigurationError
from .loader import Factory, Loader, make_loader
from .sheet import Sheet

log = logging.getLogger(__name__)


class Application(Component, operations=["switch_sheet", "finish"]):
    """
    Runnable composition of a context, sheets and a controller.

    Description format:
        {
            "context": {"libraries": [...], "components": {...}, "constants": {...}},
            "controller": "name of a component",
            "sheets": {"name": {"preconnections": [...], "connections": [...],
                                "postconnections": [...], "cleanups": [...]}}
        }
    """

    def __init__(
        self,
        description: Optional[Mapping[str, Any]] = None,
        config: Optional[RuntimeConfig] = None,
        loader: Optional[Loader] = None,
    ):
        self.config = config or RuntimeConfig()
        self._loader = loader or make_loader(self.config.env)

        self.context = self._new_context()
        self.controller: Any = None
        self._controller_name: Optional[str] = None
        self._sheets: Dict[str, Sheet] = {}
        self._sheet_descriptions: Dict[str, Mapping[str, Any]] = {}
        self._current: Optional[str] = None

        self._pending: Set[asyncio.Task] = set()
        self._activation: Optional[asyncio.Task] = None
        self._finished = asyncio.Event()

        if description is not None:
            self.import_description(description)

    @classmethod
    def from_description(cls, description: Mapping[str, Any], **kwargs) -> "Application":
        return cls(description, **kwargs)

    @classmethod
    def from_file(cls, path: str, **kwargs) -> "Application":
        """Build an application from a JSON description file."""
        with open(path, "r", encoding="utf-8") as fp:
            return cls(json.load(fp), **kwargs)

    def _new_context(self, description: Optional[Mapping[str, Any]] = None) -> Context:
        return Context(
            description,
            loader=self._loader,
            library_root=self.config.env.resource_root,
        )

    # Description format

    def import_description(self, description: Mapping[str, Any]) -> None:
        """Replace context, sheets and controller with those of `description`."""
        self.context = self._new_context(description.get("context"))
        self._sheets = {}
        self._sheet_descriptions = dict(description.get("sheets") or {})
        self._current = None
        self.controller = None
        self._controller_name = description.get("controller")
        if self._controller_name is None:
            log.error("Undefined controller. Cannot start application.")

    def export(self) -> Dict[str, Any]:
        """Structured description of this application."""
        sheets: Dict[str, Any] = {name: sheet.to_dict() for name, sheet in self._sheets.items()}
        for name, description in self._sheet_descriptions.items():
            sheets.setdefault(name, description)

        controller = self._controller_name
        if controller is None and self.controller is not None:
            controller = self.context.get_component_name(self.controller)

        return {"context": self.context.to_dict(), "controller": controller, "sheets": sheets}

    # Sheets and controller

    def sheet_list(self) -> List[str]:
        return list(self._sheets) + [n for n in self._sheet_descriptions if n not in self._sheets]

    def get_sheet(self, name: str) -> Optional[Sheet]:
        return self._sheets.get(name)

    def add_sheet(self, name: str, sheet: Sheet) -> None:
        self._sheets[name] = sheet
        sheet.set_context(self.context)

    def remove_sheet(self, name: str) -> None:
        self._sheets.pop(name, None)
        self._sheet_descriptions.pop(name, None)

    @property
    def current_sheet(self) -> Optional[str]:
        return self._current

    def set_controller(self, name: str) -> None:
        self._controller_name = name
        self.controller = self.context.get_component(name)

    def set_factory(self, type_tag: str, factory: Factory) -> None:
        """Register a factory; an existing one under the same tag is replaced."""
        self.context.set_factory(type_tag, factory)

    # Lifecycle

    async def start(self) -> InstantiationReport:
        """
        Instantiate the context, build the sheets, wire the controller and start it.

        Raises ConfigurationError when the controller cannot be resolved.
        """
        log.info("Starting application")
        report = await self.context.instantiate()

        if self._controller_name is not None:
            self.controller = self.context.get_component(self._controller_name)
        if self.controller is None:
            error = ConfigurationError(
                f"Controller '{self._controller_name}' is not available. Cannot start application."
            )
            log.error(f"{error}")
            raise error

        for name, description in self._sheet_descriptions.items():
            sheet = Sheet(self.context)
            await sheet.import_description(description)
            self._sheets[name] = sheet
        self._sheet_descriptions = {}

        # Restarting must not wire the controller twice
        component.disconnect(self.controller, "request_sheet", self, "switch_sheet")
        component.disconnect(self.controller, "request_termination", self, "finish")
        component.connect(self.controller, "request_sheet", self, "switch_sheet")
        component.connect(self.controller, "request_termination", self, "finish")
        self._finished.clear()
        self.controller.start()
        return report

    def switch_sheet(self, name: str) -> None:
        """
        Make `name` the active sheet.

        The current sheet is deactivated first; the new one's activation is
        scheduled on the running event loop (or run to completion when there
        is none). While the current sheet is still activating, its
        deactivation and the new activation wait for it. Unknown names are
        ignored with a warning.
        """
        if name not in self._sheets:
            log.warning(f"Tried to activate hollow sheet named: {name}")
            return

        leaving = self._sheets[self._current] if self._current is not None else None
        entering = self._sheets[name]

        log.info(f"Switching to sheet '{name}'")
        self._current = name

        previous = self._activation
        if previous is not None and not previous.done():
            self._activation = self._schedule(self._switch_after(previous, leaving, entering))
            return

        if leaving is not None:
            leaving.deactivate()
        self._activation = self._schedule(entering.activate())

    def finish(self) -> None:
        """Deactivate the current sheet. The context is left as is."""
        current = self._sheets[self._current] if self._current is not None else None

        previous = self._activation
        if previous is not None and not previous.done():
            self._activation = self._schedule(self._finish_after(previous, current))
            return

        if current is not None:
            current.deactivate()
        self._mark_finished()

    def _mark_finished(self) -> None:
        log.info("Application finished")
        self._finished.set()

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    async def wait_finished(self) -> None:
        await self._finished.wait()

    async def _deactivate_after(self, previous: asyncio.Task, sheet: Optional[Sheet]) -> None:
        """Deactivate `sheet` once its pending activation `previous` has been applied."""
        await asyncio.wait([previous])
        if sheet is not None and not previous.cancelled() and previous.exception() is None:
            sheet.deactivate()

    async def _switch_after(
        self, previous: asyncio.Task, leaving: Optional[Sheet], entering: Sheet
    ) -> None:
        await self._deactivate_after(previous, leaving)
        await entering.activate()

    async def _finish_after(self, previous: asyncio.Task, current: Optional[Sheet]) -> None:
        await self._deactivate_after(previous, current)
        self._mark_finished()

    def _schedule(self, activation) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(activation)
            return None

        task = loop.create_task(activation)
        self._pending.add(task)
        task.add_done_callback(self._activation_done)
        return task

    def _activation_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error(f"Sheet activation failed: {task.exception()}")

    async def settle(self) -> None:
        """Wait until every scheduled sheet activation has completed."""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
