"""
Context - scoped registry of components, constants and factories.

A context maps component names to descriptors (type tag, construction
source, resolved instance). Instantiation resolves every descriptor that has
no instance yet; lookups that miss in a child context fall through to its
parent, while mutations never touch the parent.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ConfigurationError, ConstructionError
from .loader import Factory, Loader, load_resource
from .loader import load_library as _load_library

log = logging.getLogger(__name__)


def _default_factories() -> Dict[str, Factory]:
    from ..logic.statemachine import Statemachine

    return {"StateMachine": Statemachine}


@dataclass
class ComponentDescriptor:
    """
    Declaration of one component.

    At most one construction source is used, in this order: a direct
    `value`, a resource `url` whose content becomes the argument, or a
    `ref` to a constant of the owning context. Without any of them the
    factory is called with no argument.
    """

    type: str
    value: Any = None
    url: Optional[str] = None
    ref: Optional[str] = None
    instance: Any = None

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "ComponentDescriptor":
        if "type" not in data:
            raise ConfigurationError(f"Component '{name}' has no type")
        return cls(
            type=data["type"],
            value=data.get("value"),
            url=data.get("url"),
            ref=data.get("ref"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.value is not None:
            data["value"] = self.value
        elif self.url is not None:
            data["url"] = self.url
        elif self.ref is not None:
            data["ref"] = self.ref
        return data


@dataclass
class InstantiationReport:
    """Outcome of one instantiation pass."""

    instantiated: List[str] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors

    def record(self, name: str, error: Optional[Exception]) -> None:
        if error is None:
            self.instantiated.append(name)
        else:
            log.error(f"{error}")
            self.errors.append(error)


class Context:
    """
    Scoped registry used by applications and sheets.

    Args:
        description: mapping with optional `libraries`, `components` and
            `constants` keys, as found in an application description.
        parent: context consulted when a lookup misses here.
        loader: pluggable resource loader for `url`-backed components.
        library_root: base directory for library file locators.
    """

    def __init__(
        self,
        description: Optional[Mapping[str, Any]] = None,
        parent: Optional["Context"] = None,
        loader: Optional[Loader] = None,
        library_root: str = ".",
    ):
        self._components: Dict[str, ComponentDescriptor] = {}
        self._constants: Dict[str, Any] = {}
        self._factories: Dict[str, Factory] = _default_factories()
        self._libraries: List[str] = []
        self._loaded_libraries: set = set()
        self._parent: Optional[Context] = None

        self.loader: Loader = loader or load_resource
        self.library_root = library_root

        if description:
            self._libraries.extend(description.get("libraries") or [])
            for name, data in (description.get("components") or {}).items():
                self._components[name] = ComponentDescriptor.from_dict(name, data)
            self._constants.update(description.get("constants") or {})

        if parent is not None:
            self.set_parent(parent)

    # Scoping

    @property
    def parent(self) -> Optional["Context"]:
        return self._parent

    def set_parent(self, parent: Optional["Context"]) -> None:
        """Chain this context to `parent` for lookups that miss locally."""
        if parent is self:
            raise ConfigurationError("A context cannot be its own parent")
        self._parent = parent

    def _descriptor(self, name: str) -> Optional[ComponentDescriptor]:
        if name in self._components:
            return self._components[name]
        if self._parent is not None:
            return self._parent._descriptor(name)
        return None

    # Lookups

    def component_list(self) -> List[str]:
        """Names of the components declared in this context (parents excluded)."""
        return list(self._components)

    def get_component(self, name: str) -> Any:
        descriptor = self._descriptor(name)
        return descriptor.instance if descriptor else None

    def get_component_type(self, name: str) -> Optional[str]:
        descriptor = self._descriptor(name)
        return descriptor.type if descriptor else None

    def get_component_value(self, name: str) -> Any:
        descriptor = self._descriptor(name)
        return descriptor.value if descriptor else None

    def get_component_name(self, instance: Any) -> Optional[str]:
        """Reverse lookup: the name under which `instance` is registered."""
        for name, descriptor in self._components.items():
            if descriptor.instance is not None and descriptor.instance is instance:
                return name
        if self._parent is not None:
            return self._parent.get_component_name(instance)
        return None

    def get_constant(self, name: str) -> Any:
        if name in self._constants:
            return self._constants[name]
        if self._parent is not None:
            return self._parent.get_constant(name)
        return None

    def set_constant(self, name: str, value: Any) -> None:
        self._constants[name] = value

    def get_factory(self, type_tag: str) -> Optional[Factory]:
        if type_tag in self._factories:
            return self._factories[type_tag]
        if self._parent is not None:
            return self._parent.get_factory(type_tag)
        return None

    def factory_list(self) -> List[str]:
        names = list(self._factories)
        if self._parent is not None:
            names.extend(n for n in self._parent.factory_list() if n not in self._factories)
        return names

    def set_factory(self, type_tag: str, factory: Factory) -> None:
        """Register `factory` under `type_tag`, replacing any previous one."""
        self._factories[type_tag] = factory

    # Tooling mutations

    def add_component(self, name: str, type_tag: str, value: Any = None) -> None:
        """Declare a component, constructing it right away when its factory is known."""
        descriptor = ComponentDescriptor(type=type_tag, value=value)
        self._components[name] = descriptor

        factory = self.get_factory(type_tag)
        if factory is not None:
            args = () if value is None else (value,)
            error = self._construct(name, descriptor, factory, *args)
            if error is not None:
                log.error(f"{error}")

    def remove_component(self, name: str) -> None:
        self._components.pop(name, None)

    def set_component_value(self, name: str, value: Any) -> None:
        if name not in self._components:
            raise ConfigurationError(f"Component '{name}' is not declared in this context")
        self._components[name].value = value

    # Libraries

    @property
    def libraries(self) -> List[str]:
        return list(self._libraries)

    async def load_library(self, locator: str) -> Dict[str, Factory]:
        """Load a component library and register its factories into this context."""
        factories = await _load_library(locator, self, self.library_root)
        self._loaded_libraries.add(locator)
        if locator not in self._libraries:
            self._libraries.append(locator)
        return factories

    # Instantiation

    def _construct(
        self, name: str, descriptor: ComponentDescriptor, factory: Factory, *args: Any
    ) -> Optional[Exception]:
        try:
            descriptor.instance = factory(*args)
        except Exception as e:
            return ConstructionError(name, e)
        return None

    async def _fetch_and_construct(
        self, name: str, descriptor: ComponentDescriptor, factory: Factory
    ) -> Tuple[str, Optional[Exception]]:
        try:
            resource = await asyncio.to_thread(self.loader, descriptor.url)
        except Exception as e:
            return name, ConstructionError(name, e)
        return name, self._construct(name, descriptor, factory, resource)

    async def instantiate(self) -> InstantiationReport:
        """
        Load declared libraries, then construct every component lacking an instance.

        Completes once every resource-backed construction has finished.
        Construction failures leave the component without an instance; a
        missing factory or library aborts the remainder of the pass.
        """
        report = InstantiationReport()

        pending = [lib for lib in self._libraries if lib not in self._loaded_libraries]
        if pending:
            results = await asyncio.gather(
                *(self.load_library(lib) for lib in pending), return_exceptions=True
            )
            failures = [r for r in results if isinstance(r, Exception)]
            if failures:
                for error in failures:
                    log.error(f"Trouble instantiating context: {error}")
                report.errors.extend(failures)
                report.aborted = True
                return report

        deferred: List[Tuple[str, ComponentDescriptor, Factory]] = []
        for name, descriptor in self._components.items():
            if descriptor.instance is not None:
                continue

            factory = self.get_factory(descriptor.type)
            if factory is None:
                error = ConfigurationError(
                    f"Factory {descriptor.type} not found for component '{name}'"
                )
                report.record(name, error)
                log.error(
                    f"Context dump follows: libraries={self._libraries} "
                    f"components={list(self._components)} constants={list(self._constants)}"
                )
                report.aborted = True
                return report

            if descriptor.value is not None:
                report.record(name, self._construct(name, descriptor, factory, descriptor.value))
            elif descriptor.url is not None:
                deferred.append((name, descriptor, factory))
            elif descriptor.ref is not None:
                if descriptor.ref not in self._constants:
                    report.record(
                        name,
                        ConfigurationError(
                            f"Constant '{descriptor.ref}' not found for component '{name}'"
                        ),
                    )
                    continue
                constant = self._constants[descriptor.ref]
                report.record(name, self._construct(name, descriptor, factory, constant))
            else:
                report.record(name, self._construct(name, descriptor, factory))

        if deferred:
            results = await asyncio.gather(*(self._fetch_and_construct(*item) for item in deferred))
            for name, error in results:
                report.record(name, error)

        log.debug(
            f"Instantiated {len(report.instantiated)} component(s), {len(report.errors)} error(s)"
        )
        return report

    def to_dict(self) -> Dict[str, Any]:
        """Declarative description of this context (parents excluded)."""
        return {
            "libraries": list(self._libraries),
            "components": {name: d.to_dict() for name, d in self._components.items()},
            "constants": dict(self._constants),
        }
