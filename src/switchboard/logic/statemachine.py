"""
Statemachine - live transition table driving which sheet is active.

Transitions are labelled either with a plain token or with a token
expression such as `a & b` or `(a | b) & c`. Expressions are compiled into a
transition system whose intermediate states are spliced into the live table
between the transition's start and end states.

Every token seen in a transition becomes an operation of the instance, so a
component event can be connected straight to e.g. `found` instead of going
through `set_token`.
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.component import Component
from ..core.errors import GrammarError
from .grammar import identifiers, parse
from .transition import TransitionSystem

log = logging.getLogger(__name__)


class Statemachine(
    Component,
    operations=["set_token"],
    events=["request_sheet", "request_termination"],
):
    """
    Deterministic statemachine.

    Args:
        description: optional mapping with `initial`, `final` and
            `transitions` (state -> {token expression -> end state}).
    """

    def __init__(self, description: Optional[Mapping[str, Any]] = None):
        self._initial = ""
        self._final = ""
        self._current = ""
        self._table: Dict[str, Dict[str, str]] = {}
        self._tokens: Dict[str, Callable[[], None]] = {}

        if description is not None:
            self._initial = description.get("initial", "")
            self._final = description.get("final", "")
            self.set_transitions(description.get("transitions") or {})

    @property
    def initial(self) -> str:
        return self._initial

    @property
    def final(self) -> str:
        return self._final

    @property
    def current_state(self) -> str:
        return self._current

    @property
    def tokens(self) -> List[str]:
        return list(self._tokens)

    def transitions(self) -> Dict[str, Dict[str, str]]:
        return {state: dict(row) for state, row in self._table.items()}

    def set_initial_state(self, state: str) -> None:
        self._initial = state
        self._current = state

    def set_final_state(self, state: str) -> None:
        self._final = state

    # Tokens are resolved as operations at call time

    def _register_token(self, token: str) -> None:
        if token not in self._tokens:
            self._tokens[token] = functools.partial(self.set_token, token)

    def operation_list(self) -> List[str]:
        return super().operation_list() + [t for t in self._tokens if t != "set_token"]

    def resolve_operation(self, name: str) -> Optional[Callable[..., Any]]:
        handler = super().resolve_operation(name)
        if handler is None:
            handler = self._tokens.get(name)
        return handler

    def _insert_edge(self, start: str, token: str, end: str) -> None:
        self._table.setdefault(start, {})[token] = end

    def add_transition(self, start: str, expression: str, end: str) -> None:
        """
        Add `start --expression--> end` to the live table.

        A plain token becomes a direct edge; a token expression is compiled
        and its edges merged in. Text that does not parse is used verbatim as
        a plain token. Existing edges are overwritten on collision.
        """
        try:
            tree = parse(expression)
        except GrammarError as e:
            log.debug(f"Using '{expression}' as a literal token ({e})")
            tree = expression

        if isinstance(tree, str):
            self._insert_edge(start, tree, end)
            self._register_token(tree)
            return

        for token in identifiers(expression):
            self._register_token(token)

        compiled = TransitionSystem.build(tree).clone(f"{start}_{end}_")
        compiled.rename_state(compiled.initial, start)
        if end == start:
            compiled.merge_state(compiled.final, end)
        else:
            compiled.rename_state(compiled.final, end)

        compiled.visit_transitions(self._insert_edge)

    def set_transitions(self, transitions: Mapping[str, Mapping[str, str]]) -> None:
        """Add every transition of a `state -> {expression -> end}` mapping."""
        for start, row in transitions.items():
            for expression, end in row.items():
                self.add_transition(start, expression, end)

    def set_token(self, token: str) -> None:
        """Feed `token`. Without a matching edge from the current state it is ignored."""
        row = self._table.get(self._current)
        if not row or token not in row:
            log.debug(f"Token '{token}' ignored in state '{self._current}'")
            return

        self._current = row[token]
        log.debug(f"Token '{token}' -> state '{self._current}'")
        self.emit("request_sheet", self._current)
        if self._current == self._final:
            self.emit("request_termination")

    def start(self) -> None:
        """Reset to the initial state and request its sheet."""
        self._current = self._initial
        self.emit("request_sheet", self._current)
