"""
Transition systems compiled from token expressions.

A transition system is a finite automaton with one initial and one final
state and a deterministic table `state -> token -> state`. Expressions are
compiled bottom-up: identifiers become one-edge automata, `|` is the union
sharing start and accept states, and `&` splices the right operand into
every state of the left one.

Collisions are avoided by renaming: every composition works on clones whose
state names carry a fresh prefix.
"""

import itertools
import logging
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..core.errors import StateCollisionError
from .grammar import AND, OR, Expression, Term

log = logging.getLogger(__name__)

Edge = Tuple[str, str, str]


class TransitionSystem:
    """
    Finite automaton `(initial, final, table)`.

    `TransitionSystem("a")` accepts the single token `a`.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        initial: str = "a$",
        final: str = "z$",
    ):
        self.initial = ""
        self.final = ""
        self._table: Dict[str, Dict[str, str]] = {}

        if token is not None:
            self.initial = initial
            self.final = final
            self.add_transition(initial, token, final)

    def add_transition(self, start: str, token: str, end: str) -> None:
        self._table.setdefault(start, {})[token] = end

    def edges(self) -> Iterator[Edge]:
        for start, row in self._table.items():
            for token, end in row.items():
                yield start, token, end

    def transitions(self) -> Dict[str, Dict[str, str]]:
        return {start: dict(row) for start, row in self._table.items()}

    def visit_transitions(self, visitor: Callable[[str, str, str], None]) -> None:
        """Call `visitor(start, token, end)` for every edge."""
        for start, token, end in list(self.edges()):
            visitor(start, token, end)

    def states(self) -> List[str]:
        """States appearing in the table, in order of appearance."""
        states: List[str] = []
        for start, _, end in self.edges():
            if start not in states:
                states.append(start)
            if end not in states:
                states.append(end)
        return states

    def has_state(self, state: str) -> bool:
        if state in (self.initial, self.final) or state in self._table:
            return True
        return any(end == state for _, _, end in self.edges())

    def clone(self, prefix: str = "") -> "TransitionSystem":
        """Structurally identical copy with every state renamed `prefix + state`."""
        result = TransitionSystem()
        result.initial = prefix + self.initial
        result.final = prefix + self.final
        for start, token, end in self.edges():
            result.add_transition(prefix + start, token, prefix + end)
        return result

    def fuse(
        self,
        other: "TransitionSystem",
        initial: Optional[str] = None,
        final: Optional[str] = None,
    ) -> "TransitionSystem":
        """
        Table union of this system and a copy of `other`.

        On a (state, token) collision this system wins. The initial and final
        states are this system's unless overridden.
        """
        result = other.clone()
        for start, token, end in self.edges():
            result.add_transition(start, token, end)
        result.initial = self.initial if initial is None else initial
        result.final = self.final if final is None else final
        return result

    def rename_state(self, current: str, new: str) -> None:
        """Rename `current` to `new` in place. `new` must not name a state yet."""
        if self.has_state(new):
            raise StateCollisionError(f"State '{new}' already exists, cannot rename '{current}'")
        self.merge_state(current, new)

    def merge_state(self, current: str, new: str) -> None:
        """Rename `current` to `new`, merging its outgoing edges into `new`'s."""
        if self.initial == current:
            self.initial = new
        if self.final == current:
            self.final = new
        if current in self._table:
            row = self._table.pop(current)
            self._table.setdefault(new, {}).update(row)
        for row in self._table.values():
            for token, end in row.items():
                if end == current:
                    row[token] = new

    def and_(self, other: "TransitionSystem") -> "TransitionSystem":
        """
        Conjunction: a prefix of this system's run, all of `other`, then the rest.

        Two copies of this system are laid side by side (`i` and `j`); for each
        state `s` a copy of `other` leads from `i+s` to `j+s`. Exact for
        single-token operands; multi-token operands are spliced as one block
        rather than interleaved.
        """
        left_i = self.clone("i")
        left_j = self.clone("j")
        result = left_i.fuse(left_j, left_i.initial, left_j.final)

        for index, state in enumerate(self.states()):
            right = other.clone(f"k{index}")
            right.rename_state(right.initial, "i" + state)
            right.rename_state(right.final, "j" + state)
            result = result.fuse(right)
        return result

    def or_(self, other: "TransitionSystem") -> "TransitionSystem":
        """Union sharing this system's start and accept states."""
        left = self.clone("s")
        right = other.clone("t")
        right.rename_state(right.initial, left.initial)
        right.rename_state(right.final, left.final)
        return left.fuse(right)

    __and__ = and_
    __or__ = or_

    @classmethod
    def build(
        cls,
        tree: Expression,
        depth: int = 1,
        allocator: Optional[Iterator[int]] = None,
    ) -> "TransitionSystem":
        """
        Compile a parsed token expression.

        Operands are cloned under tags drawn from one allocator shared by the
        whole compilation, so sibling sub-expressions never share state names.
        """
        if allocator is None:
            allocator = itertools.count(1)

        if isinstance(tree, str):
            return cls(tree).clone(f"w0d{depth}")

        result = cls.build(tree[0], depth + 1, allocator)
        for term in tree[1:]:
            if not isinstance(term, Term) or term.operator not in (AND, OR):
                log.warning(f"Illegal expression tree node: {term!r}")
                continue
            operand = cls.build(term.operand, depth + 1, allocator).clone(f"w{next(allocator)}")
            result = result.and_(operand) if term.operator == AND else result.or_(operand)
        return result

    def dump(self) -> None:
        log.debug(f"@ = {self.initial}, + = {self.final}")
        for start, token, end in self.edges():
            log.debug(f"  {start}\t---\t{token}\t-->\t{end}")

    def __repr__(self) -> str:
        edges = len(list(self.edges()))
        return f"TransitionSystem(initial={self.initial!r}, final={self.final!r}, edges={edges})"
