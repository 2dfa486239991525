"""Tests for the transition-system algebra."""

import pytest

from switchboard.core.errors import StateCollisionError
from switchboard.logic.grammar import parse
from switchboard.logic.transition import TransitionSystem


def accepts(system, tokens):
    """Run `tokens` through `system` and tell whether it ends in the final state."""
    table = system.transitions()
    state = system.initial
    for token in tokens:
        row = table.get(state, {})
        if token not in row:
            return False
        state = row[token]
    return state == system.final


class TestBasics:
    def test_single_token(self):
        system = TransitionSystem("a")
        assert system.initial == "a$"
        assert system.final == "z$"
        assert accepts(system, ["a"])
        assert not accepts(system, ["b"])
        assert not accepts(system, [])

    def test_clones_are_disjoint_and_isomorphic(self):
        system = TransitionSystem.build(parse("a & b"))
        left, right = system.clone("L"), system.clone("R")

        assert set(left.states()).isdisjoint(right.states())
        assert [(s[1:], t, e[1:]) for s, t, e in left.edges()] == [
            (s[1:], t, e[1:]) for s, t, e in right.edges()
        ]
        assert [(s, t, e) for s, t, e in left.edges()] == [
            ("L" + s, t, "L" + e) for s, t, e in system.edges()
        ]

    def test_clone_does_not_alias(self):
        system = TransitionSystem("a")
        copy = system.clone()
        copy.add_transition("a$", "b", "z$")
        assert "b" not in system.transitions()["a$"]

    def test_fuse_prefers_self(self):
        left = TransitionSystem("a", "p", "q")
        right = TransitionSystem("a", "p", "r")
        fused = left.fuse(right)
        assert fused.transitions() == {"p": {"a": "q"}}
        assert (fused.initial, fused.final) == ("p", "q")

    def test_fuse_overrides(self):
        fused = TransitionSystem("a", "p", "q").fuse(TransitionSystem("b", "q", "r"), final="r")
        assert accepts(fused, ["a", "b"])

    def test_rename_state(self):
        system = TransitionSystem("a")
        system.rename_state("z$", "end")
        assert system.final == "end"
        assert system.transitions() == {"a$": {"a": "end"}}

    def test_rename_collision(self):
        system = TransitionSystem("a")
        with pytest.raises(StateCollisionError):
            system.rename_state("a$", "z$")

    def test_has_state(self):
        system = TransitionSystem("a")
        assert system.has_state("a$")
        assert system.has_state("z$")
        assert not system.has_state("m$")

    def test_visit_transitions(self):
        seen = []
        TransitionSystem("a").visit_transitions(lambda s, t, e: seen.append((s, t, e)))
        assert seen == [("a$", "a", "z$")]


class TestAlgebra:
    """Test the languages accepted by composed systems."""

    def test_or(self):
        system = TransitionSystem("a") | TransitionSystem("b")
        assert accepts(system, ["a"])
        assert accepts(system, ["b"])
        assert not accepts(system, ["a", "b"])

    def test_and_single_token_legs(self):
        system = TransitionSystem("a") & TransitionSystem("b")
        assert accepts(system, ["a", "b"])
        assert accepts(system, ["b", "a"])
        assert not accepts(system, ["a"])
        assert not accepts(system, ["b"])
        assert not accepts(system, ["a", "a"])

    def test_and_splices_right_operand_as_a_block(self):
        left = TransitionSystem.build(parse("a & b"))
        system = left & TransitionSystem("c")
        for word in (["c", "a", "b"], ["a", "c", "b"], ["a", "b", "c"], ["b", "c", "a"]):
            assert accepts(system, word), word

    def test_and_with_multi_token_right_operand(self):
        system = TransitionSystem.build(parse("a & (b & c)"))
        for word in ("abc", "bca", "cba", "acb"):
            assert accepts(system, list(word)), word
        # b & c stays a block, so a cannot land between its tokens
        for word in ("bac", "cab"):
            assert not accepts(system, list(word)), word

    def test_build_or_is_symmetric_on_single_tokens(self):
        ab = TransitionSystem.build(parse("(a | b)"))
        ba = TransitionSystem.build(parse("(b | a)"))
        for token in ("a", "b", "c"):
            assert accepts(ab, [token]) == accepts(ba, [token])

    def test_build_nested(self):
        system = TransitionSystem.build(parse("(a | b) & c"))
        for word in (["a", "c"], ["c", "a"], ["b", "c"], ["c", "b"]):
            assert accepts(system, word), word
        assert not accepts(system, ["a", "b"])

    def test_build_three_way_and(self):
        system = TransitionSystem.build(parse("a & b & c"))
        for word in (["a", "b", "c"], ["c", "b", "a"], ["b", "a", "c"]):
            assert accepts(system, word), word
        assert not accepts(system, ["a", "b"])
