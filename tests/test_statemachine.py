"""Tests for the Statemachine controller."""

from switchboard.core.component import Component, connect, invoke
from switchboard.logic.statemachine import Statemachine


class Listener(Component, operations=["sheet", "terminate"]):
    def __init__(self):
        self.sheets = []
        self.terminations = 0

    def sheet(self, name):
        self.sheets.append(name)

    def terminate(self):
        self.terminations += 1


def wired(machine):
    listener = Listener()
    connect(machine, "request_sheet", listener, "sheet")
    connect(machine, "request_termination", listener, "terminate")
    return listener


def feed(machine, *tokens):
    for token in tokens:
        machine.set_token(token)
    return machine.current_state


def expression_machine(expression):
    machine = Statemachine()
    machine.set_initial_state("S0")
    machine.set_final_state("S1")
    machine.add_transition("S0", expression, "S1")
    return machine


class TestLifecycle:
    """Test start, token feeding and termination."""

    def test_start_requests_initial_sheet(self):
        machine = Statemachine({"initial": "S0", "final": "FINAL"})
        listener = wired(machine)
        machine.start()
        assert machine.current_state == "S0"
        assert listener.sheets == ["S0"]

    def test_unknown_token_is_ignored(self):
        machine = Statemachine({"initial": "S0", "transitions": {"S0": {"a": "S1"}}})
        listener = wired(machine)
        machine.start()
        machine.set_token("zzz")
        assert machine.current_state == "S0"
        assert listener.sheets == ["S0"]

    def test_sequence_to_final(self):
        machine = Statemachine()
        machine.set_initial_state("S0")
        machine.set_final_state("FINAL")
        machine.add_transition("S0", "a", "S1")
        machine.add_transition("S1", "b", "FINAL")
        listener = wired(machine)

        machine.start()
        assert listener.sheets == ["S0"]

        machine.set_token("a")
        assert machine.current_state == "S1"
        assert listener.sheets == ["S0", "S1"]
        assert listener.terminations == 0

        machine.set_token("b")
        assert machine.current_state == "FINAL"
        assert listener.sheets == ["S0", "S1", "FINAL"]
        assert listener.terminations == 1

    def test_last_write_wins(self):
        machine = Statemachine({"initial": "S0"})
        machine.add_transition("S0", "a", "S1")
        machine.add_transition("S0", "a", "S2")
        machine.start()
        assert feed(machine, "a") == "S2"


class TestExpressions:
    """Test compiled token expressions."""

    def test_and_is_order_independent(self):
        machine = expression_machine("a & b")
        machine.start()
        assert feed(machine, "a", "b") == "S1"

        machine.start()
        assert feed(machine, "b", "a") == "S1"

    def test_and_needs_both_tokens(self):
        machine = expression_machine("a & b")
        machine.start()
        assert feed(machine, "a") != "S1"
        assert feed(machine, "a") != "S1"

    def test_or_accepts_either_token(self):
        for token in ("a", "b"):
            machine = expression_machine("a | b")
            machine.start()
            assert feed(machine, token) == "S1"

    def test_or_operands_commute(self):
        for token in ("a", "b", "c"):
            ab = expression_machine("(a|b)")
            ba = expression_machine("(b|a)")
            ab.start()
            ba.start()
            assert (feed(ab, token) == "S1") == (feed(ba, token) == "S1")

    def test_intermediate_states_are_scoped_to_the_transition(self):
        machine = Statemachine({"initial": "S0", "final": "S2"})
        machine.add_transition("S0", "a & b", "S1")
        machine.add_transition("S1", "a & b", "S2")
        listener = wired(machine)

        machine.start()
        feed(machine, "b", "a", "a", "b")

        assert machine.current_state == "S2"
        assert listener.sheets[-1] == "S2"
        assert "S1" in listener.sheets
        assert listener.terminations == 1

    def test_self_loop_expression(self):
        machine = Statemachine({"initial": "S0"})
        machine.add_transition("S0", "a & b", "S0")
        machine.start()
        assert feed(machine, "a", "b") == "S0"
        assert feed(machine, "b", "a") == "S0"

    def test_malformed_expression_is_a_literal_token(self):
        machine = Statemachine({"initial": "S0"})
        machine.add_transition("S0", "a &", "S1")
        machine.start()
        assert "a &" in machine.tokens
        assert feed(machine, "a &") == "S1"

    def test_whitespace_around_single_token(self):
        machine = Statemachine({"initial": "S0"})
        machine.add_transition("S0", "  a ", "S1")
        machine.start()
        assert feed(machine, "a") == "S1"

    def test_description_transitions(self):
        machine = Statemachine(
            {
                "initial": "idle",
                "final": "done",
                "transitions": {"idle": {"go": "busy"}, "busy": {"x | y": "done"}},
            }
        )
        machine.start()
        assert feed(machine, "go", "y") == "done"
        assert machine.transitions()["idle"] == {"go": "busy"}


class TestTokenOperations:
    """Test tokens resolved as operations."""

    def test_tokens_are_registered(self):
        machine = Statemachine()
        machine.add_transition("S0", "found", "S1")
        machine.add_transition("S1", "(lost | gone) & found", "S0")
        assert machine.tokens == ["found", "lost", "gone"]
        assert machine.operation_list() == ["set_token", "found", "lost", "gone"]

    def test_invoke_token_operation(self):
        machine = Statemachine({"initial": "S0"})
        machine.add_transition("S0", "found", "S1")
        machine.start()
        invoke(machine, "found")
        assert machine.current_state == "S1"

    def test_connect_event_to_token(self):
        class Detector(Component, operations=["detect"], events=["detected"]):
            def detect(self):
                self.emit("detected")

        machine = Statemachine({"initial": "S0"})
        machine.add_transition("S0", "found", "S1")
        detector = Detector()
        connect(detector, "detected", machine, "found")

        machine.start()
        detector.detect()
        assert machine.current_state == "S1"
