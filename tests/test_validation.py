"""
Tests for structural validation.
"""

import pytest

from mooresim.fsm.moore_machine import MachineDefinition
from mooresim.fsm.parser import parse_flat_records
from mooresim.fsm.validation import (
    MachineValidationError,
    ensure_valid,
    is_valid,
    unreachable_states,
    validate_machine,
)


class TestValidateMachine:
    """Test suite for validate_machine."""

    def test_valid_machine(self, two_state_machine):
        assert validate_machine(two_state_machine) == []
        assert is_valid(two_state_machine)

    def test_parsed_machine_is_valid(self, quintuple_text):
        from mooresim.fsm.parser import parse_quintuple
        assert validate_machine(parse_quintuple(quintuple_text)) == []

    def test_no_states(self):
        defects = validate_machine(parse_flat_records(""))
        assert "Machine must define at least one state" in defects

    def test_missing_initial_state(self, two_state_machine):
        two_state_machine.initial_state = None
        assert validate_machine(two_state_machine) == ["An initial state must be specified"]

    def test_unknown_initial_state(self, two_state_machine):
        two_state_machine.initial_state = "S9"
        defects = validate_machine(two_state_machine)
        assert len(defects) == 1
        assert "S9" in defects[0]

    def test_transition_defects_use_one_based_index(self, two_state_machine):
        two_state_machine.add_transition("S7", "2", "S8")
        defects = validate_machine(two_state_machine)

        assert defects == [
            "Transition 5: invalid source state 'S7'",
            "Transition 5: invalid target state 'S8'",
            "Transition 5: invalid input symbol '2'",
        ]

    def test_missing_output_names_state(self, two_state_machine):
        del two_state_machine.output_function["S1"]
        defects = validate_machine(two_state_machine)
        assert defects == ["State 'S1' has no output defined"]

    def test_output_outside_alphabet(self, two_state_machine):
        two_state_machine.set_output("S0", "Z")
        defects = validate_machine(two_state_machine)
        assert defects == ["Output 'Z' of state 'S0' is not in the output alphabet"]

    def test_flat_state_without_output(self):
        machine = parse_flat_records("A,0,B,x\nB,0,C,x\n")
        defects = validate_machine(machine)
        assert any("'A'" in defect for defect in defects)
        assert not any("'B'" in defect for defect in defects)

    def test_duplicate_transition_is_defect(self, two_state_machine):
        two_state_machine.add_transition("S0", "0", "S0")
        defects = validate_machine(two_state_machine)
        assert defects == ["Transition 5: duplicates transition 1 for state 'S0' on input '0'"]

    def test_empty_input_alphabet_is_defect(self):
        machine = MachineDefinition(states=["A"], inputs=[], outputs=["x"], initial_state="A")
        machine.set_output("A", "x")

        assert validate_machine(machine) == ["Machine must define at least one input symbol"]

    def test_defects_accumulate_in_order(self):
        machine = MachineDefinition(states=["A"], inputs=["0"], outputs=["x"], initial_state="B")
        machine.add_transition("A", "1", "A")
        defects = validate_machine(machine)

        assert len(defects) == 3
        assert "Initial state" in defects[0]
        assert defects[1].startswith("Transition 1")
        assert defects[2] == "State 'A' has no output defined"


class TestEnsureValid:
    def test_returns_machine(self, two_state_machine):
        assert ensure_valid(two_state_machine) is two_state_machine

    def test_raises_with_every_defect(self):
        machine = MachineDefinition()
        with pytest.raises(MachineValidationError) as exc_info:
            ensure_valid(machine)

        assert len(exc_info.value.defects) == 3
        assert isinstance(exc_info.value, ValueError)


class TestUnreachableStates:
    def test_all_reachable(self, two_state_machine):
        assert unreachable_states(two_state_machine) == set()

    def test_detects_orphan(self, two_state_machine):
        two_state_machine.states.append("S2")
        two_state_machine.set_output("S2", "A")
        assert unreachable_states(two_state_machine) == {"S2"}
        # Informational only
        assert validate_machine(two_state_machine) == []
