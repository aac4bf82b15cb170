"""
Tests for the closed-form Excess-3 engine and its table-driven equivalent.
"""

import pytest

from mooresim.fsm import BLANK_OUTPUT, END_MARKER
from mooresim.fsm.closed_form import (
    ClosedFormState,
    Excess3Engine,
    bcd_excess3_definition,
    bcd_to_excess3,
    constant_bit,
    emitted_bits,
    excess3_step,
)
from mooresim.fsm.engine import EngineStatus, HistoryEntry, SimulationEngine
from mooresim.fsm.validation import validate_machine


def lsb_first(digit: int) -> str:
    return format(digit, "04b")[::-1]


class TestArithmetic:
    def test_constant_bit(self):
        assert [constant_bit(p) for p in range(3)] == [1, 1, 0]

    def test_full_adder(self):
        # x=1, k=1, c=0 -> s=0, carry out
        assert excess3_step(0, 0, 1) == (0, 1, 1)
        # x=0, k=0, c=1 -> s=1, carry cleared
        assert excess3_step(1, 2, 0) == (1, 0, 2)
        # position saturates
        assert excess3_step(0, 2, 0) == (0, 0, 2)

    def test_state_labels(self):
        assert ClosedFormState(1, 2).label == "S1,2"
        assert ClosedFormState(0, 1, is_final=True).label == "F0"
        assert ClosedFormState(1, 1, is_final=True).label == "F1"


class TestExcess3Engine:
    """Test suite for the closed-form engine."""

    def test_initial_state(self):
        engine = Excess3Engine()
        assert engine.current_state == "S0,0"
        assert engine.current_output == BLANK_OUTPUT
        assert engine.history == (HistoryEntry("S0,0", None, BLANK_OUTPUT),)
        assert engine.status is EngineStatus.READY

    def test_three_becomes_six(self):
        engine = Excess3Engine()
        engine.run(lsb_first(3) + END_MARKER)

        assert "".join(reversed(emitted_bits(engine.history))) == "0110"
        assert engine.current_state == "F0"
        assert engine.is_complete
        assert bcd_to_excess3("0011") == "0110"

    @pytest.mark.parametrize("digit", range(10))
    def test_every_bcd_digit(self, digit):
        assert bcd_to_excess3(format(digit, "04b")) == format(digit + 3, "04b")

    def test_final_carry_emits_extra_bit(self):
        engine = Excess3Engine()
        for bit in lsb_first(13):
            assert engine.step(bit) is True
        event_count = len(engine.history)
        assert not engine.is_complete
        assert engine.step(END_MARKER) is True

        assert engine.current_state == "F1"
        assert engine.current_output == "1"
        assert len(engine.history) == event_count + 1
        assert bcd_to_excess3("1101") == "10000"

    def test_final_state_ignores_input(self):
        engine = Excess3Engine()
        engine.step("1")
        engine.step(END_MARKER)
        before = engine.history

        assert engine.step("1") is False
        assert engine.step(END_MARKER) is False
        assert engine.history == before
        assert engine.status is EngineStatus.COMPLETE

    def test_rejects_non_bits(self):
        engine = Excess3Engine()
        assert engine.step("2") is False
        assert engine.current_state == "S0,0"
        assert engine.is_valid_sequence("0101#")
        assert not engine.is_valid_sequence("012")

    def test_transition_events(self):
        events = []
        engine = Excess3Engine(on_transition=events.append)
        engine.run("1#")

        assert [(e.from_state, e.to_state, e.input_symbol, e.output) for e in events] == [
            ("S0,0", "S1,1", "1", "0"),
            ("S1,1", "F1", "#", "1"),
        ]

    def test_failing_transition_callback_keeps_state_in_sync(self):
        def fail_once(event):
            if event.input_symbol == "1":
                raise RuntimeError("display unavailable")

        engine = Excess3Engine(on_transition=fail_once)
        with pytest.raises(RuntimeError):
            engine.step("1")

        assert engine.current_state == "S1,1"
        assert engine.machine_state.label == engine.current_state
        assert engine.last_transition.to_state == "S1,1"
        assert [entry.state for entry in engine.history] == ["S0,0", "S1,1"]

        assert engine.step("0") is True
        assert engine.last_transition.from_state == engine.history[-2].state

    def test_reset(self):
        engine = Excess3Engine()
        engine.run("11#")
        engine.reset()
        assert engine.current_state == "S0,0"
        assert not engine.is_complete
        assert len(engine.history) == 1
        assert engine.run("0") is True

    def test_bcd_to_excess3_rejects_garbage(self):
        with pytest.raises(ValueError):
            bcd_to_excess3("01a1")
        with pytest.raises(ValueError):
            bcd_to_excess3("")

    @pytest.mark.asyncio
    async def test_paced_run(self):
        engine = Excess3Engine()
        assert await engine.run_sequence(lsb_first(5) + END_MARKER, delay=0.001) is True
        assert "".join(reversed(emitted_bits(engine.history))) == "1000"


class TestTableEquivalence:
    """The table-driven definition must match the closed form bit for bit."""

    def test_definition_is_valid(self):
        machine = bcd_excess3_definition()
        assert validate_machine(machine) == []
        assert machine.initial_state == "S0,0"
        assert machine.final_states == ["F0", "F1"]
        assert machine.output_function["F1"] == "1"
        assert machine.output_function["F0"] == BLANK_OUTPUT

    def test_covers_every_carry_position_pair(self):
        machine = bcd_excess3_definition()
        pairs = {state.split("/")[0] for state in machine.states if state.startswith("S")}
        assert pairs == {f"S{c},{p}" for c in (0, 1) for p in (0, 1, 2)}

    @pytest.mark.parametrize("digit", range(10))
    def test_same_output_as_closed_form(self, digit):
        word = lsb_first(digit) + END_MARKER

        closed = Excess3Engine()
        closed.run(word)
        table = SimulationEngine(bcd_excess3_definition())
        table.run(word)

        assert emitted_bits(table.history) == emitted_bits(closed.history)
        assert table.current_state == closed.current_state

    def test_same_output_with_final_carry(self):
        word = lsb_first(15) + END_MARKER

        closed = Excess3Engine()
        closed.run(word)
        table = SimulationEngine(bcd_excess3_definition())
        table.run(word)

        assert emitted_bits(table.history) == emitted_bits(closed.history) == ["0", "1", "0", "0", "1"]
