"""
Shared fixtures for the mooresim test suite.
"""

import matplotlib

matplotlib.use("Agg")

import pytest

from mooresim.fsm.moore_machine import MachineDefinition


QUINTUPLE_TEXT = """QUINTUPLA MAQUINA DE MOORE

Conjunto de Estados Q:
S0, S1

Alfabeto de Entrada Σ:
0, 1

Alfabeto de Salida Γ:
A, B

Estado Inicial qo:
S0

Tabla de Transición:
S0, A, S1, S0
S1, B, S0, S1
"""

FLAT_TEXT = """# parity of ones
// from, input, to, output
even, 1, odd, O
odd, 1, even, E
even, 0, even, E
odd, 0, odd, O
"""


@pytest.fixture
def quintuple_text():
    return QUINTUPLE_TEXT


@pytest.fixture
def flat_text():
    return FLAT_TEXT


@pytest.fixture
def two_state_machine():
    """S0 --0--> S1, S1 --0--> S0, 1 stays put; S0 outputs A, S1 outputs B."""
    machine = MachineDefinition(
        states=["S0", "S1"],
        inputs=["0", "1"],
        outputs=["A", "B"],
        initial_state="S0",
    )
    machine.add_transition("S0", "0", "S1")
    machine.add_transition("S0", "1", "S0")
    machine.add_transition("S1", "0", "S0")
    machine.add_transition("S1", "1", "S1")
    machine.set_output("S0", "A")
    machine.set_output("S1", "B")
    return machine


@pytest.fixture
def square_machine():
    """Four states on the layout circle: top, right, bottom, left."""
    machine = MachineDefinition(
        states=["N", "E", "S", "W"],
        inputs=["a"],
        outputs=["x"],
        initial_state="N",
        final_states=["S"],
    )
    machine.add_transition("N", "a", "N")
    machine.add_transition("E", "a", "W")
    machine.add_transition("S", "a", "N")
    machine.add_transition("W", "a", "E")
    for state in machine.states:
        machine.set_output(state, "x")
    return machine
