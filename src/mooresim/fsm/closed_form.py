"""
Closed-form BCD to Excess-3 converter.

The machine adds binary 0011 to a 4-bit BCD digit, fed least significant
bit first and terminated by the end-of-word marker ``#``. Instead of a
transition table its state is two integers:

- carry c in {0, 1}
- position p in {0, 1, 2} (saturates at 2)

with the per-position constant k(p) = 1 if p < 2 else 0 (the bits of 3).
On input bit x:

    s  = x XOR k XOR c
    c' = (x AND k) OR (x AND c) OR (k AND c)
    p' = min(p + 1, 2)

``#`` moves to F1 (emitting a final ``1``) when c = 1, otherwise to F0
(emitting the blank symbol). Final states ignore further input.

``bcd_excess3_definition`` builds the equivalent table-driven
MachineDefinition so both engines can be compared symbol for symbol.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import SimulationConfig
from . import BLANK_OUTPUT, END_MARKER
from .engine import (
    HistoryEntry,
    SimulationEngineBase,
    StateChangeCallback,
    TransitionCallback,
    TransitionEvent,
)
from .moore_machine import MachineDefinition


BIT_SYMBOLS = ("0", "1")
INPUT_ALPHABET = BIT_SYMBOLS + (END_MARKER,)
OUTPUT_ALPHABET = BIT_SYMBOLS + (BLANK_OUTPUT,)
LAST_POSITION = 2


@dataclass(frozen=True)
class ClosedFormState:
    carry: int = 0
    position: int = 0
    is_final: bool = False

    @property
    def label(self) -> str:
        if self.is_final:
            return "F1" if self.carry == 1 else "F0"
        return f"S{self.carry},{self.position}"


def constant_bit(position: int) -> int:
    """k(p): the bit of 3 added at ``position``."""
    return 1 if position < LAST_POSITION else 0


def excess3_step(carry: int, position: int, bit: int) -> Tuple[int, int, int]:
    """
    One full-adder step.

    Returns:
        Tuple of (sum_bit, next_carry, next_position)
    """
    k = constant_bit(position)
    sum_bit = bit ^ k ^ carry
    next_carry = (bit & k) | (bit & carry) | (k & carry)
    next_position = min(position + 1, LAST_POSITION)
    return sum_bit, next_carry, next_position


def final_output(carry: int) -> str:
    return "1" if carry == 1 else BLANK_OUTPUT


class Excess3Engine(SimulationEngineBase):
    """
    Excess-3 converter computed inline from ``(carry, position)``.

    Exposes the same contract as SimulationEngine: current state/output,
    history, transition events, callbacks, reset and paced runs.
    """

    def __init__(self,
                 on_state_change: Optional[StateChangeCallback] = None,
                 on_transition: Optional[TransitionCallback] = None,
                 config: Optional[SimulationConfig] = None):
        super().__init__(on_state_change=on_state_change, on_transition=on_transition, config=config)
        self.machine_state = ClosedFormState()
        self.reset()

    @property
    def input_alphabet(self) -> Sequence[str]:
        return INPUT_ALPHABET

    def _restart(self) -> Tuple[str, str]:
        self.machine_state = ClosedFormState()
        return self.machine_state.label, BLANK_OUTPUT

    def _is_terminal(self) -> bool:
        return self.machine_state.is_final

    def _move(self, symbol: str) -> Optional[Tuple[ClosedFormState, str]]:
        """Next state and emitted symbol for ``symbol``; the engine is not changed."""
        current = self.machine_state
        if current.is_final:
            return None

        if symbol == END_MARKER:
            return ClosedFormState(current.carry, current.position, is_final=True), final_output(current.carry)
        if symbol in BIT_SYMBOLS:
            sum_bit, carry, position = excess3_step(current.carry, current.position, int(symbol))
            return ClosedFormState(carry, position), str(sum_bit)
        return None

    def _advance(self, symbol: str) -> Optional[TransitionEvent]:
        move = self._move(symbol)
        if move is None:
            return None

        target, output = move
        return TransitionEvent(
            from_state=self.machine_state.label,
            to_state=target.label,
            input_symbol=symbol,
            output=output,
        )

    def _commit(self, symbol: str):
        self.machine_state, _ = self._move(symbol)


def emitted_bits(history: Iterable[HistoryEntry]) -> List[str]:
    """Output bits produced after the seed entry, blank outputs dropped."""
    entries = list(history)[1:]
    return [entry.output for entry in entries if entry.output != BLANK_OUTPUT]


def bcd_to_excess3(bits: str) -> str:
    """
    Convert an MSB-first bit string through a fresh Excess3Engine.

    Example:
        >>> bcd_to_excess3("0011")
        '0110'
    """
    if not bits or any(bit not in BIT_SYMBOLS for bit in bits):
        raise ValueError(f"Expected a non-empty bit string, got {bits!r}")

    engine = Excess3Engine()
    engine.run(bits[::-1] + END_MARKER)
    return "".join(reversed(emitted_bits(engine.history)))


def _table_state_id(carry: int, position: int, output: str) -> str:
    if output == BLANK_OUTPUT:
        return f"S{carry},{position}"
    return f"S{carry},{position}/{output}"


def bcd_excess3_definition() -> MachineDefinition:
    """
    Table-driven MachineDefinition equivalent to Excess3Engine.

    Every ``(carry, position)`` pair appears as a blank-output state
    ``S{c},{p}``. A Moore state must carry its own output, so the pairs
    reached by a bit are split by the sum bit that led into them
    (``S{c},{p}/{s}``). States are discovered breadth-first from ``S0,0``;
    blank states other than ``S0,0`` are unreachable.
    """
    machine = MachineDefinition(
        inputs=list(INPUT_ALPHABET),
        outputs=list(OUTPUT_ALPHABET),
        initial_state=_table_state_id(0, 0, BLANK_OUTPUT),
        final_states=["F0", "F1"],
    )

    seen = set()
    queue = deque(
        (carry, position, BLANK_OUTPUT) for carry in (0, 1) for position in range(LAST_POSITION + 1)
    )
    while queue:
        carry, position, output = queue.popleft()
        state_id = _table_state_id(carry, position, output)
        if state_id in seen:
            continue
        seen.add(state_id)
        machine.states.append(state_id)
        machine.set_output(state_id, output)

        for symbol in BIT_SYMBOLS:
            sum_bit, next_carry, next_position = excess3_step(carry, position, int(symbol))
            machine.add_transition(
                state_id, symbol, _table_state_id(next_carry, next_position, str(sum_bit))
            )
            queue.append((next_carry, next_position, str(sum_bit)))

        machine.add_transition(state_id, END_MARKER, ClosedFormState(carry, is_final=True).label)

    for carry in (0, 1):
        final_id = ClosedFormState(carry, is_final=True).label
        machine.states.append(final_id)
        machine.set_output(final_id, final_output(carry))

    return machine
