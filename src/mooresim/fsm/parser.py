"""
Text parsers for Moore machine definitions.

Two dialects are accepted:

- quintuple: labeled sections (states, input alphabet, output alphabet,
  initial state, transition table), one data line per section except the
  transition table, which holds one row per state::

      QUINTUPLA MAQUINA DE MOORE
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

- flat: one ``from, input, to[, output]`` record per line, ``#`` and ``//``
  lines are comments.

Both parsers return an unvalidated MachineDefinition.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from .moore_machine import MachineDefinition


logger = logging.getLogger(__name__)

BANNER_MARKERS = ("QUINTUPLA", "MÁQUINA", "MAQUINA")

# (section name, accepted markers)
STATES_SECTION: Tuple[str, Tuple[str, ...]] = ("states", ("Estados", "Q:"))
INPUTS_SECTION: Tuple[str, Tuple[str, ...]] = ("input alphabet", ("Alfabeto de Entrada", "Σ:"))
OUTPUTS_SECTION: Tuple[str, Tuple[str, ...]] = ("output alphabet", ("Alfabeto de Salida", "Γ:"))
INITIAL_SECTION: Tuple[str, Tuple[str, ...]] = ("initial state", ("Estado Inicial",))
TABLE_SECTION: Tuple[str, Tuple[str, ...]] = ("transition table", ("Tabla de Transición",))

COMMENT_PREFIXES = ("#", "//")
DIALECTS = ("quintuple", "flat")


class ParseError(ValueError):
    """Raised when a machine description cannot be parsed."""

    def __init__(self, message: str, section: str | None = None):
        super().__init__(message)
        self.section = section


class MissingSectionError(ParseError):
    """A required section marker was not found where expected."""

    def __init__(self, section: str):
        super().__init__(f"Missing section: {section}", section=section)


class InsufficientDataError(ParseError):
    """A section marker was found but no data line follows it."""

    def __init__(self, section: str):
        super().__init__(f"No data found for section: {section}", section=section)


def _clean_lines(text: str) -> List[str]:
    stripped = (line.strip() for line in text.splitlines())
    return [line for line in stripped if line]


def _split_fields(line: str) -> List[str]:
    return [part.strip() for part in line.split(",")]


def _has_marker(line: str, markers: Sequence[str]) -> bool:
    lowered = line.casefold()
    return any(marker.casefold() in lowered for marker in markers)


class _SectionReader:
    """Sequential cursor over the cleaned lines of a quintuple document."""

    def __init__(self, lines: List[str]):
        self.lines = lines
        self.index = 0

    def at_end(self) -> bool:
        return self.index >= len(self.lines)

    def skip_banner(self):
        if not self.at_end() and _has_marker(self.lines[self.index], BANNER_MARKERS):
            self.index += 1

    def expect_marker(self, section: Tuple[str, Tuple[str, ...]]):
        name, markers = section
        if self.at_end() or not _has_marker(self.lines[self.index], markers):
            raise MissingSectionError(name)
        self.index += 1

    def data_line(self, section: Tuple[str, Tuple[str, ...]]) -> str:
        self.expect_marker(section)
        if self.at_end():
            raise InsufficientDataError(section[0])
        line = self.lines[self.index]
        self.index += 1
        return line

    def remaining(self) -> List[str]:
        rest = self.lines[self.index:]
        self.index = len(self.lines)
        return rest


def parse_quintuple(text: str) -> MachineDefinition:
    """
    Parse the labeled quintuple dialect.

    Args:
        text: Full document contents

    Returns:
        Unvalidated MachineDefinition

    Raises:
        MissingSectionError: a required section marker is absent
        InsufficientDataError: a section marker is not followed by data
    """
    reader = _SectionReader(_clean_lines(text))
    machine = MachineDefinition()

    reader.skip_banner()
    machine.states = _split_fields(reader.data_line(STATES_SECTION))
    machine.inputs = _split_fields(reader.data_line(INPUTS_SECTION))
    machine.outputs = _split_fields(reader.data_line(OUTPUTS_SECTION))
    machine.initial_state = reader.data_line(INITIAL_SECTION)

    reader.expect_marker(TABLE_SECTION)
    min_fields = 2 + len(machine.inputs)
    for row in reader.remaining():
        parts = _split_fields(row)
        if len(parts) < min_fields:
            logger.warning(
                "Skipping malformed transition row %r (expected at least %d fields, got %d)",
                row, min_fields, len(parts),
            )
            continue

        state, output = parts[0], parts[1]
        if output:
            machine.set_output(state, output)

        # Destinations are positional: column i belongs to inputs[i]
        for symbol, next_state in zip(machine.inputs, parts[2:min_fields]):
            if next_state:
                machine.add_transition(state, symbol, next_state)

    logger.debug(
        "Parsed quintuple machine: %d states, %d transitions",
        len(machine.states), len(machine.transitions),
    )
    return machine


def parse_flat_records(text: str) -> MachineDefinition:
    """
    Parse the flat ``from, input, to[, output]`` record dialect.

    States, inputs and outputs are collected in order of first occurrence.
    The initial state is the source of the first valid record. Records with
    fewer than three fields are ignored.
    """
    states: dict = {}
    inputs: dict = {}
    outputs: dict = {}
    machine = MachineDefinition()

    for line in _clean_lines(text):
        if line.startswith(COMMENT_PREFIXES):
            continue

        parts = _split_fields(line)
        if len(parts) < 3:
            continue

        from_state, symbol, to_state = parts[0], parts[1], parts[2]
        output = parts[3] if len(parts) > 3 else ""

        states.setdefault(from_state, None)
        states.setdefault(to_state, None)
        inputs.setdefault(symbol, None)
        if output:
            outputs.setdefault(output, None)
            machine.set_output(to_state, output)

        if machine.initial_state is None:
            machine.initial_state = from_state

        machine.add_transition(from_state, symbol, to_state)

    machine.states = list(states)
    machine.inputs = list(inputs)
    machine.outputs = list(outputs)
    return machine


def parse_machine(text: str, dialect: str = "quintuple") -> MachineDefinition:
    """Parse ``text`` with the named dialect (``quintuple`` or ``flat``)."""
    if dialect == "quintuple":
        return parse_quintuple(text)
    if dialect == "flat":
        return parse_flat_records(text)
    raise ValueError(f"Unknown dialect: {dialect!r} (expected one of {DIALECTS})")
