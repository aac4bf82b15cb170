"""
Structural validation of Moore machine definitions.

Validation runs once, right after parsing. Everything downstream (layout,
simulation) assumes a definition that produced no defects.
"""

import logging
from typing import Dict, List, Set, Tuple

import networkx as nx

from .moore_machine import MachineDefinition


logger = logging.getLogger(__name__)


class MachineValidationError(ValueError):
    """Raised when a definition with defects is used to set up a simulation."""

    def __init__(self, defects: List[str]):
        self.defects = list(defects)
        summary = "; ".join(self.defects)
        super().__init__(f"Machine definition has {len(self.defects)} defect(s): {summary}")


def validate_machine(machine: MachineDefinition) -> List[str]:
    """
    Check the structural invariants of a definition.

    All applicable defects are collected, in this order: states present,
    initial state, transition endpoints and symbols, output function,
    input alphabet present, duplicated ``(from, input)`` pairs.

    Args:
        machine: Definition to check

    Returns:
        List of human-readable defects (empty if the machine is valid)
    """
    defects = []
    states = set(machine.states)
    inputs = set(machine.inputs)
    outputs = set(machine.outputs)

    if not machine.states:
        defects.append("Machine must define at least one state")

    if not machine.initial_state:
        defects.append("An initial state must be specified")
    elif machine.initial_state not in states:
        defects.append(f"Initial state '{machine.initial_state}' is not one of the defined states")

    for index, transition in enumerate(machine.transitions, start=1):
        if not transition.from_state or transition.from_state not in states:
            defects.append(f"Transition {index}: invalid source state '{transition.from_state}'")
        if not transition.to_state or transition.to_state not in states:
            defects.append(f"Transition {index}: invalid target state '{transition.to_state}'")
        if not transition.input_symbol or transition.input_symbol not in inputs:
            defects.append(f"Transition {index}: invalid input symbol '{transition.input_symbol}'")

    for state in machine.states:
        output = machine.output_function.get(state)
        if not output:
            defects.append(f"State '{state}' has no output defined")
        elif output not in outputs:
            defects.append(f"Output '{output}' of state '{state}' is not in the output alphabet")

    if not machine.inputs:
        defects.append("Machine must define at least one input symbol")

    # Lookup takes the first match, later duplicates would be unreachable
    first_seen: Dict[Tuple[str, str], int] = {}
    for index, transition in enumerate(machine.transitions, start=1):
        key = (transition.from_state, transition.input_symbol)
        if key in first_seen:
            defects.append(
                f"Transition {index}: duplicates transition {first_seen[key]} "
                f"for state '{key[0]}' on input '{key[1]}'"
            )
        else:
            first_seen[key] = index

    return defects


def is_valid(machine: MachineDefinition) -> bool:
    return not validate_machine(machine)


def ensure_valid(machine: MachineDefinition) -> MachineDefinition:
    """Return ``machine`` unchanged or raise MachineValidationError with every defect."""
    defects = validate_machine(machine)
    if defects:
        raise MachineValidationError(defects)
    return machine


def unreachable_states(machine: MachineDefinition) -> Set[str]:
    """
    States that cannot be reached from the initial state.

    Informational only: an unreachable state is not a defect.
    """
    if machine.initial_state not in machine.states:
        return set(machine.states)

    graph = machine.to_graph()
    reachable = nx.descendants(graph, machine.initial_state) | {machine.initial_state}
    return set(machine.states) - reachable
