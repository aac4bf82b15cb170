"""
Moore machine definition.

A Moore machine is a finite state automaton where outputs depend only on
the current state, not on the input. A definition produced by a parser is
unvalidated: it may reference unknown states or lack outputs until it has
been checked by ``validation.validate_machine``.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import networkx as nx


@dataclass(frozen=True)
class Transition:
    """A single ``(from_state, input_symbol) -> to_state`` edge."""

    from_state: str
    input_symbol: str
    to_state: str

    @property
    def is_self_loop(self) -> bool:
        return self.from_state == self.to_state


@dataclass
class MachineDefinition:
    """
    Structured Moore machine definition.

    Attributes:
        states: State identifiers, insertion order is display order
        inputs: Input alphabet, in column order
        outputs: Output alphabet
        initial_state: Starting state (None when not specified)
        final_states: Optional accepting states
        transitions: Ordered transition list (first match wins on lookup)
        output_function: Dict mapping state -> output symbol
    """

    states: List[str] = field(default_factory=list)
    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    initial_state: Optional[str] = None
    final_states: List[str] = field(default_factory=list)
    transitions: List[Transition] = field(default_factory=list)
    output_function: Dict[str, str] = field(default_factory=dict)

    def add_transition(self, from_state: str, input_symbol: str, to_state: str) -> Transition:
        """Append a transition; membership is checked by the validator, not here."""
        transition = Transition(from_state, input_symbol, to_state)
        self.transitions.append(transition)
        return transition

    def set_output(self, state: str, output: str):
        """Set the output for a given state."""
        self.output_function[state] = output

    def find_transition(self, state: str, input_symbol: str) -> Optional[Transition]:
        """
        Look up the transition taken from ``state`` on ``input_symbol``.

        Duplicated ``(state, input)`` pairs are shadowed: the first entry in
        ``transitions`` order wins.
        """
        for transition in self.transitions:
            if transition.from_state == state and transition.input_symbol == input_symbol:
                return transition
        return None

    def output_of(self, state: str) -> Optional[str]:
        return self.output_function.get(state)

    def to_graph(self) -> nx.MultiDiGraph:
        """Build a directed multigraph view (one edge per transition)."""
        graph = nx.MultiDiGraph()
        for state in self.states:
            graph.add_node(
                state,
                output=self.output_function.get(state),
                initial=state == self.initial_state,
                final=state in self.final_states,
            )
        for transition in self.transitions:
            graph.add_edge(
                transition.from_state,
                transition.to_state,
                key=transition.input_symbol,
                input=transition.input_symbol,
            )
        return graph

    def to_text(self) -> str:
        """
        Export the machine in the quintuple text dialect.

        The transition table has one row per state: the state, its output and
        the destination for each input symbol in ``inputs`` order (empty
        field when no transition is defined).
        """
        lines = [
            "QUINTUPLA MAQUINA DE MOORE",
            "",
            "Conjunto de Estados Q:",
            ", ".join(self.states),
            "",
            "Alfabeto de Entrada Σ:",
            ", ".join(self.inputs),
            "",
            "Alfabeto de Salida Γ:",
            ", ".join(self.outputs),
            "",
            "Estado Inicial qo:",
            self.initial_state or "",
            "",
            "Tabla de Transición:",
        ]
        for state in self.states:
            row = [state, self.output_function.get(state, "")]
            for symbol in self.inputs:
                transition = self.find_transition(state, symbol)
                row.append(transition.to_state if transition else "")
            lines.append(", ".join(row))
        return "\n".join(lines) + "\n"

    def to_dict(self) -> Dict:
        """Convert Moore machine to dictionary representation."""
        return {
            "states": list(self.states),
            "inputs": list(self.inputs),
            "outputs": list(self.outputs),
            "initial_state": self.initial_state,
            "final_states": list(self.final_states),
            "transitions": [
                {"from": t.from_state, "input": t.input_symbol, "to": t.to_state}
                for t in self.transitions
            ],
            "output_function": dict(self.output_function),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "MachineDefinition":
        """Create Moore machine from dictionary representation."""
        machine = cls(
            states=list(data.get("states", [])),
            inputs=list(data.get("inputs", [])),
            outputs=list(data.get("outputs", [])),
            initial_state=data.get("initial_state"),
            final_states=list(data.get("final_states", [])),
        )

        for entry in data.get("transitions", []):
            machine.add_transition(entry["from"], entry["input"], entry["to"])

        machine.output_function = dict(data.get("output_function", {}))
        return machine
