"""
Geometric layout of a Moore machine.

States are placed evenly on a circle around a fixed canvas anchor, starting
at the top and proceeding clockwise (canvas y grows downwards). Edges get
routing hints for the rendering surface: a side for self-loops and a bend
direction for every other transition.

The layout is a pure function of the definition. It never reads simulation
state, and the rendering surface keeps its own position overrides (see
``utils.visualization.PositionOverlay``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from . import BASE_LAYOUT_RADIUS, CANVAS_CENTER, CURVE_STRENGTH, MAX_LAYOUT_RADIUS, RADIUS_PER_STATE
from .moore_machine import MachineDefinition


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class VisualState:
    id: str
    label: str
    is_initial: bool = False
    is_final: bool = False


@dataclass(frozen=True)
class VisualTransition:
    """
    Rendering hints for one transition.

    Attributes:
        from_state, to_state, input_symbol: the underlying transition
        output: Moore output of the target state
        self_loop: True when source and target coincide
        loop_direction: 'left' | 'right' | 'top' | 'bottom' for self-loops
        curve_direction: 'up' | 'down' | 'left' | 'right' for other edges
        curve_strength: bend magnitude (0 for self-loops)
    """

    from_state: str
    to_state: str
    input_symbol: str
    output: Optional[str]
    self_loop: bool
    loop_direction: Optional[str] = None
    curve_direction: Optional[str] = None
    curve_strength: float = 0


@dataclass
class VisualMachine:
    """Derived, disposable projection of a MachineDefinition."""

    state_positions: Dict[str, Point] = field(default_factory=dict)
    states: List[VisualState] = field(default_factory=list)
    transitions: List[VisualTransition] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "state_positions": {
                state: {"x": point.x, "y": point.y} for state, point in self.state_positions.items()
            },
            "states": [asdict(state) for state in self.states],
            "transitions": [asdict(transition) for transition in self.transitions],
        }


def layout_radius(state_count: int) -> float:
    return min(MAX_LAYOUT_RADIUS, BASE_LAYOUT_RADIUS + RADIUS_PER_STATE * state_count)


def generate_state_positions(states: Sequence[str]) -> Dict[str, Point]:
    """
    Place states on a circle, first state at the top, clockwise.

    Args:
        states: State ids in display order

    Returns:
        Dict mapping state -> Point (empty for no states, anchor for one)
    """
    center_x, center_y = CANVAS_CENTER
    if len(states) == 0:
        return {}
    if len(states) == 1:
        return {states[0]: Point(center_x, center_y)}

    count = len(states)
    radius = layout_radius(count)
    angles = 2 * np.pi * np.arange(count) / count - np.pi / 2

    # Rounded so that axis-aligned states compare exactly
    xs = np.round(center_x + radius * np.cos(angles), 6)
    ys = np.round(center_y + radius * np.sin(angles), 6)

    return {state: Point(float(x), float(y)) for state, x, y in zip(states, xs, ys)}


def loop_direction(position: Point) -> str:
    """Side of the state on which to draw a self-loop (away from the center)."""
    dx = position.x - CANVAS_CENTER[0]
    dy = position.y - CANVAS_CENTER[1]

    if abs(dx) > abs(dy):
        return "right" if dx > 0 else "left"
    return "bottom" if dy > 0 else "top"


def curve_direction(start: Point, end: Point) -> str:
    """Bend direction for an edge between two distinct states."""
    dx = end.x - start.x
    dy = end.y - start.y

    if abs(dx) > abs(dy):
        # Mostly horizontal edge
        return "down" if dy > 0 else "up"
    return "right" if dx > 0 else "left"


def generate_layout(machine: MachineDefinition) -> VisualMachine:
    """
    Project a definition into a VisualMachine.

    Never fails for a structurally valid definition, including one with
    zero states.
    """
    positions = generate_state_positions(machine.states)
    final_states = set(machine.final_states)

    visual_states = [
        VisualState(
            id=state,
            label=state,
            is_initial=state == machine.initial_state,
            is_final=state in final_states,
        )
        for state in machine.states
    ]

    visual_transitions = []
    for transition in machine.transitions:
        output = machine.output_function.get(transition.to_state)
        if transition.is_self_loop:
            visual_transitions.append(VisualTransition(
                from_state=transition.from_state,
                to_state=transition.to_state,
                input_symbol=transition.input_symbol,
                output=output,
                self_loop=True,
                loop_direction=loop_direction(positions[transition.from_state]),
                curve_strength=0,
            ))
        else:
            visual_transitions.append(VisualTransition(
                from_state=transition.from_state,
                to_state=transition.to_state,
                input_symbol=transition.input_symbol,
                output=output,
                self_loop=False,
                curve_direction=curve_direction(
                    positions[transition.from_state], positions[transition.to_state]
                ),
                curve_strength=CURVE_STRENGTH,
            ))

    return VisualMachine(
        state_positions=positions,
        states=visual_states,
        transitions=visual_transitions,
    )
