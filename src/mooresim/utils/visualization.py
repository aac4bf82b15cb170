"""
Visualization utilities: machine diagrams and simulation history plots.

The diagram renderer consumes a VisualMachine plus the engine's current
state and active TransitionEvent. Drag-style relocation lives in a
PositionOverlay owned by the caller; it never writes back into the layout.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import matplotlib.pyplot as plt
import networkx as nx
import numpy as np
import seaborn as sns
from matplotlib.patches import Circle

from ..config import RenderConfig
from ..fsm.engine import HistoryEntry, TransitionEvent
from ..fsm.layout import Point, VisualMachine, VisualTransition

# Set style
plt.style.use('seaborn-v0_8-darkgrid')

# Canvas-space unit vectors (canvas y grows downwards)
DIRECTION_VECTORS = {
    'up': (0.0, -1.0),
    'down': (0.0, 1.0),
    'left': (-1.0, 0.0),
    'right': (1.0, 0.0),
    'top': (0.0, -1.0),
    'bottom': (0.0, 1.0),
}

STATE_RADIUS = 30.0
LOOP_RADIUS = 22.0


class PositionOverlay:
    """
    Mutable per-state position overrides on top of a canonical layout.

    The overlay copies the canonical positions; moving a state only
    changes the overlay.
    """

    def __init__(self, visual: VisualMachine):
        self._canonical: Dict[str, Point] = dict(visual.state_positions)
        self._overrides: Dict[str, Point] = {}

    def move(self, state: str, x: float, y: float):
        if state not in self._canonical:
            raise KeyError(f"Unknown state: {state}")
        self._overrides[state] = Point(float(x), float(y))

    def position(self, state: str) -> Point:
        return self._overrides.get(state, self._canonical[state])

    def positions(self) -> Dict[str, Point]:
        merged = dict(self._canonical)
        merged.update(self._overrides)
        return merged

    @property
    def overridden(self) -> Set[str]:
        return set(self._overrides)

    def reset(self, state: Optional[str] = None):
        """Drop one override, or all of them."""
        if state is None:
            self._overrides.clear()
        else:
            self._overrides.pop(state, None)

    def state_at(self, x: float, y: float, radius: float = STATE_RADIUS) -> Optional[str]:
        """Hit test: the state whose circle contains ``(x, y)``, last drawn first."""
        for state, point in reversed(list(self.positions().items())):
            if (point.x - x) ** 2 + (point.y - y) ** 2 <= radius ** 2:
                return state
        return None


def _to_plot(point: Point) -> Tuple[float, float]:
    # Flip y so the diagram is not drawn upside down
    return point.x, -point.y


def _arc_rad(start: Tuple[float, float], end: Tuple[float, float], transition: VisualTransition) -> float:
    """
    Signed ``arc3`` radius bending the edge toward its curve direction.

    For rad > 0 matplotlib bends toward (dy, -dx); pick the sign whose bend
    agrees with the requested canvas direction.
    """
    if not transition.curve_strength:
        return 0.0
    dx, dy = end[0] - start[0], end[1] - start[1]
    cx, cy = DIRECTION_VECTORS.get(transition.curve_direction, (0.0, 0.0))
    bend = np.dot((dy, -dx), (cx, -cy))
    sign = -1.0 if bend < 0 else 1.0
    return sign * transition.curve_strength / 100.0


def _is_active(transition: VisualTransition, event: Optional[TransitionEvent]) -> bool:
    return (
        event is not None
        and transition.from_state == event.from_state
        and transition.to_state == event.to_state
        and transition.input_symbol == event.input_symbol
    )


def plot_visual_machine(visual: VisualMachine,
                        current_state: Optional[str] = None,
                        active_transition: Optional[TransitionEvent] = None,
                        overlay: Optional[PositionOverlay] = None,
                        state_outputs: Optional[Dict[str, str]] = None,
                        config: Optional[RenderConfig] = None,
                        save_path: Optional[str] = None,
                        title: str = "Moore Machine") -> plt.Figure:
    """
    Plot a state diagram from a VisualMachine.

    Args:
        visual: Layout to draw
        current_state: State to highlight (engine's current state)
        active_transition: Edge to highlight (engine's active event)
        overlay: Position overrides, used instead of canonical positions
        state_outputs: Output per state, shown under the state label
        config: Rendering options
        save_path: Path to save the plot
        title: Plot title

    Returns:
        Matplotlib figure
    """
    config = config or RenderConfig()
    positions = overlay.positions() if overlay is not None else dict(visual.state_positions)
    pos = {state: _to_plot(point) for state, point in positions.items()}

    G = nx.DiGraph()
    for state in visual.states:
        G.add_node(state.id)

    # Parallel transitions share one drawn edge with a combined label
    grouped: Dict[Tuple[str, str], List[VisualTransition]] = {}
    for transition in visual.transitions:
        grouped.setdefault((transition.from_state, transition.to_state), []).append(transition)

    fig, ax = plt.subplots(figsize=config.figsize)
    palette = sns.color_palette("husl", 3)

    final_states = [state.id for state in visual.states if state.is_final]
    if final_states:
        # Outer ring; the regular node is drawn on top of it
        nx.draw_networkx_nodes(G, pos, nodelist=final_states, node_color='white',
                               edgecolors='black', node_size=config.node_size * 1.4, ax=ax)

    node_colors = []
    for state in visual.states:
        if state.id == current_state:
            node_colors.append(palette[0])
        elif state.is_initial:
            node_colors.append(palette[1])
        else:
            node_colors.append('lightblue')
    nx.draw_networkx_nodes(G, pos, nodelist=[state.id for state in visual.states],
                           node_color=node_colors, node_size=config.node_size,
                           edgecolors='black', alpha=0.9, ax=ax)

    node_labels = {}
    for state in visual.states:
        output = (state_outputs or {}).get(state.id)
        show = config.show_outputs and output is not None
        node_labels[state.id] = f"{state.label}\n{output}" if show else state.label
    nx.draw_networkx_labels(G, pos, node_labels, font_size=10, ax=ax)

    for (from_state, to_state), transitions in grouped.items():
        label = ", ".join(t.input_symbol for t in transitions)
        active = any(_is_active(t, active_transition) for t in transitions)
        color = 'crimson' if active else 'gray'
        width = 2.5 if active else 1.2
        x, y = pos[from_state]

        if from_state == to_state:
            vx, vy = DIRECTION_VECTORS.get(transitions[0].loop_direction, (0.0, -1.0))
            # Loop sits outside the state circle on its chosen side
            cx = x + vx * (STATE_RADIUS + LOOP_RADIUS * 0.6)
            cy = y - vy * (STATE_RADIUS + LOOP_RADIUS * 0.6)
            ax.add_patch(Circle((cx, cy), LOOP_RADIUS, fill=False, edgecolor=color, linewidth=width))
            ax.text(cx + vx * LOOP_RADIUS * 1.6, cy - vy * LOOP_RADIUS * 1.6, label,
                    ha='center', va='center', fontsize=8, color=color)
            continue

        G.add_edge(from_state, to_state)
        end = pos[to_state]
        rad = _arc_rad((x, y), end, transitions[0])
        nx.draw_networkx_edges(G, pos, edgelist=[(from_state, to_state)],
                               edge_color=color, width=width, arrows=True,
                               arrowstyle='->', arrowsize=20,
                               node_size=config.node_size,
                               connectionstyle=f"arc3,rad={rad}", ax=ax)

        # Label at the midpoint of the quadratic curve
        dx, dy = end[0] - x, end[1] - y
        lx = (x + end[0]) / 2 + 0.5 * rad * dy
        ly = (y + end[1]) / 2 - 0.5 * rad * dx
        ax.text(lx, ly, label, ha='center', va='center', fontsize=8, color=color,
                bbox=dict(boxstyle="round,pad=0.2", facecolor='white', alpha=0.7))

    for state in visual.states:
        if state.is_initial:
            x, y = pos[state.id]
            ax.annotate("", xy=(x - STATE_RADIUS, y), xytext=(x - STATE_RADIUS * 2.5, y),
                        arrowprops=dict(arrowstyle='->', color='black', linewidth=1.5))

    ax.set_title(title)
    ax.set_aspect('equal')
    ax.margins(0.15)
    ax.axis('off')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=config.dpi, bbox_inches='tight')

    return fig


def plot_output_history(history: Iterable[HistoryEntry],
                        save_path: Optional[str] = None,
                        title: str = "Simulation History") -> plt.Figure:
    """
    Plot the visited states with the input that led to them and their output.

    Args:
        history: Engine history (seed entry first)
        save_path: Path to save the plot
        title: Plot title

    Returns:
        Matplotlib figure
    """
    entries: Sequence[HistoryEntry] = list(history)
    steps = max(len(entries), 1)
    fig, ax = plt.subplots(figsize=(max(6, 1.4 * steps), 3))

    for j, entry in enumerate(entries):
        symbol = entry.input_symbol if entry.input_symbol is not None else "start"
        ax.text(j, 2, symbol, ha='center', va='center',
                bbox=dict(boxstyle="round,pad=0.3", facecolor='khaki', alpha=0.4))
        ax.text(j, 1, entry.state, ha='center', va='center',
                bbox=dict(boxstyle="round,pad=0.3", facecolor='lightblue', alpha=0.5))
        ax.text(j, 0, entry.output, ha='center', va='center',
                bbox=dict(boxstyle="round,pad=0.3", facecolor='lightgreen', alpha=0.4))

    ax.set_xlim(-0.5, steps - 0.5)
    ax.set_ylim(-0.5, 2.5)
    ax.set_xticks(range(steps))
    ax.set_xticklabels([f'T{j}' for j in range(steps)])
    ax.set_yticks([0, 1, 2])
    ax.set_yticklabels(['Output', 'State', 'Input'])
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')

    return fig
