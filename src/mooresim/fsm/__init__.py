"""
Finite State Machine (FSM) core.

This package provides the Moore machine data model, the text parsers,
structural validation, the circular layout generator and the simulation
engines (table-driven and closed-form Excess-3).
"""

# Fixed canvas anchor used by the layout generator (x, y)
CANVAS_CENTER = (450.0, 275.0)

# Circle radius = min(MAX_LAYOUT_RADIUS, BASE_LAYOUT_RADIUS + RADIUS_PER_STATE * n)
MAX_LAYOUT_RADIUS = 300.0
BASE_LAYOUT_RADIUS = 100.0
RADIUS_PER_STATE = 20.0

# Curvature applied to every non self-loop transition
CURVE_STRENGTH = 40

# Closed-form Excess-3 alphabet
END_MARKER = "#"
BLANK_OUTPUT = "⊥"
