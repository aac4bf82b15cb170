"""
mooresim: parse, validate, lay out and simulate Moore machines.
"""

from .fsm.moore_machine import MachineDefinition, Transition
from .fsm.parser import (
    InsufficientDataError,
    MissingSectionError,
    ParseError,
    parse_flat_records,
    parse_machine,
    parse_quintuple,
)
from .fsm.validation import MachineValidationError, ensure_valid, validate_machine
from .fsm.layout import VisualMachine, generate_layout
from .fsm.engine import EngineStatus, HistoryEntry, SimulationEngine, TransitionEvent
from .fsm.closed_form import Excess3Engine, bcd_excess3_definition, bcd_to_excess3

__version__ = "0.1.0"

__all__ = [
    "MachineDefinition",
    "Transition",
    "ParseError",
    "MissingSectionError",
    "InsufficientDataError",
    "parse_quintuple",
    "parse_flat_records",
    "parse_machine",
    "MachineValidationError",
    "validate_machine",
    "ensure_valid",
    "VisualMachine",
    "generate_layout",
    "EngineStatus",
    "HistoryEntry",
    "SimulationEngine",
    "TransitionEvent",
    "Excess3Engine",
    "bcd_excess3_definition",
    "bcd_to_excess3",
]
