"""
Utility functions and helper classes.
"""

from .visualization import PositionOverlay, plot_output_history, plot_visual_machine
from .data_utils import (
    UnsupportedFileError,
    history_to_frame,
    load_machine,
    read_machine_text,
    save_history,
    save_machine_text,
    transition_table,
)

__all__ = [
    "PositionOverlay",
    "plot_visual_machine",
    "plot_output_history",
    "UnsupportedFileError",
    "read_machine_text",
    "load_machine",
    "save_machine_text",
    "transition_table",
    "history_to_frame",
    "save_history",
]
