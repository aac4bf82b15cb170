"""
Data utilities for loading machine files and exporting tables and history.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Union

import pandas as pd

from ..fsm.engine import HistoryEntry
from ..fsm.moore_machine import MachineDefinition
from ..fsm.parser import parse_machine


logger = logging.getLogger(__name__)

ACCEPTED_EXTENSIONS = {".txt", ".json"}
MISSING_CELL = "-"

PathLike = Union[str, Path]


class UnsupportedFileError(ValueError):
    """Raised for machine files that are not .txt or .json UTF-8 text."""


def read_machine_text(filepath: PathLike) -> str:
    """
    Read a machine description file as UTF-8 text.

    Only ``.txt`` and ``.json`` files are accepted. Both are returned as
    plain text: a ``.json`` file is not decoded as JSON.
    """
    filepath = Path(filepath)
    ext = filepath.suffix.lower()
    if ext not in ACCEPTED_EXTENSIONS:
        raise UnsupportedFileError(
            f"Only .txt or .json files are accepted, got {filepath.name!r}"
        )
    if ext == '.json':
        logger.debug("Reading %s as plain text; JSON structure is not interpreted", filepath)

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            return f.read()
    except UnicodeDecodeError as exc:
        raise UnsupportedFileError(f"{filepath.name!r} is not valid UTF-8 text: {exc.reason}") from exc


def load_machine(filepath: PathLike, dialect: str = 'quintuple') -> MachineDefinition:
    """
    Load and parse a machine file (unvalidated).

    Args:
        filepath: Path to a .txt or .json file
        dialect: 'quintuple' or 'flat'

    Returns:
        Parsed MachineDefinition
    """
    text = read_machine_text(filepath)
    machine = parse_machine(text, dialect=dialect)
    logger.info("Loaded %s (%s dialect): %d states", filepath, dialect, len(machine.states))
    return machine


def save_machine_text(machine: MachineDefinition, filepath: PathLike) -> None:
    """Write ``machine`` in the quintuple text dialect."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(machine.to_text())


def transition_table(machine: MachineDefinition) -> pd.DataFrame:
    """
    Tabulate a machine: one row per state with its output and the
    destination for each input symbol ('-' where undefined).
    """
    rows = []
    for state in machine.states:
        row = {'state': state, 'output': machine.output_function.get(state, MISSING_CELL)}
        for symbol in machine.inputs:
            transition = machine.find_transition(state, symbol)
            row[symbol] = transition.to_state if transition else MISSING_CELL
        rows.append(row)

    columns = ['state', 'output'] + list(machine.inputs)
    return pd.DataFrame(rows, columns=columns)


def history_to_frame(history: Iterable[HistoryEntry]) -> pd.DataFrame:
    """
    Convert engine history to a DataFrame with a step column (seed = 0).

    Symbol columns are object dtype; the seed entry's input is None.
    """
    entries = list(history)
    return pd.DataFrame({
        'step': pd.Series(range(len(entries)), dtype='int64'),
        'state': pd.Series([entry.state for entry in entries], dtype=object),
        'input': pd.Series([entry.input_symbol for entry in entries], dtype=object),
        'output': pd.Series([entry.output for entry in entries], dtype=object),
    })


def save_history(history: Iterable[HistoryEntry],
                 filepath: PathLike,
                 format: str = 'json') -> None:
    """
    Save a simulation history to file.

    Args:
        history: Engine history entries
        filepath: Path to save file
        format: Save format ('json', 'csv')
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    entries = list(history)

    if format == 'json':
        records = [
            {'step': step, 'state': entry.state, 'input': entry.input_symbol, 'output': entry.output}
            for step, entry in enumerate(entries)
        ]
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(records, f, indent=2, ensure_ascii=False, allow_nan=False)

    elif format == 'csv':
        history_to_frame(entries).to_csv(filepath, index=False)

    else:
        raise ValueError(f"Unsupported format: {format}")
