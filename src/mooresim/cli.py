"""
Command line interface for loading, checking and simulating Moore machines.

Examples:
    mooresim validate machine.txt
    mooresim --dialect flat simulate records.txt 0110 --delay 0
    mooresim render machine.txt --output machine.png
    mooresim excess3 0011
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from .config import Config, load_config
from .fsm.closed_form import Excess3Engine, bcd_to_excess3
from .fsm.engine import SimulationEngine
from .fsm.layout import generate_layout
from .fsm.parser import ParseError
from .fsm.validation import MachineValidationError, ensure_valid, unreachable_states, validate_machine
from .utils.data_utils import (
    UnsupportedFileError,
    history_to_frame,
    load_machine,
    save_history,
    transition_table,
)


logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_file) if log_file else logging.NullHandler()
        ],
        force=True,
    )


def _load(args, config: Config):
    dialect = args.dialect or config.simulation.dialect
    return load_machine(args.file, dialect=dialect)


def cmd_validate(args, config: Config) -> int:
    machine = _load(args, config)
    defects = validate_machine(machine)
    if defects:
        print("Machine definition is invalid:")
        for defect in defects:
            print(f"  - {defect}")
        return 1

    print(f"Machine is valid: {len(machine.states)} states, {len(machine.transitions)} transitions")
    unreachable = unreachable_states(machine)
    if unreachable:
        print(f"Unreachable states: {', '.join(sorted(unreachable))}")
    return 0


def cmd_layout(args, config: Config) -> int:
    machine = ensure_valid(_load(args, config))
    payload = json.dumps(generate_layout(machine).to_dict(), indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
        logger.info("Layout written to %s", args.output)
    else:
        print(payload)
    return 0


def cmd_export(args, config: Config) -> int:
    machine = ensure_valid(_load(args, config))
    text = machine.to_text()
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        logger.info("Machine exported to %s", args.output)
    else:
        print(text, end="")
    return 0


def cmd_table(args, config: Config) -> int:
    machine = _load(args, config)
    print(transition_table(machine).to_string(index=False))
    return 0


def cmd_simulate(args, config: Config) -> int:
    engine = SimulationEngine(_load(args, config), config=config.simulation)
    if not engine.is_valid_sequence(args.sequence):
        print(f"Sequence contains symbols outside the input alphabet: {', '.join(engine.input_alphabet)}")
        return 1

    delay = args.delay if args.delay is not None else config.simulation.step_delay
    consumed = asyncio.run(engine.run_sequence(args.sequence, delay=delay))
    if not consumed:
        logger.warning("Run stopped after %d of %d symbols", len(engine.history) - 1, len(args.sequence))

    print(history_to_frame(engine.history).to_string(index=False))
    print(f"Final state: {engine.current_state} (output {engine.current_output})")

    if args.history_out:
        history_format = 'csv' if args.history_out.endswith('.csv') else 'json'
        save_history(engine.history, args.history_out, format=history_format)
    if args.plot:
        from .utils.visualization import plot_output_history
        plot_output_history(engine.history, save_path=args.plot)
    return 0


def cmd_render(args, config: Config) -> int:
    from .utils.visualization import plot_visual_machine

    machine = ensure_valid(_load(args, config))
    plot_visual_machine(
        generate_layout(machine),
        current_state=machine.initial_state,
        state_outputs=machine.output_function,
        config=config.render,
        save_path=args.output,
        title=args.title,
    )
    logger.info("Diagram written to %s", args.output)
    return 0


def cmd_excess3(args, config: Config) -> int:
    try:
        result = bcd_to_excess3(args.bits)
    except ValueError as exc:
        print(str(exc))
        return 1

    print(f"{args.bits} -> {result}")
    if args.trace:
        engine = Excess3Engine(config=config.simulation)
        engine.run(args.bits[::-1] + "#")
        print(history_to_frame(engine.history).to_string(index=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mooresim", description="Moore machine toolkit")
    parser.add_argument("--config", type=str, default=None, help="YAML or JSON config file")
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    parser.add_argument("--dialect", choices=["quintuple", "flat"], default=None,
                        help="Machine file dialect (default from config)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("validate", help="Parse and validate a machine file")
    p.add_argument("file")
    p.set_defaults(func=cmd_validate)

    p = subparsers.add_parser("layout", help="Print the computed layout as JSON")
    p.add_argument("file")
    p.add_argument("--output", type=str, default=None)
    p.set_defaults(func=cmd_layout)

    p = subparsers.add_parser("export", help="Export a machine in the quintuple dialect")
    p.add_argument("file")
    p.add_argument("--output", type=str, default=None)
    p.set_defaults(func=cmd_export)

    p = subparsers.add_parser("table", help="Print the transition table")
    p.add_argument("file")
    p.set_defaults(func=cmd_table)

    p = subparsers.add_parser("simulate", help="Run an input sequence through a machine")
    p.add_argument("file")
    p.add_argument("sequence", help="Input symbols, one character per symbol")
    p.add_argument("--delay", type=float, default=None, help="Seconds between steps")
    p.add_argument("--history-out", type=str, default=None, help="Save history (.json or .csv)")
    p.add_argument("--plot", type=str, default=None, help="Save a history plot")
    p.set_defaults(func=cmd_simulate)

    p = subparsers.add_parser("render", help="Draw the state diagram")
    p.add_argument("file")
    p.add_argument("--output", type=str, required=True)
    p.add_argument("--title", type=str, default="Moore Machine")
    p.set_defaults(func=cmd_render)

    p = subparsers.add_parser("excess3", help="Convert a BCD digit with the closed-form machine")
    p.add_argument("bits", help="MSB-first bits, e.g. 0011")
    p.add_argument("--trace", action="store_true", help="Print the state history")
    p.set_defaults(func=cmd_excess3)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config) if args.config else Config()
    except (ValueError, FileNotFoundError, yaml.YAMLError) as exc:
        print(f"Error: invalid config: {exc}")
        return 1

    log_file = str(config.logging.filepath) if config.logging.filepath else None
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    setup_logging(args.log_level or config.logging.level, log_file)

    try:
        return args.func(args, config)
    except (ParseError, UnsupportedFileError, FileNotFoundError) as exc:
        print(f"Error: {exc}")
        return 1
    except MachineValidationError as exc:
        print("Machine definition is invalid:")
        for defect in exc.defects:
            print(f"  - {defect}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
