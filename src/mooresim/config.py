"""
Configuration objects and loader.

A configuration file is YAML (or JSON) with optional ``simulation``,
``render`` and ``logging`` sections::

    simulation:
      step_delay: 0.25
      highlight_window: 1.5
      dialect: flat
    render:
      dpi: 200
    logging:
      level: DEBUG
      filepath: logs/mooresim.log
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

import yaml


@dataclass(frozen=True)
class SimulationConfig:
    """Pacing and presentation timing for the simulation engines."""

    step_delay: float = 0.5
    highlight_window: float = 1.5
    dialect: Literal["quintuple", "flat"] = "quintuple"

    def __post_init__(self):
        if self.step_delay < 0:
            raise ValueError("step_delay must be >= 0")
        if self.highlight_window < 0:
            raise ValueError("highlight_window must be >= 0")
        if self.dialect not in ("quintuple", "flat"):
            raise ValueError(f"Unknown dialect: {self.dialect!r}")


@dataclass(frozen=True)
class RenderConfig:
    """Matplotlib rendering options."""

    figsize: Tuple[float, float] = (12.0, 8.0)
    dpi: int = 150
    node_size: int = 2000
    show_outputs: bool = True


@dataclass(frozen=True)
class LoggingConfig:
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    filepath: Optional[Path] = None


@dataclass(frozen=True)
class Config:
    """Root configuration object."""

    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _load_raw_config(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found at {config_path}")

    suffix = config_path.suffix.lower()
    with open(config_path, 'r', encoding="utf-8") as f:
        if suffix in {".yaml", ".yml"}:
            return yaml.safe_load(f) or {}
        if suffix == ".json":
            return json.load(f)
    raise ValueError(f"Unsupported config format: {suffix}")


def _section(raw: Dict[str, Any], name: str, cls) -> Dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    unknown = set(section) - {f.name for f in fields(cls)}
    if unknown:
        raise ValueError(f"Unknown keys in config section '{name}': {', '.join(sorted(unknown))}")
    return dict(section)


def load_config(config_path: Path | str) -> Config:
    """Load configuration file and construct the Config dataclasses."""
    config_path = Path(config_path)
    raw = _load_raw_config(config_path)
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    unknown = set(raw) - {f.name for f in fields(Config)}
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    simulation = SimulationConfig(**_section(raw, "simulation", SimulationConfig))

    render_raw = _section(raw, "render", RenderConfig)
    if "figsize" in render_raw:
        render_raw["figsize"] = tuple(float(v) for v in render_raw["figsize"])
    render = RenderConfig(**render_raw)

    logging_raw = _section(raw, "logging", LoggingConfig)
    log_path = logging_raw.get("filepath")
    if log_path:
        # Relative to the config file
        logging_raw["filepath"] = (config_path.parent / log_path).resolve()
    logging_config = LoggingConfig(**logging_raw)

    return Config(simulation=simulation, render=render, logging=logging_config)
