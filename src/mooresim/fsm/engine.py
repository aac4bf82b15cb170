"""
Moore machine simulation engines.

``SimulationEngineBase`` holds everything a consumer observes: current
state and output, history, the most recent transition event, the
``READY -> RUNNING -> COMPLETE`` status and the two callbacks. Subclasses
only decide how one input symbol moves the machine:

- ``SimulationEngine`` looks the symbol up in a validated MachineDefinition.
- ``closed_form.Excess3Engine`` computes the move arithmetically.

Paced execution (``run_sequence``) is a coroutine. Every ``reset``,
``cancel`` or new run bumps a generation counter, and a pending run checks
it before each step, so a superseded run stops without touching state.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from ..config import SimulationConfig
from .moore_machine import MachineDefinition
from .validation import ensure_valid, unreachable_states


logger = logging.getLogger(__name__)

StateChangeCallback = Callable[[str, str], None]


class EngineStatus(Enum):
    READY = "ready"
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass(frozen=True)
class HistoryEntry:
    """One visited state; ``input_symbol`` is None for the seed entry."""

    state: str
    input_symbol: Optional[str]
    output: str


@dataclass(frozen=True)
class TransitionEvent:
    """The most recently applied transition, for highlighting."""

    from_state: str
    to_state: str
    input_symbol: str
    output: str
    timestamp: float = field(default_factory=time.monotonic, compare=False)

    def is_expired(self, window: float, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        return now - self.timestamp >= window


@dataclass
class SimulationState:
    current_state: str
    current_output: str
    is_complete: bool = False


TransitionCallback = Callable[[TransitionEvent], None]


class SimulationEngineBase(abc.ABC):
    """
    Shared engine contract.

    Args:
        on_state_change: called with ``(state, output)`` whenever that pair
            changes (never twice in a row for the same pair)
        on_transition: called with the TransitionEvent of every applied step
        config: pacing and highlight timing
    """

    def __init__(self,
                 on_state_change: Optional[StateChangeCallback] = None,
                 on_transition: Optional[TransitionCallback] = None,
                 config: Optional[SimulationConfig] = None):
        self.on_state_change = on_state_change
        self.on_transition = on_transition
        self.config = config or SimulationConfig()

        self._state: Optional[SimulationState] = None
        self._history: List[HistoryEntry] = []
        self._last_transition: Optional[TransitionEvent] = None
        self._status = EngineStatus.READY
        self._generation = 0
        self._last_notified: Optional[Tuple[str, str]] = None

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------
    @property
    @abc.abstractmethod
    def input_alphabet(self) -> Sequence[str]:
        """Symbols accepted by ``step``."""

    @abc.abstractmethod
    def _restart(self) -> Tuple[str, str]:
        """Reset internal machine state; return the initial ``(state, output)``."""

    @abc.abstractmethod
    def _advance(self, symbol: str) -> Optional[TransitionEvent]:
        """Describe the move on ``symbol`` without applying it; None when no move exists."""

    def _commit(self, symbol: str):
        """Apply the move ``_advance`` described for ``symbol``."""

    def _is_terminal(self) -> bool:
        """True when the machine itself has reached an end state."""
        return False

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------
    @property
    def state(self) -> Optional[SimulationState]:
        return replace(self._state) if self._state is not None else None

    @property
    def current_state(self) -> Optional[str]:
        return self._state.current_state if self._state else None

    @property
    def current_output(self) -> Optional[str]:
        return self._state.current_output if self._state else None

    @property
    def is_complete(self) -> bool:
        return bool(self._state and self._state.is_complete)

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def history(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._history)

    @property
    def output_sequence(self) -> List[str]:
        """Outputs produced by applied steps (the seed entry is excluded)."""
        return [entry.output for entry in self._history[1:]]

    @property
    def last_transition(self) -> Optional[TransitionEvent]:
        return self._last_transition

    @property
    def generation(self) -> int:
        return self._generation

    def active_transition(self, now: Optional[float] = None) -> Optional[TransitionEvent]:
        """Last transition, or None once the highlight window has passed."""
        event = self._last_transition
        if event is None or event.is_expired(self.config.highlight_window, now):
            return None
        return event

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------
    def reset(self):
        """Return to the initial state, clear history and supersede any pending run."""
        self._generation += 1
        state, output = self._restart()
        self._state = SimulationState(current_state=state, current_output=output)
        self._history = [HistoryEntry(state=state, input_symbol=None, output=output)]
        self._last_transition = None
        self._status = EngineStatus.READY
        self._notify_state_change()

    def cancel(self):
        """Supersede a pending paced run, leaving the current state as is."""
        self._generation += 1
        if self._status is EngineStatus.RUNNING:
            self._status = EngineStatus.READY

    def step(self, symbol: str) -> bool:
        """
        Apply one input symbol.

        Returns:
            True if a transition was applied; False (state unchanged) if the
            machine is complete, not set up, or has no move for ``symbol``
        """
        if self._state is None or self._state.is_complete:
            return False

        event = self._advance(symbol)
        if event is None:
            logger.debug("No transition from %s on %r", self._state.current_state, symbol)
            return False

        self._commit(symbol)
        terminal = self._is_terminal()
        self._state = SimulationState(
            current_state=event.to_state,
            current_output=event.output,
            is_complete=terminal,
        )
        if terminal:
            self._status = EngineStatus.COMPLETE
        self._history.append(HistoryEntry(event.to_state, symbol, event.output))
        self._last_transition = event

        # Callbacks only see committed state
        if self.on_transition is not None:
            self.on_transition(event)
        self._notify_state_change()
        return True

    def step_forward(self, pending: Sequence[str]) -> Sequence[str]:
        """Apply the head of ``pending``; return what is left to consume."""
        if pending and self.step(pending[0]):
            return pending[1:]
        return pending

    def is_valid_sequence(self, symbols: Sequence[str]) -> bool:
        """Non-empty and made only of alphabet symbols. Has no side effects."""
        symbols = list(symbols)
        if not symbols:
            return False
        alphabet = set(self.input_alphabet)
        return all(symbol in alphabet for symbol in symbols)

    def run(self, symbols: Sequence[str]) -> bool:
        """Apply ``symbols`` without pacing. Returns False if a symbol was rejected."""
        self._begin_run()
        for symbol in symbols:
            if not self.step(symbol):
                self._finish_run()
                return False
        self._finish_run()
        return True

    async def run_sequence(self, symbols: Sequence[str], delay: Optional[float] = None) -> bool:
        """
        Apply ``symbols`` one at a time, sleeping ``delay`` seconds between steps.

        Stops at the first rejected symbol (leaving the rest unconsumed) and
        enters COMPLETE. A run superseded by ``reset``, ``cancel`` or a newer
        run returns False before its next step and leaves state alone.

        Args:
            symbols: a string (one symbol per character) or a symbol list
            delay: seconds between steps (defaults to config.step_delay)

        Returns:
            True if every symbol was applied
        """
        delay = self.config.step_delay if delay is None else delay
        symbols = list(symbols)
        generation = self._begin_run()

        for index, symbol in enumerate(symbols):
            if generation != self._generation:
                logger.debug("Run %d superseded by %d", generation, self._generation)
                return False

            if not self.step(symbol):
                self._finish_run()
                return False

            if index < len(symbols) - 1 and delay > 0:
                await asyncio.sleep(delay)

        self._finish_run()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _begin_run(self) -> int:
        self._generation += 1
        self._status = EngineStatus.RUNNING
        if self._state is not None and not self._is_terminal():
            self._state.is_complete = False
        return self._generation

    def _finish_run(self):
        self._status = EngineStatus.COMPLETE
        if self._state is not None:
            self._state.is_complete = True

    def _notify_state_change(self):
        pair = (self._state.current_state, self._state.current_output)
        if pair == self._last_notified:
            return
        self._last_notified = pair
        if self.on_state_change is not None:
            self.on_state_change(*pair)


class SimulationEngine(SimulationEngineBase):
    """
    Table-driven engine over a MachineDefinition.

    The definition is validated on load; any defect refuses setup with a
    MachineValidationError listing every defect.
    """

    def __init__(self,
                 machine: Optional[MachineDefinition] = None,
                 on_state_change: Optional[StateChangeCallback] = None,
                 on_transition: Optional[TransitionCallback] = None,
                 config: Optional[SimulationConfig] = None):
        super().__init__(on_state_change=on_state_change, on_transition=on_transition, config=config)
        self.machine: Optional[MachineDefinition] = None
        if machine is not None:
            self.load(machine)

    def load(self, machine: MachineDefinition):
        """Validate ``machine`` and reset onto it."""
        ensure_valid(machine)

        unreachable = unreachable_states(machine)
        if unreachable:
            logger.warning("States unreachable from %s: %s", machine.initial_state, sorted(unreachable))

        self.machine = machine
        logger.info(
            "Loaded machine with %d states, %d inputs, %d transitions",
            len(machine.states), len(machine.inputs), len(machine.transitions),
        )
        self.reset()

    @property
    def input_alphabet(self) -> Sequence[str]:
        return self.machine.inputs if self.machine else ()

    def _restart(self) -> Tuple[str, str]:
        if self.machine is None:
            raise RuntimeError("No machine loaded; call load() first")
        initial = self.machine.initial_state
        return initial, self.machine.output_function[initial]

    def _advance(self, symbol: str) -> Optional[TransitionEvent]:
        transition = self.machine.find_transition(self._state.current_state, symbol)
        if transition is None:
            return None
        return TransitionEvent(
            from_state=transition.from_state,
            to_state=transition.to_state,
            input_symbol=symbol,
            output=self.machine.output_function[transition.to_state],
        )
