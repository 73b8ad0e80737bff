"""Exception hierarchy for the Ecotone Sandbox."""

from __future__ import annotations


class EcotoneError(Exception):
    """Base class for all simulation errors."""


class ConfigurationError(EcotoneError, ValueError):
    """Out-of-range or missing configuration values."""

    def __init__(self, problems: list[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class MissingTraitError(EcotoneError, KeyError):
    """A required trait is absent from a genome or unknown to a schema."""

    def __str__(self) -> str:
        # KeyError repr()s its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class TickError(EcotoneError, RuntimeError):
    """A tick aborted part-way; it was rolled back and the simulation stopped."""

    def __init__(self, tick: int, cause: BaseException):
        self.tick = tick
        self.cause = cause
        super().__init__(f"Tick {tick} failed: {type(cause).__name__}: {cause}")


class SimulationStateError(EcotoneError, RuntimeError):
    """Operation not permitted in the engine's current state."""
