from __future__ import annotations


class SimulationError(Exception):
    """Base class for every error raised by the simulation package."""


class SimulationInvariantError(SimulationError):
    """A malformed entity that cannot be processed this tick."""


class InvalidDNAError(SimulationInvariantError, ValueError):
    pass


class GeneExpressionError(SimulationInvariantError, KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class MissingDNAError(SimulationInvariantError):
    pass


class WireFormatError(SimulationError, ValueError):
    pass


class PersistenceError(SimulationError):
    pass


class SimulationNotFoundError(PersistenceError, KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
