"""
Layout Errors

Exception types raised by the layout engine. Construction-time problems
(bad configuration, malformed graphs) fail fast; a run that runs out of
time degrades into a best-effort result unless strict convergence was
requested.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .layout.result import LayoutResult


class LayoutError(Exception):
    """Base class for all layout engine errors."""


class ConfigError(LayoutError, ValueError):
    """Structurally invalid simulation configuration."""


class GraphValidationError(LayoutError, ValueError):
    """Input graph cannot be laid out (empty, duplicate ids, dangling edges)."""


class SimulationTimeout(LayoutError):
    """Wall-clock budget exceeded before the simulation settled.

    Only raised when strict convergence is requested. The best-effort
    result reached at timeout is attached so callers can still render it.
    """

    def __init__(self, message: str, result: Optional["LayoutResult"] = None):
        super().__init__(message)
        self.result = result


class SimulationCancelled(LayoutError):
    """Run was cancelled before a single tick completed."""
