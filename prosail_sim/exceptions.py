"""
Error types raised by the simulation pipeline.

Missing or unreadable files surface as the builtin OSError family
(FileNotFoundError, PermissionError, ...).
"""


class ConfigurationError(ValueError):
    """Invalid run parameters, detected before any simulation starts."""


class SimulationError(RuntimeError):
    """The simulation model failed for a sample; the batch is aborted."""

    def __init__(self, message: str, sample_index: int = -1):
        super().__init__(message)
        self.sample_index = sample_index
