"""Exception types raised by autoswagger.

Almost every inspection failure degrades to "no information" instead of
raising; these are the conditions that do surface to the caller.
"""

from pathlib import Path


class AutoSwaggerError(Exception):
    """Base class for all autoswagger errors."""


class ConfigError(AutoSwaggerError):
    """The configuration file could not be read or is invalid."""


class OutputWriteError(AutoSwaggerError):
    """The generated document could not be written to its target path."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to write OpenAPI document to {self.path}: {reason}")
