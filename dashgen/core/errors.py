"""Fatal error taxonomy for a generation run."""
from pathlib import Path
from typing import Optional, Union


class DashgenError(Exception):
    """Base class for every fatal dashgen error."""


class SourceSyntaxError(DashgenError):
    """A definition file could not be parsed."""

    def __init__(self, path: Union[str, Path], message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.path = str(path)
        self.message = message
        self.line = line
        self.column = column
        location = self.path
        if line is not None:
            location += f":{line}"
            if column is not None:
                location += f":{column}"
        super().__init__(f"parse {location}: {message}")


class DiscoveryError(DashgenError):
    """No definition files were found."""


class FileSystemError(DashgenError):
    """Reading, creating a directory or writing a file failed."""

    def __init__(self, path: Union[str, Path], cause: OSError):
        self.path = str(path)
        self.cause = cause
        reason = cause.strerror or str(cause)
        super().__init__(f"{self.path}: {reason}")


class TargetCollisionError(DashgenError):
    """Two entities would generate the same output file."""

    def __init__(self, path: str, first: str, second: str):
        self.path = path
        self.first = first
        self.second = second
        super().__init__(f"{path}: generated by both {first} and {second}")
