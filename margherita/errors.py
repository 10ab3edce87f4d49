"""
Unified hierarchy of error types. These inherit from standard errors like
ValueError and OSError but are more fine-grained.
"""

from typing import Tuple, Type


class MargheritaError(ValueError):
    """Base class for margherita runtime errors."""

    pass


class SelfExplanatoryError(MargheritaError):
    """Common errors that arise from 'normal' problems that are largely self-explanatory,
    i.e., no stack trace should be necessary when reporting to the user."""

    pass


class InvalidInput(SelfExplanatoryError):
    """Raised when the wrong kind of input is given to a command."""

    pass


class InvalidCommand(InvalidInput):
    """Raised when a command is not known or its arguments don't fit."""

    pass


class PathResolutionError(SelfExplanatoryError):
    """Raised when the host's documents location can't be determined."""

    pass


class WorkspaceIOError(SelfExplanatoryError, OSError):
    """Raised when creating, reading, writing or listing the workspace fails."""

    pass


class InvalidFilename(WorkspaceIOError):
    """Raised when a document name is empty or would land outside the workspace."""

    pass


NONFATAL_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    SelfExplanatoryError,
    FileNotFoundError,
    PermissionError,
)
"""Exceptions that are not fatal and usually don't merit a full stack trace."""


def is_fatal(exception: Exception) -> bool:
    for e in NONFATAL_EXCEPTIONS:
        if isinstance(exception, e):
            return False
    return True


## Tests


def test_error_hierarchy():
    err = InvalidFilename("Invalid document name: ''")
    assert isinstance(err, WorkspaceIOError)
    assert isinstance(err, OSError)
    assert isinstance(err, MargheritaError)
    assert not is_fatal(err)
    assert not is_fatal(PathResolutionError("no home"))
    assert is_fatal(KeyError("x"))
