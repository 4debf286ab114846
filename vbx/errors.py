"""
Exceptions raised by vbx.

Every failure is fatal to the current command: the CLI layer logs the
message and exits with status 1.
"""

from typing import List, Optional


class VbxError(Exception):
    """Base class for all vbx failures."""


class ResolutionError(VbxError):
    """The selector matched no machine, or more than one."""

    def __init__(self, selector: str, matches: Optional[List[str]] = None, reason: str = ""):
        self.selector = selector
        self.matches = matches or []
        if reason:
            message = f"Invalid selector '{selector}': {reason}"
        elif self.matches:
            message = f"Selector '{selector}' is ambiguous: {', '.join(self.matches)}"
        else:
            message = f"No machine matches '{selector}'"
        super().__init__(message)


class MissingArgumentError(VbxError):
    """A required extra argument was not given."""

    def __init__(self, argument: str, verb: str):
        self.argument = argument
        self.verb = verb
        super().__init__(f"'{verb}' requires a {argument}")


class PlatformError(VbxError):
    """The management tool reported a failure."""

    def __init__(self, cmd: List[str], returncode: int, detail: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.detail = detail
        message = detail or f"{' '.join(cmd)} failed with exit code {returncode}"
        super().__init__(message)


class FeatureUnavailableError(VbxError):
    """The machine is not set up for the requested connection."""
