"""
Bosun faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
- Issue: one field-level problem, with the path of argument/option names that
  leads to the offending value.
- CommandException: base type carrying a message plus immutable options, able
  to render itself through rich and to surface itself via trigger().
- trigger(): central entry point to surface a fault with runtime options
  (output sink, colors).
- console(): the rich console bound to an output sink, shared by every writer
  in the package.

Propagation (see commands.py)
- CommandNotFoundError is only ever rendered, never raised.
- IncorrectUsageError, ValidationError and CommandError are caught at the
  command boundary and turned into a failed outcome.
- UnknownOptionError and RequiredAfterOptionalError travel to the executor.
- CommandFault wraps anything else; triggering it ends the process.
"""
import copy
import sys
import traceback
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType
from typing import NamedTuple

from rich.console import Console
from rich.text import Text

from .utils import Unset, coalesce, kebabcase


def console(stdout=Unset, /, *, colorful=False):
    """
    Return a rich console writing to the given sink (default: sys.stdout).

    Markup, emoji and highlighting are off so user values are printed
    verbatim; colors are only emitted when colorful is true.
    """
    return Console(
        file=coalesce(stdout, sys.stdout),
        color_system="auto" if colorful else None,
        markup=False,
        emoji=False,
        highlight=False,
        soft_wrap=True,
    )


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - routing (1110x): COMMAND_NOT_FOUND
    - options (1111x): UNKNOWN_OPTION
    - values (1112x): VALIDATION_FAILED, INCORRECT_USAGE
    - handlers (1113x): COMMAND_FAILED, UNHANDLED_FAULT
    - definitions (1115x): REQUIRED_AFTER_OPTIONAL
    """
    COMMAND_NOT_FOUND           = 11101

    UNKNOWN_OPTION              = 11112

    VALIDATION_FAILED           = 11124
    INCORRECT_USAGE             = 11125

    COMMAND_FAILED              = 11131
    UNHANDLED_FAULT             = 11139

    REQUIRED_AFTER_OPTIONAL     = 11151

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class Issue(NamedTuple):
    """A single validation problem and the names leading to it."""
    message: str
    path: tuple = ()

    def prefixed(self, *segments):
        return self._replace(path=(*segments, *self.path))

    def __str__(self):
        if not self.path:
            return self.message
        return f"{self.message} ({".".join(map(str, self.path))})"


class CommandException(Exception):
    """
    base of every fault raised or rendered by the engine.

    the positional message is the fault's subject; lines() turns it into the
    text users read. options are runtime context merged in by trigger():
    - stdout: sink the fault is written to.
    - colorful: whether styles are applied.
    """
    code = FaultCode.COMMAND_FAILED
    style = "error-message"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def lines(self):
        yield coalesce(self.message, "")

    def __str__(self):
        return "\n".join(self.lines())

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            "error-message": "#FF4DA6",  # pinky error copy
            "issue": "#FFD600",  # amber per-field issues
            "not-found": "#C8C8D0",  # soft gray routing miss
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if self.options.get("colorful", False) else ""

        return Text("\n").join(Text(line, styler(self.style)) for line in self.lines())

    def __trigger__(self):
        console(self.options.get("stdout", Unset), colorful=self.options.get("colorful", False)).print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class CommandNotFoundError(CommandException):
    code = FaultCode.COMMAND_NOT_FOUND
    style = "not-found"

    def lines(self):
        yield f"Command not found: {self.message}"


class IncorrectUsageError(CommandException):
    code = FaultCode.INCORRECT_USAGE


class UnknownOptionError(CommandException):
    code = FaultCode.UNKNOWN_OPTION

    def lines(self):
        yield f"Unknown option: --{kebabcase(self.message)}"


class RequiredAfterOptionalError(CommandException):
    code = FaultCode.REQUIRED_AFTER_OPTIONAL

    def lines(self):
        yield coalesce(self.message, "Cannot have required arguments after optional")

    def __trigger__(self):
        super().__trigger__()
        raise self


class ValidationError(CommandException):
    """
    one or more field-level issues found while checking a value.

    options
    - issues: tuple[Issue, ...], rendered one per line.
    """
    code = FaultCode.VALIDATION_FAILED
    style = "issue"

    @property
    def issues(self):
        return tuple(self.options.get("issues", ()))

    def prefixed(self, *segments):
        """Return a copy whose issue paths start with the given names."""
        return copy.replace(self, issues=tuple(issue.prefixed(*segments) for issue in self.issues))

    def lines(self):
        yield from map(str, self.issues)


class CommandError(CommandException):
    """
    raised by handlers to report a failure of the command itself.

    usage
        raise CommandError("disk is full", command=node)
    """
    code = FaultCode.COMMAND_FAILED

    def lines(self):
        try:
            yield f"Failed to run {self.options["command"].full_name} ({coalesce(self.message, "")})"
        except KeyError:
            yield f"Failed to run ({coalesce(self.message, "")})"


class CommandFault(CommandException):
    """
    wrapper around an exception the engine does not know about.

    options
    - error: the original exception; its traceback is written when triggered.
    """
    code = FaultCode.UNHANDLED_FAULT

    def lines(self):
        error = self.options["error"]
        yield "".join(traceback.format_exception(error)).rstrip("\n")

    def __trigger__(self):
        super().__trigger__()
        sys.exit(1)


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods.
    - options are merged into the fault via copy.replace() before triggering.
    - most faults are written to options["stdout"]; RequiredAfterOptionalError
      re-raises itself afterwards and CommandFault exits with status 1.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "Issue",
    "CommandException",
    "CommandNotFoundError",
    "IncorrectUsageError",
    "UnknownOptionError",
    "RequiredAfterOptionalError",
    "ValidationError",
    "CommandError",
    "CommandFault",
    "trigger",
    "console",
)
